"""
Pydantic schemas for account endpoints
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class RegisterRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=r"^\S+@\S+\.\S+$")
    phone: str = Field(..., pattern=r"^\+?[0-9]{7,15}$")
    password: str = Field(..., min_length=8)
    guest_identifier: Optional[str] = Field(None, max_length=128, description="Guest id whose history should move to the new account")


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdateRequest(BaseModel):
    """Omitted optional fields keep their current value"""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: str = Field(..., pattern=r"^\+?[0-9]{7,15}$")
    profile_pic: Optional[str] = Field(None, max_length=512)


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., pattern=r"^\S+@\S+\.\S+$")


class ResetPasswordRequest(BaseModel):
    email: str
    otp: str = Field(..., pattern=r"^[0-9]{4,8}$")
    new_password: str = Field(..., min_length=8)


class UserOut(BaseModel):
    id: UUID
    full_name: str
    email: str
    phone: Optional[str] = None
    profile_pic: Optional[str] = ""
    status: bool
    chosen_tags: List[str] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MergeSummary(BaseModel):
    responses_moved: int
    progress_moved: int
    tags_added: List[str]


class RegisterResponse(BaseModel):
    user: UserOut
    merged: Optional[MergeSummary] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class MessageResponse(BaseModel):
    message: str


class ProfileResponse(BaseModel):
    user: UserOut
    chosen_tag_names: List[str] = []
