"""
Account API endpoints
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.models import User
from app.schemas.auth import (
    RegisterRequest, RegisterResponse, MergeSummary, LoginRequest, TokenResponse,
    ForgotPasswordRequest, ResetPasswordRequest, MessageResponse, UserOut, ProfileResponse,
    ProfileUpdateRequest
)
from app.services.auth_service import auth_service
from app.services.identity_service import get_current_user, identity_resolver
from app.services.tag_service import tag_service

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=RegisterResponse, response_model_exclude_none=True, status_code=201)
async def register(
    payload: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Create an account

    A guest identifier (body field, X-Guest-Identifier header or query
    parameter) moves that guest's progress and questionnaire answers to the
    new account and adds the answer tags to its chosen tags.
    """

    guest_identifier = identity_resolver.find_guest_identifier(request, payload.guest_identifier)

    user, merge_result = auth_service.register(
        db,
        full_name=payload.full_name,
        email=payload.email,
        phone=payload.phone,
        password=payload.password,
        guest_identifier=guest_identifier
    )

    merged = None
    if merge_result is not None:
        merged = MergeSummary(
            responses_moved=merge_result.responses_moved,
            progress_moved=merge_result.progress_moved,
            tags_added=merge_result.tags_added
        )

    return RegisterResponse(user=UserOut.model_validate(user), merged=merged)


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token"""

    user, token = auth_service.login(db, payload.email, payload.password)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user))


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """
    Start a password reset

    The reply is the same whether or not the email is registered.
    """

    auth_service.issue_reset_otp(db, payload.email)
    return MessageResponse(message="If the email is registered, a reset code has been sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Reset the password with a valid, unexpired OTP"""

    auth_service.reset_password(db, payload.email, payload.otp, payload.new_password)
    return MessageResponse(message="Password reset successful")


@router.get("/me", response_model=ProfileResponse)
async def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Profile of the signed-in user with chosen tag names"""

    return ProfileResponse(
        user=UserOut.model_validate(user),
        chosen_tag_names=tag_service.tag_names_for_ids(db, user.chosen_tags or [])
    )


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update name, phone and profile picture of the signed-in user"""

    user = auth_service.update_profile(
        db,
        user,
        phone=payload.phone,
        full_name=payload.full_name,
        profile_pic=payload.profile_pic
    )
    return ProfileResponse(
        user=UserOut.model_validate(user),
        chosen_tag_names=tag_service.tag_names_for_ids(db, user.chosen_tags or [])
    )
