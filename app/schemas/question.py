"""
Pydantic schemas for questionnaire listing and submission
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime


class OptionOut(BaseModel):
    id: Optional[str] = None
    text: str = ""
    value: str = ""
    order: int = 0
    tags: List[str] = []


class UserAnswer(BaseModel):
    """Latest known answer of the requester for a question"""
    values: List[str] = []
    text: str = ""
    responded_at: Optional[datetime] = None
    response_id: UUID


class QuestionOut(BaseModel):
    id: UUID
    title: str
    type: str
    required: bool
    section: str = ""
    order: int = 0
    options: List[OptionOut] = []
    user_answer: Optional[UserAnswer] = None


class AnswerItem(BaseModel):
    """values holds option ids, values or texts; text is for free-form questions"""
    question_id: UUID
    values: List[str] = []
    text: str = ""


class ResponseSubmission(BaseModel):
    answers: List[AnswerItem] = Field(..., min_length=1)
    guest_identifier: Optional[str] = Field(None, max_length=128)
    meta: Dict[str, Any] = {}


class ResponseSubmitted(BaseModel):
    response_id: UUID
    tags_added: List[str] = []
    guest_identifier: Optional[str] = None


class ResponseOut(BaseModel):
    """A stored submission, as returned to its owner"""
    id: UUID
    answers: List[AnswerItem]
    meta: Dict[str, Any] = {}
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
