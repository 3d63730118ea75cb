"""
Pydantic schemas for chapter progress requests and responses
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime


class ProgressRecordRequest(BaseModel):
    """Playback report: the current playhead, not a delta"""
    book_id: UUID
    chapter_id: UUID
    played_seconds: int = Field(0, ge=0, description="Current playhead in seconds")
    duration_seconds: Optional[int] = Field(None, ge=0, description="Client-reported chapter duration")
    guest_identifier: Optional[str] = Field(None, max_length=128, description="Guest id for anonymous listeners")


class ProgressOut(BaseModel):
    """Stored progress row"""
    id: UUID
    identity: Dict[str, Any]
    book_id: UUID
    chapter_id: UUID
    played_seconds: int
    duration_seconds: int
    percent: float
    completed: bool
    updated_at: Optional[datetime] = None


class ProgressRecordResponse(BaseModel):
    """guest_identifier is only returned when a new one was generated"""
    progress: ProgressOut
    guest_identifier: Optional[str] = None


class ChapterProgressItem(BaseModel):
    chapter_id: UUID
    title: str
    duration_seconds: int
    played_seconds: int
    percent: float
    completed: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OverallProgress(BaseModel):
    total_chapters: int
    completed_chapters: int
    percent: float

    class Config:
        from_attributes = True


class BookProgressResponse(BaseModel):
    """Per-chapter progress and the whole-book average"""
    book_id: UUID
    per_chapter: List[ChapterProgressItem]
    overall: OverallProgress

    class Config:
        from_attributes = True
