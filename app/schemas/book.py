"""
Pydantic schemas for book listings and details
"""
from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from app.schemas.progress import ChapterProgressItem, OverallProgress


class BookSummaryOut(BaseModel):
    """Progress roll-up attached to continue-reading / completed listings"""
    total_chapters: int
    completed_chapters: int
    percent: float

    class Config:
        from_attributes = True


class BookOut(BaseModel):
    id: UUID
    title: str
    author: str
    quote: Optional[str] = ""
    short_desc: Optional[str] = ""
    cover_image: Optional[str] = ""
    tags: List[str] = []
    created_at: Optional[datetime] = None
    chapter_count: int = 0
    matched_tags: List[str] = []
    progress: Optional[BookSummaryOut] = None


class BookListResponse(BaseModel):
    items: List[BookOut]
    total: int
    per_page: int
    current_page: int
    related_tags: Optional[List[str]] = None


class ChapterDetail(BaseModel):
    id: UUID
    title: str
    short_desc: Optional[str] = ""
    duration: Optional[str] = ""
    duration_display: str
    media_path: Optional[str] = ""
    media_type: Optional[str] = ""
    progress: ChapterProgressItem


class BookDetailResponse(BaseModel):
    id: UUID
    title: str
    author: str
    quote: Optional[str] = ""
    short_desc: Optional[str] = ""
    long_desc: Optional[str] = ""
    cover_image: Optional[str] = ""
    tags: List[str] = []
    chapters: List[ChapterDetail]
    chapter_count: int
    overall_progress: OverallProgress
