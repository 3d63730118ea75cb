"""
Pydantic schemas for reel listings
"""
from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class ReelOut(BaseModel):
    id: UUID
    title: str
    short_desc: Optional[str] = ""
    creator_text: Optional[str] = ""
    book_id: Optional[UUID] = None
    chapter_id: Optional[UUID] = None
    book_quote_text: Optional[str] = ""
    tags: List[str] = []
    media_path: Optional[str] = ""
    media_type: Optional[str] = ""
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReelListResponse(BaseModel):
    items: List[ReelOut]
    total: int
    page: int
    per_page: int
    total_pages: int
    priority_tags: List[str]
