"""
Reel model - short clips, optionally linked to a book or chapter
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Uuid, func
from app.database import Base
from app.models.types import JSONType
import uuid


class Reel(Base):
    __tablename__ = "reels"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    short_desc = Column(Text, default="")
    creator_text = Column(String(255), default="")
    book_id = Column(Uuid, ForeignKey("books.id"), nullable=True)
    chapter_id = Column(Uuid, ForeignKey("chapters.id"), nullable=True)
    book_quote_text = Column(Text, default="")
    tags = Column(JSONType, default=list)
    media_path = Column(String(512), default="")
    media_type = Column(String(20), default="")
    active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<Reel(id={self.id}, title={self.title})>"
