"""
Chapter model - audio chapters belonging to a book
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Uuid, func
from app.database import Base
import uuid


class Chapter(Base):
    """
    Chapters table - duration is free-form ("08:32", "1:02:10" or "512")
    """
    __tablename__ = "chapters"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    book_id = Column(Uuid, ForeignKey("books.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    short_desc = Column(Text, default="")
    long_desc = Column(Text, default="")
    duration = Column(String(32), default="")
    media_path = Column(String(512), default="")
    media_type = Column(String(20), default="")  # image, video, audio
    active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Chapter(id={self.id}, book_id={self.book_id}, title={self.title})>"
