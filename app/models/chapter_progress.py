"""
ChapterProgress model - playback state per identity and chapter
"""
from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, ForeignKey, Uuid, func
from app.database import Base
import uuid


class ChapterProgress(Base):
    """
    Chapter progress table - one row per (identity, chapter), overwritten in place

    User rows carry user_id. Guest rows carry guest_identifier with user_id NULL;
    the identifier is kept after a merge as provenance.
    """
    __tablename__ = "chapter_progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    guest_identifier = Column(String(128), nullable=True, index=True)
    book_id = Column(Uuid, ForeignKey("books.id"), nullable=False, index=True)
    chapter_id = Column(Uuid, ForeignKey("chapters.id"), nullable=False, index=True)
    played_seconds = Column(Integer, default=0, nullable=False)
    duration_seconds = Column(Integer, default=0, nullable=False)
    percent = Column(Float, default=0.0, nullable=False)  # 0.00 to 100.00
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        owner = self.user_id or f"guest:{self.guest_identifier}"
        return f"<ChapterProgress(owner={owner}, chapter_id={self.chapter_id}, percent={self.percent})>"
