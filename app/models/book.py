"""
Book model - content reference data owned by the content-management side
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, Uuid, func
from app.database import Base
from app.models.types import JSONType
import uuid


class Book(Base):
    """
    Books table - tags are plain names used for personalization matching
    """
    __tablename__ = "books"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    quote = Column(Text, default="")
    short_desc = Column(Text, default="")
    long_desc = Column(Text, default="")
    cover_image = Column(String(512), default="")
    tags = Column(JSONType, default=list)  # ["Mindset", "Productivity"]
    active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Book(id={self.id}, title={self.title})>"
