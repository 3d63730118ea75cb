"""
Tag model - canonical name to id mapping, created lazily
"""
from sqlalchemy import Column, String, DateTime, Uuid, func
from app.database import Base
import uuid


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(120), unique=True, nullable=False)
    slug = Column(String(120), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Tag(id={self.id}, name={self.name})>"
