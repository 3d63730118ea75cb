"""
Question model - onboarding quiz questions whose options carry tag names
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Uuid, func
from app.database import Base
from app.models.types import JSONType
import uuid


class Question(Base):
    """
    Questions table - options is an ordered list of
    {"id", "text", "value", "order", "tags": [names]}
    """
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default="single")  # single, multiple, dropdown, grid, text, image, video
    options = Column(JSONType, default=list)
    required = Column(Boolean, default=False)
    section = Column(String(120), default="")
    order = Column(Integer, default=0)
    active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Question(id={self.id}, title={self.title})>"
