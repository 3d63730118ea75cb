"""
User model - registered accounts and their accumulated tag preferences
"""
from sqlalchemy import Column, String, Boolean, DateTime, Uuid, func
from app.database import Base
from app.models.types import JSONType
import uuid


class User(Base):
    """
    Users table - chosen_tags holds Tag ids (as strings) gathered from quiz answers
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(32))
    profile_pic = Column(String(512), default="")
    password_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, default=False)
    status = Column(Boolean, default=True)  # inactive accounts never authenticate
    chosen_tags = Column(JSONType, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
