"""
Response model - one questionnaire submission, owned by a user or a guest
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid, func
from app.database import Base
from app.models.types import JSONType
import uuid


class Response(Base):
    """
    Responses table - answers is a list of {"question_id", "values", "text"}

    guest_identifier mirrors meta["userIdentifier"] so guest rows can be queried.
    """
    __tablename__ = "responses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    guest_identifier = Column(String(128), nullable=True, index=True)
    answers = Column(JSONType, nullable=False, default=list)
    meta = Column(JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Response(id={self.id}, user_id={self.user_id})>"
