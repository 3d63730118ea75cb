"""
Database models package
"""
from app.models.user import User
from app.models.book import Book
from app.models.chapter import Chapter
from app.models.chapter_progress import ChapterProgress
from app.models.tag import Tag
from app.models.question import Question
from app.models.response import Response
from app.models.reel import Reel

__all__ = [
    "User",
    "Book",
    "Chapter",
    "ChapterProgress",
    "Tag",
    "Question",
    "Response",
    "Reel",
]
