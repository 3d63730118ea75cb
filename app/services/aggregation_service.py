"""
Book aggregation service
Rolls chapter progress up into book summaries and "continue reading" / "completed" listings
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import TransientStoreError
from app.models import Book, Chapter, ChapterProgress
from app.services.identity_service import Identity

logger = logging.getLogger(__name__)

IN_PROGRESS = "in_progress"
COMPLETED = "completed"

SORTABLE_FIELDS = {
    "created_at": Book.created_at,
    "title": Book.title,
    "author": Book.author,
}


@dataclass
class BookSummary:
    total_chapters: int
    completed_chapters: int
    mean_percent: float  # unrounded; classification compares this
    has_progress: bool

    @property
    def percent(self) -> float:
        """Mean percent rounded for display"""
        return round(self.mean_percent, 2)

    @property
    def status(self) -> Optional[str]:
        """in_progress, completed, or None when the book was never started"""
        if not self.has_progress:
            return None
        return COMPLETED if self.mean_percent >= settings.COMPLETION_THRESHOLD else IN_PROGRESS


@dataclass
class BookFilters:
    search: Optional[str] = None
    author: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"


class AggregationService:
    """Service for book-level progress classification"""

    def classify(self, db: Session, identity: Identity, book_ids: List[UUID]) -> Dict[UUID, BookSummary]:
        """
        Summarize progress for each book

        percent is the mean of per-chapter percent across all chapters of the
        book; chapters without a progress row contribute 0.

        Args:
            db: Database session
            identity: User or guest identity
            book_ids: Books to summarize

        Returns:
            Dictionary of book id to BookSummary
        """
        if not book_ids:
            return {}

        try:
            chapters = db.query(Chapter.id, Chapter.book_id).filter(
                Chapter.book_id.in_(book_ids)
            ).all()

            progresses = db.query(ChapterProgress).filter(
                identity.owns(ChapterProgress),
                ChapterProgress.book_id.in_(book_ids)
            ).all()

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to classify books: {str(e)}")
            raise TransientStoreError("Book progress could not be loaded, please retry") from e

        chapters_by_book = defaultdict(list)
        for chapter_id, book_id in chapters:
            chapters_by_book[book_id].append(chapter_id)

        progress_by_book = defaultdict(dict)
        for progress in progresses:
            progress_by_book[progress.book_id][progress.chapter_id] = progress

        summaries = {}
        for book_id in book_ids:
            chapter_ids = chapters_by_book.get(book_id, [])
            book_progress = progress_by_book.get(book_id, {})

            sum_percent = 0.0
            completed_chapters = 0
            for chapter_id in chapter_ids:
                progress = book_progress.get(chapter_id)
                if progress is None:
                    continue
                sum_percent += float(progress.percent or 0)
                if progress.completed:
                    completed_chapters += 1

            total = len(chapter_ids)
            mean_percent = sum_percent / total if total else 0.0

            summaries[book_id] = BookSummary(
                total_chapters=total,
                completed_chapters=completed_chapters,
                mean_percent=mean_percent,
                has_progress=bool(book_progress)
            )

        return summaries

    def progressed_book_ids(self, db: Session, identity: Identity) -> List[UUID]:
        """Books with at least one progress row for this identity"""
        try:
            rows = db.query(ChapterProgress.book_id).filter(
                identity.owns(ChapterProgress)
            ).distinct().all()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to load progressed books: {str(e)}")
            raise TransientStoreError("Book progress could not be loaded, please retry") from e

        return [row[0] for row in rows]

    def list_in_progress(self, db: Session, identity: Identity, filters: BookFilters,
                         page: int, per_page: int) -> Tuple[List[Tuple[Book, BookSummary]], int]:
        """Continue-reading listing: started books below the completion threshold"""
        return self._list_by_status(db, identity, IN_PROGRESS, filters, page, per_page)

    def list_completed(self, db: Session, identity: Identity, filters: BookFilters,
                       page: int, per_page: int) -> Tuple[List[Tuple[Book, BookSummary]], int]:
        """Completed listing: started books at or above the completion threshold"""
        return self._list_by_status(db, identity, COMPLETED, filters, page, per_page)

    def _list_by_status(
        self,
        db: Session,
        identity: Identity,
        status: str,
        filters: BookFilters,
        page: int,
        per_page: int
    ) -> Tuple[List[Tuple[Book, BookSummary]], int]:
        """
        Classify every progressed book first, then filter, sort and slice the page

        Returns:
            Tuple of (page of (book, summary) pairs, total matching books)
        """
        book_ids = self.progressed_book_ids(db, identity)
        summaries = self.classify(db, identity, book_ids)

        candidate_ids = [bid for bid, summary in summaries.items() if summary.status == status]
        if not candidate_ids:
            return [], 0

        try:
            query = apply_book_filters(
                db.query(Book).filter(Book.id.in_(candidate_ids)), filters
            )
            books = query.all()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to load books for listing: {str(e)}")
            raise TransientStoreError("Books could not be loaded, please retry") from e

        total = len(books)
        start = (page - 1) * per_page
        page_books = books[start:start + per_page]

        logger.info(f"Listed {status} books for {identity.kind}: {total} total")

        return [(book, summaries[book.id]) for book in page_books], total


def apply_book_filters(query, filters: BookFilters):
    """Search, author and ordering shared by every book listing"""
    query = query.filter(Book.active.is_(True))

    if filters.search:
        pattern = f"%{filters.search}%"
        query = query.filter(or_(
            Book.title.ilike(pattern),
            Book.short_desc.ilike(pattern),
            Book.long_desc.ilike(pattern),
            Book.author.ilike(pattern)
        ))

    if filters.author:
        query = query.filter(Book.author == filters.author)

    column = SORTABLE_FIELDS.get(filters.sort_by, Book.created_at)
    ordering = column.asc() if filters.sort_order == "asc" else column.desc()
    return query.order_by(ordering, Book.id)


# Global instance
aggregation_service = AggregationService()
