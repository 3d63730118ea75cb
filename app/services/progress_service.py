"""
Chapter progress ledger
Idempotent upsert of playback state and per-book progress summaries
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import InvalidArgumentError, NotFoundError, TransientStoreError
from app.models import Book, Chapter, ChapterProgress
from app.services.identity_service import GuestIdentity, Identity, UserIdentity
from app.utils.duration import normalize_duration

logger = logging.getLogger(__name__)


@dataclass
class ChapterProgressItem:
    chapter_id: UUID
    title: str
    duration_seconds: int
    played_seconds: int
    percent: float
    completed: bool
    updated_at: Optional[datetime] = None


@dataclass
class OverallProgress:
    total_chapters: int
    completed_chapters: int
    percent: float


@dataclass
class BookProgress:
    book_id: UUID
    per_chapter: List[ChapterProgressItem] = field(default_factory=list)
    overall: OverallProgress = None


class ProgressService:
    """
    Service for recording and reading chapter playback progress

    Algorithm:
    - percent = min(100, played / duration * 100), 0 when duration is unknown
    - completed when percent >= threshold (95) or the playhead is within
      one second of the end
    - callers report the current playhead, not deltas; last write wins
    """

    END_TOLERANCE_SECONDS = 1

    def __init__(self, threshold: float = None):
        self.threshold = threshold if threshold is not None else settings.COMPLETION_THRESHOLD

    def calculate_completion(self, played_seconds: int, duration_seconds: int) -> Tuple[float, bool]:
        """
        Compute percent and completion flag

        Args:
            played_seconds: Current playhead in seconds
            duration_seconds: Authoritative chapter duration

        Returns:
            Tuple of (percent rounded to 2 decimals, completed)
        """
        if duration_seconds <= 0:
            return 0.0, False

        percent = min(100.0, played_seconds / duration_seconds * 100)
        completed = (
            percent >= self.threshold
            or played_seconds + self.END_TOLERANCE_SECONDS >= duration_seconds
        )
        return round(percent, 2), completed

    def resolve_duration(
        self,
        chapter: Chapter,
        override: Optional[int],
        existing: Optional[ChapterProgress]
    ) -> int:
        """Override if positive, else the chapter's own duration, else what was stored before"""
        if override is not None and override > 0:
            return int(override)

        parsed = normalize_duration(chapter.duration)
        if parsed > 0:
            return parsed

        if existing is not None and existing.duration_seconds:
            return existing.duration_seconds

        return 0

    def record_progress(
        self,
        db: Session,
        identity: Identity,
        book_id: Optional[UUID],
        chapter_id: Optional[UUID],
        played_seconds: int,
        duration_override: Optional[int] = None
    ) -> ChapterProgress:
        """
        Upsert the progress row for (identity, chapter)

        Args:
            db: Database session
            identity: User or guest identity
            book_id: Book the chapter belongs to
            chapter_id: Chapter being played
            played_seconds: Current playhead position
            duration_override: Client-reported duration, used when positive

        Returns:
            The persisted ChapterProgress row

        Raises:
            InvalidArgumentError: missing ids, negative playhead, chapter/book mismatch
            NotFoundError: unknown chapter
            TransientStoreError: the store write failed; prior state is unchanged
        """
        if not book_id or not chapter_id:
            raise InvalidArgumentError("book_id and chapter_id are required")

        if played_seconds is None or played_seconds < 0:
            raise InvalidArgumentError("played_seconds must be a non-negative integer")

        try:
            chapter = db.query(Chapter).filter(Chapter.id == chapter_id).first()
            if not chapter:
                raise NotFoundError("Chapter not found")

            if chapter.book_id != book_id:
                raise InvalidArgumentError("Chapter does not belong to the given book")

            progress = db.query(ChapterProgress).filter(
                identity.owns(ChapterProgress),
                ChapterProgress.chapter_id == chapter_id,
                ChapterProgress.book_id == book_id
            ).first()

            duration_seconds = self.resolve_duration(chapter, duration_override, progress)
            played_seconds = int(played_seconds)
            percent, completed = self.calculate_completion(played_seconds, duration_seconds)

            if progress is None:
                progress = ChapterProgress(book_id=book_id, chapter_id=chapter_id)
                if isinstance(identity, UserIdentity):
                    progress.user_id = identity.user_id
                elif isinstance(identity, GuestIdentity):
                    progress.guest_identifier = identity.guest_identifier
                db.add(progress)

            progress.played_seconds = played_seconds
            progress.duration_seconds = duration_seconds
            progress.percent = percent
            progress.completed = completed
            progress.updated_at = datetime.now(timezone.utc)

            db.commit()
            db.refresh(progress)

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to record progress for chapter {chapter_id}: {str(e)}")
            raise TransientStoreError("Progress could not be saved, please retry") from e

        logger.info(
            f"Progress recorded: {identity.kind}, chapter={chapter_id}, "
            f"played={played_seconds}s/{duration_seconds}s, "
            f"percent={percent}, completed={completed}"
        )

        return progress

    def progress_by_chapter(
        self,
        db: Session,
        identity: Identity,
        chapter_ids: List[UUID]
    ) -> Dict[UUID, ChapterProgress]:
        """Map chapter id to this identity's progress row, for the given chapters only"""
        if not chapter_ids:
            return {}

        rows = db.query(ChapterProgress).filter(
            identity.owns(ChapterProgress),
            ChapterProgress.chapter_id.in_(chapter_ids)
        ).all()
        return {row.chapter_id: row for row in rows}

    def summarize(self, items: List[ChapterProgressItem]) -> OverallProgress:
        """Average percent across every chapter of the book; unstarted chapters count as 0"""
        total = len(items)
        completed = sum(1 for item in items if item.completed)
        percent = round(sum(item.percent for item in items) / total, 2) if total else 0.0
        return OverallProgress(total_chapters=total, completed_chapters=completed, percent=percent)

    def build_book_progress(
        self,
        book_id: UUID,
        chapters: List[Chapter],
        progress_map: Dict[UUID, ChapterProgress]
    ) -> BookProgress:
        items = []
        for chapter in chapters:
            progress = progress_map.get(chapter.id)
            duration = normalize_duration(chapter.duration) or (
                progress.duration_seconds if progress else 0
            )

            if progress is None:
                items.append(ChapterProgressItem(
                    chapter_id=chapter.id,
                    title=chapter.title,
                    duration_seconds=duration,
                    played_seconds=0,
                    percent=0.0,
                    completed=False
                ))
                continue

            items.append(ChapterProgressItem(
                chapter_id=chapter.id,
                title=chapter.title,
                duration_seconds=duration,
                played_seconds=progress.played_seconds or 0,
                percent=round(progress.percent or 0.0, 2),
                completed=bool(progress.completed),
                updated_at=progress.updated_at or progress.created_at
            ))

        return BookProgress(book_id=book_id, per_chapter=items, overall=self.summarize(items))

    def get_chapters(self, db: Session, book_id: UUID) -> List[Chapter]:
        """Chapters of a book in creation order"""
        return db.query(Chapter).filter(
            Chapter.book_id == book_id
        ).order_by(Chapter.created_at.asc()).all()

    def get_book_progress(self, db: Session, identity: Identity, book_id: UUID) -> BookProgress:
        """
        Per-chapter progress and overall summary of a book for one identity

        Raises:
            NotFoundError: unknown book
            TransientStoreError: the store read failed
        """
        try:
            book = db.query(Book).filter(Book.id == book_id).first()
            if not book:
                raise NotFoundError("Book not found")

            chapters = self.get_chapters(db, book_id)
            progress_map = self.progress_by_chapter(db, identity, [c.id for c in chapters])

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to load progress for book {book_id}: {str(e)}")
            raise TransientStoreError("Progress could not be loaded, please retry") from e

        return self.build_book_progress(book_id, chapters, progress_map)


# Global instance
progress_service = ProgressService()
