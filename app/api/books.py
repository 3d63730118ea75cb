"""
Book listing and detail API endpoints
"""
from dataclasses import asdict
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from uuid import UUID
import logging

from app.config import settings
from app.database import get_db
from app.exceptions import NotFoundError, UnauthorizedError
from app.models import Book, Chapter
from app.schemas.book import BookOut, BookListResponse, BookDetailResponse, ChapterDetail, BookSummaryOut
from app.services.aggregation_service import BookFilters, BookSummary, aggregation_service, apply_book_filters
from app.services.identity_service import Identity, UserIdentity, get_optional_identity
from app.services.progress_service import progress_service
from app.services.tag_service import tag_service
from app.utils.duration import format_seconds

router = APIRouter(prefix="/api/books", tags=["books"])
logger = logging.getLogger(__name__)

RELATED_BOOKS = "related_books"
BOOK_PROGRESS = "book_progress"
COMPLETED_BOOKS = "completed_books"


def chapter_counts(db: Session, book_ids: List[UUID]) -> Dict[UUID, int]:
    if not book_ids:
        return {}

    rows = db.query(Chapter.book_id, func.count(Chapter.id)).filter(
        Chapter.book_id.in_(book_ids)
    ).group_by(Chapter.book_id).all()
    return {book_id: count for book_id, count in rows}


def book_out(book: Book, chapter_count: int, matched_tags: Optional[List[str]] = None,
             summary: Optional[BookSummary] = None) -> BookOut:
    return BookOut(
        id=book.id,
        title=book.title,
        author=book.author,
        quote=book.quote,
        short_desc=book.short_desc,
        cover_image=book.cover_image,
        tags=list(book.tags or []),
        created_at=book.created_at,
        chapter_count=chapter_count,
        matched_tags=matched_tags or [],
        progress=BookSummaryOut(
            total_chapters=summary.total_chapters,
            completed_chapters=summary.completed_chapters,
            percent=summary.percent
        ) if summary else None
    )


@router.get("", response_model=BookListResponse, response_model_exclude_none=True)
async def list_books(
    type: Optional[str] = Query(None, description="related_books, book_progress or completed_books"),
    search: Optional[str] = None,
    author: Optional[str] = None,
    tag: Optional[str] = Query(None, description="Tag names or ids, JSON list or comma separated"),
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1),
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db)
):
    """
    List books

    - related_books: books sharing tags with the tag query (or the user's
      chosen tags) first, newest first within each group
    - book_progress: started books below 95% ("continue reading")
    - completed_books: started books at or above 95%
    - default: filtered, sorted, paginated listing
    """

    per_page = min(per_page, settings.MAX_PAGE_SIZE)
    filters = BookFilters(search=search, author=author, sort_by=sort_by, sort_order=sort_order)

    if type in (BOOK_PROGRESS, COMPLETED_BOOKS):
        if identity is None:
            raise UnauthorizedError("Authentication required for this request")

        if type == BOOK_PROGRESS:
            rows, total = aggregation_service.list_in_progress(db, identity, filters, page, per_page)
        else:
            rows, total = aggregation_service.list_completed(db, identity, filters, page, per_page)

        items = [book_out(book, summary.total_chapters, summary=summary) for book, summary in rows]
        return BookListResponse(items=items, total=total, per_page=per_page, current_page=page)

    tag_names = []
    if type == RELATED_BOOKS:
        tag_names = tag_service.resolve_tag_query(db, tag)
        if not tag_names and isinstance(identity, UserIdentity):
            tag_names = tag_service.chosen_tag_names(db, identity.user_id)

    query = apply_book_filters(db.query(Book), filters)
    start = (page - 1) * per_page

    if not tag_names:
        total = query.count()
        books = query.offset(start).limit(per_page).all()
        counts = chapter_counts(db, [b.id for b in books])
        items = [book_out(b, counts.get(b.id, 0)) for b in books]
        return BookListResponse(items=items, total=total, per_page=per_page, current_page=page)

    ordered = tag_service.prioritize(query.all(), tag_names)
    page_books = ordered[start:start + per_page]
    counts = chapter_counts(db, [b.id for b in page_books])

    items = [
        book_out(b, counts.get(b.id, 0), matched_tags=tag_service.matched_tags(b, tag_names))
        for b in page_books
    ]

    logger.info(f"Related books listing prioritized by {len(tag_names)} tags")

    return BookListResponse(
        items=items,
        total=len(ordered),
        per_page=per_page,
        current_page=page,
        related_tags=tag_names
    )


@router.get("/{book_id}", response_model=BookDetailResponse)
async def get_book_details(
    book_id: UUID,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db)
):
    """
    Book details with chapters

    When a user token or guest identifier is supplied, each chapter carries
    that identity's progress and the overall book progress is filled in.
    """

    book = db.query(Book).filter(Book.id == book_id).first()
    if not book:
        raise NotFoundError("Book not found")

    chapters = progress_service.get_chapters(db, book.id)
    progress_map = {}
    if identity is not None:
        progress_map = progress_service.progress_by_chapter(db, identity, [c.id for c in chapters])

    book_progress = progress_service.build_book_progress(book.id, chapters, progress_map)

    chapter_details = [
        ChapterDetail(
            id=chapter.id,
            title=chapter.title,
            short_desc=chapter.short_desc,
            duration=chapter.duration,
            duration_display=format_seconds(item.duration_seconds),
            media_path=chapter.media_path,
            media_type=chapter.media_type,
            progress=asdict(item)
        )
        for chapter, item in zip(chapters, book_progress.per_chapter)
    ]

    return BookDetailResponse(
        id=book.id,
        title=book.title,
        author=book.author,
        quote=book.quote,
        short_desc=book.short_desc,
        long_desc=book.long_desc,
        cover_image=book.cover_image,
        tags=list(book.tags or []),
        chapters=chapter_details,
        chapter_count=len(chapter_details),
        overall_progress=asdict(book_progress.overall)
    )
