"""
Chapter progress API endpoints
"""
from dataclasses import asdict
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from app.config import settings
from app.database import get_db
from app.models import ChapterProgress
from app.schemas.progress import (
    ProgressRecordRequest, ProgressRecordResponse, ProgressOut,
    BookProgressResponse
)
from app.services.identity_service import Identity, get_read_identity, identity_resolver
from app.services.progress_service import progress_service

router = APIRouter(prefix="/api/progress", tags=["progress"])
logger = logging.getLogger(__name__)


def progress_out(progress: ChapterProgress) -> ProgressOut:
    if progress.user_id is not None:
        identity = {"kind": "user", "user_id": str(progress.user_id)}
    else:
        identity = {"kind": "guest", "guest_identifier": progress.guest_identifier}

    return ProgressOut(
        id=progress.id,
        identity=identity,
        book_id=progress.book_id,
        chapter_id=progress.chapter_id,
        played_seconds=progress.played_seconds,
        duration_seconds=progress.duration_seconds,
        percent=progress.percent,
        completed=progress.completed,
        updated_at=progress.updated_at
    )


@router.post("", response_model=ProgressRecordResponse, response_model_exclude_none=True)
async def record_progress(
    payload: ProgressRecordRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Record the current playhead for a chapter

    - Authenticated users record against their account
    - Guests send a guest identifier (body, header or query); one is
      generated and returned when missing
    - Completed at >= 95% or within one second of the end
    """

    resolved = identity_resolver.resolve(
        db, request, explicit_guest=payload.guest_identifier, generate=True
    )

    progress = progress_service.record_progress(
        db,
        resolved.identity,
        book_id=payload.book_id,
        chapter_id=payload.chapter_id,
        played_seconds=payload.played_seconds,
        duration_override=payload.duration_seconds
    )

    guest_identifier = None
    if resolved.generated:
        guest_identifier = resolved.identity.guest_identifier
        response.headers[settings.GUEST_IDENTIFIER_HEADER] = guest_identifier

    return ProgressRecordResponse(progress=progress_out(progress), guest_identifier=guest_identifier)


@router.get("/book/{book_id}", response_model=BookProgressResponse)
async def get_book_progress(
    book_id: UUID,
    identity: Identity = Depends(get_read_identity),
    db: Session = Depends(get_db)
):
    """
    Per-chapter progress and overall summary of a book

    Overall percent averages over every chapter, unstarted ones count as 0.
    """

    book_progress = progress_service.get_book_progress(db, identity, book_id)
    return BookProgressResponse(**asdict(book_progress))
