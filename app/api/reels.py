"""
Reel listing API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging
import math

from app.config import settings
from app.database import get_db
from app.models import Reel
from app.schemas.reel import ReelOut, ReelListResponse
from app.services.identity_service import Identity, UserIdentity, get_optional_identity
from app.services.tag_service import tag_service

router = APIRouter(prefix="/api/reels", tags=["reels"])
logger = logging.getLogger(__name__)


@router.get("", response_model=ReelListResponse)
async def list_reels(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db)
):
    """
    Active reels, personalized by tag

    - Signed-in users with chosen tags: reels carrying any of those tag
      names (case-insensitive) come first
    - Everyone else: reels tagged with the default priority tags ("Reels")
    - Newest first within each group; the combined list is paginated
    """

    limit = min(limit, settings.MAX_PAGE_SIZE)

    priority_tags = []
    if isinstance(identity, UserIdentity):
        priority_tags = tag_service.chosen_tag_names(db, identity.user_id)
    if not priority_tags:
        priority_tags = list(settings.DEFAULT_REEL_TAGS)

    reels = db.query(Reel).filter(Reel.active.is_(True)).all()
    ordered = tag_service.prioritize(reels, priority_tags, case_insensitive=True)

    total = len(ordered)
    start = (page - 1) * limit
    page_items = ordered[start:start + limit]

    return ReelListResponse(
        items=[ReelOut.model_validate(r) for r in page_items],
        total=total,
        page=page,
        per_page=limit,
        total_pages=max(1, math.ceil(total / limit)),
        priority_tags=priority_tags
    )
