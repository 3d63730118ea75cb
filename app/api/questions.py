"""
Questionnaire API endpoints
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
import logging

from app.database import get_db
from app.exceptions import InvalidArgumentError
from app.models import Question, Response, User
from app.schemas.question import (
    QuestionOut, OptionOut, UserAnswer, ResponseSubmission, ResponseSubmitted, ResponseOut
)
from app.services.identity_service import (
    Identity, UserIdentity, GuestIdentity, get_optional_identity, get_read_identity, identity_resolver
)
from app.services.tag_service import tag_service

router = APIRouter(prefix="/api/questions", tags=["questions"])
logger = logging.getLogger(__name__)

RECENT_RESPONSES_LIMIT = 500


def latest_answers(db: Session, identity: Identity) -> Dict[str, UserAnswer]:
    """Most recent answer per question id for this identity"""
    responses = db.query(Response).filter(
        identity.owns(Response)
    ).order_by(Response.created_at.desc()).limit(RECENT_RESPONSES_LIMIT).all()

    answered = {}
    for response in responses:
        for answer in response.answers or []:
            question_id = str(answer.get("question_id"))
            if question_id in answered:
                continue
            values = answer.get("values") or []
            answered[question_id] = UserAnswer(
                values=[str(v) for v in (values if isinstance(values, list) else [values])],
                text=answer.get("text") or "",
                responded_at=response.created_at,
                response_id=response.id
            )
    return answered


@router.get("/list", response_model=List[QuestionOut])
async def list_questions(
    section: Optional[str] = None,
    search: Optional[str] = None,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db)
):
    """
    Active questions ordered for display

    When a user token or guest identifier is supplied each question carries
    the requester's latest answer.
    """

    query = db.query(Question).filter(Question.active.is_(True))
    if section:
        query = query.filter(Question.section == section)
    if search:
        query = query.filter(Question.title.ilike(f"%{search}%"))

    questions = query.order_by(Question.order.asc(), Question.created_at.asc()).all()
    answered = latest_answers(db, identity) if identity is not None else {}

    items = []
    for question in questions:
        options = sorted(
            (o for o in question.options or [] if isinstance(o, dict)),
            key=lambda o: o.get("order") or 0
        )
        items.append(QuestionOut(
            id=question.id,
            title=question.title,
            type=question.type,
            required=bool(question.required),
            section=question.section or "",
            order=question.order or 0,
            options=[
                OptionOut(
                    id=str(o["id"]) if o.get("id") is not None else None,
                    text=str(o.get("text") or ""),
                    value=str(o.get("value") or ""),
                    order=o.get("order") or 0,
                    tags=[str(t) for t in o.get("tags") or []]
                )
                for o in options
            ],
            user_answer=answered.get(str(question.id))
        ))

    return items


@router.post("/submit", response_model=ResponseSubmitted, response_model_exclude_none=True, status_code=201)
async def submit_response(
    submission: ResponseSubmission,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Store a questionnaire submission

    - Users: tags of the chosen options are added to their chosen tags
    - Guests: stored under the guest identifier (generated when missing)
      and adopted by the account on registration
    """

    resolved = identity_resolver.resolve(
        db, request, explicit_guest=submission.guest_identifier, generate=True
    )
    identity = resolved.identity

    question_ids = {a.question_id for a in submission.answers}
    known = {q_id for (q_id,) in db.query(Question.id).filter(Question.id.in_(question_ids)).all()}
    missing = question_ids - known
    if missing:
        raise InvalidArgumentError(f"Unknown question ids: {', '.join(sorted(str(m) for m in missing))}")

    meta = dict(submission.meta)
    response = Response(
        answers=[
            {"question_id": str(a.question_id), "values": list(a.values), "text": a.text}
            for a in submission.answers
        ]
    )

    if isinstance(identity, UserIdentity):
        response.user_id = identity.user_id
    elif isinstance(identity, GuestIdentity):
        response.guest_identifier = identity.guest_identifier
        meta["userIdentifier"] = identity.guest_identifier
    response.meta = meta

    db.add(response)

    tags_added = []
    if isinstance(identity, UserIdentity):
        user = db.query(User).filter(User.id == identity.user_id).one()
        tag_ids = tag_service.extract_tags(db, [response])
        tags_added = tag_service.append_chosen_tags(db, user, tag_ids)

    db.commit()
    db.refresh(response)

    logger.info(f"Response stored: {response.id} ({identity.kind}), new tags: {len(tags_added)}")

    return ResponseSubmitted(
        response_id=response.id,
        tags_added=tags_added,
        guest_identifier=identity.guest_identifier if resolved.generated else None
    )


@router.get("/me", response_model=List[ResponseOut])
async def my_responses(
    identity: Identity = Depends(get_read_identity),
    db: Session = Depends(get_db)
):
    """Submissions of the signed-in user or guest, newest first"""

    responses = db.query(Response).filter(
        identity.owns(Response)
    ).order_by(Response.created_at.desc()).limit(RECENT_RESPONSES_LIMIT).all()

    return [ResponseOut.model_validate(r) for r in responses]
