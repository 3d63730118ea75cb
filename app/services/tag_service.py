"""
Tag personalization service
Derives tags from questionnaire answers and reorders listings by tag matches
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import Question, Response, Tag, User

logger = logging.getLogger(__name__)

UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def slugify(name: str) -> str:
    return "-".join(name.lower().split())


def _recency_key(item: Any) -> datetime:
    """Sort key on created_at; naive and aware timestamps compare as UTC"""
    created_at = getattr(item, "created_at", None)
    if created_at is None:
        return datetime.min
    if created_at.tzinfo is not None:
        return created_at.astimezone(timezone.utc).replace(tzinfo=None)
    return created_at


class TagService:
    """
    Service for tag extraction and tag-based ordering

    Answer matching: each submitted value is compared against the question's
    options by id, then value, then text (exact, case-sensitive); the first
    hit wins and contributes that option's tag names.
    """

    def find_tag(self, db: Session, name: str) -> Optional[Tag]:
        return db.query(Tag).filter(Tag.name == name).first()

    def get_or_create_tag(self, db: Session, name: str) -> Tag:
        """
        Fetch a tag by name, creating it if absent

        Insert-if-absent is a single statement where the dialect supports it,
        so two concurrent first uses both resolve to the same row. Elsewhere
        the insert runs in a savepoint and a unique violation means the other
        writer won.
        """
        name = name.strip()

        tag = self.find_tag(db, name)
        if tag:
            return tag

        insert = UPSERT_DIALECTS.get(db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(Tag.__table__).values(
                id=uuid.uuid4(),
                name=name,
                slug=slugify(name)
            ).on_conflict_do_nothing(index_elements=["name"])
            db.execute(stmt)
        else:
            try:
                with db.begin_nested():
                    db.add(Tag(name=name, slug=slugify(name)))
            except IntegrityError:
                logger.info(f"Tag '{name}' created concurrently, reusing it")

        return db.query(Tag).filter(Tag.name == name).one()

    def match_options(self, question: Question, values: Iterable[Any]) -> List[Dict[str, Any]]:
        """
        Resolve submitted values to option dicts

        Args:
            question: Question whose options are searched
            values: Submitted option ids, values or texts

        Returns:
            Matched options (one per value that matched)
        """
        options = [o for o in (question.options or []) if isinstance(o, dict)]
        matched = []

        for raw in values:
            if raw is None:
                continue
            value = str(raw)
            for key in ("id", "value", "text"):
                option = next(
                    (o for o in options if o.get(key) is not None and str(o.get(key)) == value),
                    None
                )
                if option is not None:
                    matched.append(option)
                    break

        return matched

    def extract_tag_names(self, db: Session, responses: Sequence[Response]) -> Set[str]:
        """Union of trimmed, non-empty tag names attached to the options chosen in the responses"""
        question_ids = set()
        for response in responses:
            for answer in response.answers or []:
                question_id = _parse_uuid(answer.get("question_id"))
                if question_id:
                    question_ids.add(question_id)

        if not question_ids:
            return set()

        questions = {
            q.id: q for q in db.query(Question).filter(Question.id.in_(question_ids)).all()
        }

        names = set()
        for response in responses:
            for answer in response.answers or []:
                question = questions.get(_parse_uuid(answer.get("question_id")))
                if question is None:
                    continue

                values = answer.get("values") or []
                if not isinstance(values, list):
                    values = [values]

                for option in self.match_options(question, values):
                    for tag_name in option.get("tags") or []:
                        tag_name = str(tag_name).strip()
                        if tag_name:
                            names.add(tag_name)

        return names

    def extract_tags(self, db: Session, responses: Sequence[Response]) -> Set[UUID]:
        """
        Tag ids for every tag name reachable from the responses' chosen options

        Returns:
            Set of Tag ids (order independent)
        """
        names = self.extract_tag_names(db, responses)
        # sorted so tag creation order does not depend on answer order
        return {self.get_or_create_tag(db, name).id for name in sorted(names)}

    def append_chosen_tags(self, db: Session, user: User, tag_ids: Iterable[UUID]) -> List[str]:
        """
        Union tag ids into user.chosen_tags, skipping ids already present

        Returns:
            The ids that were newly added
        """
        current = list(user.chosen_tags or [])
        existing = set(current)
        added = [str(tag_id) for tag_id in sorted(tag_ids, key=str) if str(tag_id) not in existing]

        if added:
            # reassign so the JSON column is flagged dirty
            user.chosen_tags = current + added
            logger.info(f"Added {len(added)} chosen tags to user {user.id}")

        return added

    def tag_names_for_ids(self, db: Session, tag_ids: Iterable[Any]) -> List[str]:
        ids = [tid for tid in (_parse_uuid(t) for t in tag_ids) if tid]
        if not ids:
            return []

        tags = db.query(Tag).filter(Tag.id.in_(ids)).all()
        return [t.name.strip() for t in tags if t.name and t.name.strip()]

    def chosen_tag_names(self, db: Session, user_id: Optional[UUID]) -> List[str]:
        """Tag names for a user's chosen_tags; empty for guests and unknown users"""
        if user_id is None:
            return []

        user = db.query(User).filter(User.id == user_id).first()
        if not user or not user.chosen_tags:
            return []

        return self.tag_names_for_ids(db, user.chosen_tags)

    def resolve_tag_query(self, db: Session, raw: Optional[str]) -> List[str]:
        """
        Parse a tag query parameter into unique tag names

        Accepts a JSON list or a comma-separated string; entries that look
        like tag ids are resolved to their names.
        """
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = raw

        if isinstance(parsed, list):
            entries = [str(p).strip() for p in parsed]
        else:
            entries = [p.strip() for p in str(parsed).split(",")]

        ids = [e for e in entries if _parse_uuid(e)]
        names = [e for e in entries if e and not _parse_uuid(e)]
        names.extend(self.tag_names_for_ids(db, ids))

        return list(dict.fromkeys(names))

    def matched_tags(self, item: Any, match_tag_names: Sequence[str],
                     case_insensitive: bool = False) -> List[str]:
        """Tags of the item that appear in match_tag_names"""
        tags = [str(t) for t in (getattr(item, "tags", None) or [])]
        if case_insensitive:
            wanted = {n.lower() for n in match_tag_names}
            return [t for t in tags if t.lower() in wanted]

        wanted = set(match_tag_names)
        return [t for t in tags if t in wanted]

    def prioritize(self, items: Sequence[Any], match_tag_names: Sequence[str],
                   case_insensitive: bool = False) -> List[Any]:
        """
        Order items with tag matches first

        Matched items by recency (created_at desc), then the others by recency.
        Ties keep the original order. With no tag names the result is simply
        the recency ordering.

        Args:
            items: Objects exposing tags and created_at (books, reels)
            match_tag_names: Names to match against item tags
            case_insensitive: Compare names ignoring case (reels)

        Returns:
            New ordered list
        """
        if not match_tag_names:
            return sorted(items, key=_recency_key, reverse=True)

        matched, others = [], []
        for item in items:
            if self.matched_tags(item, match_tag_names, case_insensitive):
                matched.append(item)
            else:
                others.append(item)

        return (
            sorted(matched, key=_recency_key, reverse=True)
            + sorted(others, key=_recency_key, reverse=True)
        )


def _parse_uuid(value: Any) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


# Global instance
tag_service = TagService()
