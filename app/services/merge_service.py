"""
Guest-to-user merge
Re-attaches anonymous activity to an account created by the same visitor
"""
import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import TransientStoreError
from app.models import ChapterProgress, Response, User
from app.services.identity_service import GuestIdentity
from app.services.tag_service import tag_service

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    responses_moved: int = 0
    progress_moved: int = 0
    tags_added: List[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not (self.responses_moved or self.progress_moved or self.tags_added)


class MergeService:
    """
    Service for transferring guest-owned rows to a newly registered user

    Steps:
    1. Find unowned responses and progress rows carrying the guest identifier
    2. Set user_id on them; the guest identifier stays as provenance
    3. Extract tags from the moved responses into user.chosen_tags

    Rows already owned by a user are never touched, so running it twice is a no-op.
    """

    def merge_guest_history(self, db: Session, user: User, guest_identifier: str,
                            commit: bool = True) -> MergeResult:
        """
        Move guest history to the user

        Args:
            db: Database session
            user: Newly registered user
            guest_identifier: Identifier the visitor used before registering
            commit: False when the caller owns the transaction (registration);
                changes are then only flushed

        Returns:
            MergeResult with counts; all zero when nothing was found
        """
        guest = GuestIdentity(guest_identifier)
        result = MergeResult()

        try:
            responses = db.query(Response).filter(guest.owns(Response)).all()
            progresses = db.query(ChapterProgress).filter(guest.owns(ChapterProgress)).all()

            if not responses and not progresses:
                logger.info(f"No guest history to merge for user {user.id}")
                return result

            for response in responses:
                response.user_id = user.id
            for progress in progresses:
                progress.user_id = user.id

            if responses:
                tag_ids = tag_service.extract_tags(db, responses)
                result.tags_added = tag_service.append_chosen_tags(db, user, tag_ids)

            if commit:
                db.commit()
            else:
                db.flush()

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to merge guest history into user {user.id}: {str(e)}")
            raise TransientStoreError("Guest history could not be merged") from e

        result.responses_moved = len(responses)
        result.progress_moved = len(progresses)

        logger.info(
            f"Merged guest history into user {user.id}: "
            f"responses={result.responses_moved}, progress={result.progress_moved}, "
            f"new_tags={len(result.tags_added)}"
        )

        return result


# Global instance
merge_service = MergeService()
