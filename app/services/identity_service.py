"""
Identity resolution for progress and personalization requests

Every request acts either as a registered user (bearer token) or as an
anonymous guest carrying an opaque identifier.
"""
import logging
import re
import secrets
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.exceptions import InvalidArgumentError, UnauthorizedError
from app.models import User
from app.utils.security import decode_access_token

logger = logging.getLogger(__name__)

GUEST_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")
GUEST_QUERY_PARAMS = ("guest_identifier", "guestIdentifier")


@dataclass(frozen=True)
class UserIdentity:
    user_id: UUID
    kind = "user"

    def owns(self, model):
        """Filter clause selecting rows owned by this user"""
        return model.user_id == self.user_id

    def to_dict(self):
        return {"kind": self.kind, "user_id": str(self.user_id)}


@dataclass(frozen=True)
class GuestIdentity:
    guest_identifier: str
    kind = "guest"

    def owns(self, model):
        """Filter clause selecting rows still owned by this guest (not yet merged)"""
        return (model.guest_identifier == self.guest_identifier) & (model.user_id.is_(None))

    def to_dict(self):
        return {"kind": self.kind, "guest_identifier": self.guest_identifier}


Identity = Union[UserIdentity, GuestIdentity]


@dataclass(frozen=True)
class ResolvedIdentity:
    """Outcome of resolution; generated is True when a new guest id was minted"""
    identity: Optional[Identity]
    generated: bool = False


class IdentityResolver:
    """
    Resolves a request to a user or guest identity

    Order: valid bearer token for an active account, explicit guest field,
    guest header, guest query parameter. Writes may mint a new guest id;
    reads without any identity are rejected by require().
    """

    GUEST_ID_BYTES = 16  # 128 bits of entropy

    def resolve_user(self, db: Session, authorization: Optional[str]) -> Optional[UserIdentity]:
        """
        Resolve a bearer token to an active user

        Never raises: a missing, invalid or expired token, or an unknown or
        deactivated account, all yield None.
        """
        if not authorization or not authorization.startswith("Bearer "):
            return None

        token = authorization[len("Bearer "):].strip()
        if not token:
            return None

        claims = decode_access_token(token)
        if not claims or not claims.get("sub"):
            return None

        try:
            user_id = UUID(str(claims["sub"]))
        except ValueError:
            return None

        user = db.query(User).filter(User.id == user_id).first()
        if not user or not user.status:
            logger.info(f"Bearer token for unknown or inactive user {user_id}")
            return None

        return UserIdentity(user_id=user.id)

    def normalize_guest_identifier(self, raw: Optional[str]) -> Optional[str]:
        """Validate a caller supplied guest identifier; None when absent"""
        if raw is None:
            return None

        value = str(raw).strip()
        if not value:
            return None

        if not GUEST_IDENTIFIER_PATTERN.match(value):
            raise InvalidArgumentError("Malformed guest identifier")

        return value

    def generate_guest_identifier(self) -> str:
        return secrets.token_hex(self.GUEST_ID_BYTES)

    def find_guest_identifier(self, request: Request, explicit: Optional[str] = None) -> Optional[str]:
        """Look for a guest identifier in the body field, header, then query string"""
        candidates = [explicit, request.headers.get(settings.GUEST_IDENTIFIER_HEADER)]
        candidates.extend(request.query_params.get(name) for name in GUEST_QUERY_PARAMS)

        for candidate in candidates:
            guest_identifier = self.normalize_guest_identifier(candidate)
            if guest_identifier:
                return guest_identifier
        return None

    def resolve(
        self,
        db: Session,
        request: Request,
        explicit_guest: Optional[str] = None,
        generate: bool = False
    ) -> ResolvedIdentity:
        """
        Resolve the identity for a request

        Args:
            db: Database session
            request: Incoming request (Authorization header, guest header/query)
            explicit_guest: Guest identifier from the request body, if any
            generate: Mint a new guest identifier when nothing else resolves

        Returns:
            ResolvedIdentity; identity is None only when generate is False
        """
        user = self.resolve_user(db, request.headers.get("Authorization"))
        if user:
            return ResolvedIdentity(identity=user)

        guest_identifier = self.find_guest_identifier(request, explicit_guest)
        if guest_identifier:
            return ResolvedIdentity(identity=GuestIdentity(guest_identifier))

        if generate:
            guest_identifier = self.generate_guest_identifier()
            logger.info("Generated new guest identifier")
            return ResolvedIdentity(identity=GuestIdentity(guest_identifier), generated=True)

        return ResolvedIdentity(identity=None)

    def require(self, resolved: ResolvedIdentity) -> Identity:
        if resolved.identity is None:
            raise UnauthorizedError(
                "Authentication or a guest identifier is required for this request"
            )
        return resolved.identity


# Global instance
identity_resolver = IdentityResolver()


def get_optional_identity(request: Request, db: Session = Depends(get_db)) -> Optional[Identity]:
    """Dependency: user or guest identity if one was supplied, else None"""
    return identity_resolver.resolve(db, request).identity


def get_read_identity(request: Request, db: Session = Depends(get_db)) -> Identity:
    """Dependency: identity required for reads; 401 when none is supplied"""
    return identity_resolver.require(identity_resolver.resolve(db, request))


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Dependency: authenticated, active user; guests are rejected"""
    identity = identity_resolver.resolve_user(db, request.headers.get("Authorization"))
    if identity is None:
        raise UnauthorizedError("Authentication required")
    return db.query(User).filter(User.id == identity.user_id).one()
