"""
Account service: registration, login and password reset
"""
import logging
import secrets
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import ConflictError, InvalidArgumentError, TransientStoreError, UnauthorizedError
from app.models import User
from app.services.merge_service import MergeResult, merge_service
from app.utils.cache import cache_service
from app.utils.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """Service for account lifecycle; registration triggers the guest merge"""

    OTP_DIGITS = 6

    def register(
        self,
        db: Session,
        full_name: str,
        email: str,
        phone: str,
        password: str,
        guest_identifier: Optional[str] = None
    ) -> Tuple[User, Optional[MergeResult]]:
        """
        Create an account and adopt the visitor's guest history

        Returns:
            Tuple of (user, merge result or None when no guest id was supplied)
        """
        email = email.strip().lower()

        existing = db.query(User).filter(User.email == email).first()
        if existing:
            raise ConflictError("Email already registered")

        user = User(
            full_name=full_name.strip(),
            email=email,
            phone=phone,
            password_hash=hash_password(password),
            chosen_tags=[]
        )
        db.add(user)

        # Account and adopted guest history commit together
        merge_result = None
        try:
            db.flush()
            if guest_identifier:
                merge_result = merge_service.merge_guest_history(
                    db, user, guest_identifier, commit=False
                )
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ConflictError("Email already registered") from e
        except TransientStoreError:
            db.rollback()
            raise
        db.refresh(user)

        logger.info(f"User registered: {user.id}")

        return user, merge_result

    def login(self, db: Session, email: str, password: str) -> Tuple[User, str]:
        """Verify credentials and issue a bearer token"""
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not verify_password(password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")

        if not user.status:
            raise UnauthorizedError("Your account has been deactivated. Please contact our support team.")

        token = create_access_token(str(user.id), extra={"email": user.email})
        logger.info(f"User logged in: {user.id}")
        return user, token

    def update_profile(
        self,
        db: Session,
        user: User,
        phone: str,
        full_name: Optional[str] = None,
        profile_pic: Optional[str] = None
    ) -> User:
        """Update contact details; None leaves the name or picture unchanged"""
        user.phone = phone
        if full_name is not None:
            user.full_name = full_name.strip()
        if profile_pic is not None:
            user.profile_pic = profile_pic

        db.commit()
        db.refresh(user)

        logger.info(f"Profile updated for user {user.id}")
        return user

    def issue_reset_otp(self, db: Session, email: str) -> bool:
        """
        Store a numeric OTP for a password reset

        The OTP only lives in the cache under otp_key(email) until it expires
        or is used; sending it to the user happens outside this service.

        Returns:
            True when an OTP was stored, False when the email is unknown
        """
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            logger.info("Password reset requested for unknown email")
            return False

        otp = "".join(secrets.choice("0123456789") for _ in range(self.OTP_DIGITS))
        if not cache_service.set(cache_service.otp_key(user.email), otp):
            raise TransientStoreError("Password reset is temporarily unavailable")

        logger.info(f"Password reset OTP issued for user {user.id}")
        return True

    def reset_password(self, db: Session, email: str, otp: str, new_password: str) -> User:
        """Check the OTP, set the new password and consume the OTP"""
        key = cache_service.otp_key(email)
        stored = cache_service.get(key)
        if stored is None or str(stored) != str(otp).strip():
            raise InvalidArgumentError("Invalid or expired OTP")

        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            raise InvalidArgumentError("Invalid or expired OTP")

        user.password_hash = hash_password(new_password)
        db.commit()
        cache_service.delete(key)

        logger.info(f"Password reset for user {user.id}")
        return user


# Global instance
auth_service = AuthService()
