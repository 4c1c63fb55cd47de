"""Account lifecycle: signup with email verification, login, and the unverified-user sweep."""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.utils import create_token, hash_password, normalize_email, verify_password
from config import settings
from db.models import User
from services.email_service import EmailService
from services.errors import AccessDenied, Conflict, Unauthenticated, ValidationFailed, VerificationExpired
from utils.datetime_utils import utcnow_naive

logger = logging.getLogger(__name__)


def generate_verification_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def generate_verification_token() -> str:
    return secrets.token_urlsafe(32)


def _is_expired(user: User, now: datetime) -> bool:
    # an unverified account without an expiry can never be verified
    return user.verification_expires_at is None or user.verification_expires_at < now


def signup(
    db: Session,
    mailer: EmailService,
    *,
    email: str,
    password: str,
    fullname: str,
    phone: str,
) -> User:
    email = normalize_email(email)
    now = utcnow_naive()

    existing = db.query(User).filter(User.email == email).first()
    if existing:
        if existing.verified or not _is_expired(existing, now):
            raise Conflict("Email already registered")
        logger.info("Replacing expired unverified account %s", existing.id)
        db.delete(existing)
        db.flush()

    code = generate_verification_code()
    token = generate_verification_token()
    user = User(
        email=email,
        password_hash=hash_password(password),
        fullname=fullname.strip(),
        phone=phone.strip(),
        role="user",
        verified=False,
        verification_code=code,
        verification_token=token,
        verification_expires_at=now + timedelta(minutes=settings.VERIFICATION_TTL_MINUTES),
    )
    db.add(user)
    db.flush()

    if not mailer.send_verification_email(email, code, token):
        logger.warning("Verification email for user %s was not delivered", user.id)
    return user


def login(db: Session, *, email: str, password: str) -> tuple[User, str]:
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if not user or not verify_password(password, user.password_hash):
        raise Unauthenticated("Invalid email or password")
    if not user.verified:
        raise AccessDenied("Email not verified. Please verify your email before logging in.")
    return user, create_token(user.id, user.email, user.role)


def _user_for_code(db: Session, code: str, email: str | None) -> User | None:
    """Codes are only six digits, so without an email the match must be unique among live signups."""
    query = db.query(User).filter(User.verification_code == code, User.verified.is_(False))
    if email:
        return query.filter(User.email == normalize_email(email)).first()

    candidates = query.all()
    if len(candidates) > 1:
        now = utcnow_naive()
        candidates = [u for u in candidates if not _is_expired(u, now)] or candidates[:1]
    if len(candidates) > 1:
        raise ValidationFailed("Verification code matches more than one account; include the email")
    return candidates[0] if candidates else None


def verify(
    db: Session,
    *,
    code: str | None = None,
    token: str | None = None,
    email: str | None = None,
) -> tuple[User, str | None]:
    """Returns the user and a fresh JWT; the token is None when the account was already verified."""
    if token:
        user = db.query(User).filter(User.verification_token == token).first()
    elif code:
        user = _user_for_code(db, code, email)
    else:
        raise ValidationFailed("Either code or token is required")

    if not user:
        raise ValidationFailed("Invalid verification code or token")
    if user.verified:
        return user, None

    if _is_expired(user, utcnow_naive()):
        logger.info("Verification for user %s expired, removing account", user.id)
        db.delete(user)
        db.flush()
        raise VerificationExpired(details={"reason": "verification_expired"})

    user.verified = True
    user.verification_code = None
    user.verification_token = None
    user.verification_expires_at = None
    db.flush()
    return user, create_token(user.id, user.email, user.role)


def cleanup_unverified(db: Session, now: datetime | None = None) -> int:
    now = now or utcnow_naive()
    deleted = (
        db.query(User)
        .filter(
            User.verified.is_(False),
            or_(User.verification_expires_at.is_(None), User.verification_expires_at < now),
        )
        .delete(synchronize_session=False)
    )
    if deleted:
        logger.info("Removed %d expired unverified account(s)", deleted)
    return deleted
