import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from config import settings
from db.database import get_db
from db.models import User
from services.errors import AccessDenied, Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: int
    email: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == "admin"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False


def create_token(user_id: int, email: str, role: str = "user", expiry_hours: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role or "user",
        "exp": now + timedelta(hours=expiry_hours if expiry_hours is not None else settings.JWT_EXPIRY_HOURS),
        "iat": now,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired token")
        return None
    except jwt.InvalidTokenError:
        return None


def identity_from_token(token: str | None) -> AuthenticatedUser | None:
    if not token:
        return None
    payload = decode_token(token)
    if not payload:
        return None
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    email = payload.get("email")
    if not isinstance(email, str) or not email:
        return None
    return AuthenticatedUser(user_id=user_id, email=email, role=str(payload.get("role") or "user"))


def resolve_identity(authorization: str | None) -> AuthenticatedUser | None:
    """Signature and expiry check on a raw Authorization header value; no database read."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return identity_from_token(authorization[len("Bearer "):].strip())


def get_identity(request: Request) -> AuthenticatedUser:
    identity = resolve_identity(request.headers.get("Authorization"))
    if identity is None:
        raise Unauthenticated()
    request.state.user_id = identity.user_id
    return identity


def get_current_user(
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, identity.user_id)
    if not user:
        raise Unauthenticated("User not found")
    return user


def resolve_target_user(
    identity: AuthenticatedUser,
    requested_user_id: int | None,
    allow_override: bool = False,
) -> int:
    """User id a request may act on; only admins on override-enabled endpoints may pick another user."""
    if requested_user_id is None or int(requested_user_id) == identity.user_id:
        return identity.user_id
    if allow_override and identity.is_admin:
        logger.info("Admin %s acting on behalf of user %s", identity.user_id, requested_user_id)
        return int(requested_user_id)
    raise AccessDenied("Cannot act on behalf of another user")
