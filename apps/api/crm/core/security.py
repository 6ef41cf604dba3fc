"""Password hashing and access-token helpers."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Return a bcrypt hash for the password."""

    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against its stored hash."""

    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(user_id: str, role: str, *, expires_delta: timedelta | None = None) -> str:
    """Issue a signed token whose subject is the user id."""

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expires_minutes))
    claims = {"sub": user_id, "role": role, "iat": now, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return the token claims, or None when the token is invalid or expired."""

    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.info("Rejected access token: %s", exc)
        return None
