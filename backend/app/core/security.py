from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from passlib.context import CryptContext

from backend.app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

ALGORITHM = "HS256"

MIN_PASSWORD_LENGTH = 6

# In-memory token deny-list for logout, token -> expiry. Use Redis when
# running several replicas.
_revoked_tokens: dict[str, datetime] = {}


def create_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": subject, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    # Social-only accounts have no hash
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def validate_password_strength(password: str) -> str | None:
    """Return an error message if *password* is unusable, None if valid."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    if len(password.encode("utf-8")) > 72:
        return "Password must be at most 72 bytes long"
    return None


def generate_token() -> str:
    """Random 32-byte hex token for email verification and password reset."""
    return secrets.token_hex(32)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry. Raises ``JWTError`` for a bad token."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])


def revoke_token(token: str, expires_at: datetime) -> None:
    """Add a token to the deny-list until it would have expired anyway."""
    cleanup_expired_tokens()
    _revoked_tokens[token] = expires_at


def is_token_revoked(token: str) -> bool:
    """Check if a token has been revoked."""
    cleanup_expired_tokens()
    return token in _revoked_tokens


def cleanup_expired_tokens(now: datetime | None = None) -> int:
    """Drop deny-list entries whose token has expired.

    Returns the number of tokens removed.
    """
    now = now or datetime.now(timezone.utc)
    expired = [token for token, exp in _revoked_tokens.items() if exp <= now]
    for token in expired:
        del _revoked_tokens[token]
    return len(expired)
