"""Security utilities for JWT session tokens and password hashing."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
import jwt

from tracker.core.config import settings


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


# =============================================================================
# Session Tokens (JWT)
# =============================================================================

def _encode(payload: dict) -> str:
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def create_session_token(
    user_id: UUID,
    church_id: UUID,
    role: str,
    token_version: int,
) -> str:
    """
    Create a short-lived access JWT.

    Always signs with current secret (JWT_SECRET).
    Token carries user identity, church context, and revocation version.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "church_id": str(church_id),
        "role": role,
        "token_version": token_version,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
    }
    return _encode(payload)


def create_refresh_token(user_id: UUID, token_version: int) -> str:
    """Create a long-lived refresh JWT bound to the user's token version."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "token_version": token_version,
        "type": REFRESH_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(days=settings.REFRESH_EXPIRES_DAYS),
    }
    return _encode(payload)


def decode_session_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> dict:
    """
    Decode and verify a JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets or of the wrong type
    """
    last_error: jwt.InvalidTokenError | None = None
    for secret in settings.jwt_secrets:
        try:
            payload = jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
        if payload.get("type") != expected_type:
            raise jwt.InvalidTokenError(f"Expected {expected_type} token")
        return payload
    raise last_error  # type: ignore[misc]


# =============================================================================
# Passwords
# =============================================================================

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
