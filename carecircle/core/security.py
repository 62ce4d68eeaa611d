"""Security utilities for session tokens and requester fingerprint hashing."""

import hashlib
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from carecircle.core.config import settings


# =============================================================================
# Session Token (JWT)
# =============================================================================

def create_session_token(user_id: UUID) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


# =============================================================================
# Requester metadata
# =============================================================================

def hash_value(value: str | None) -> str | None:
    """SHA-256 hex digest of a requester attribute. Raw values are never stored."""
    if not value:
        return None
    return hashlib.sha256(value.encode()).hexdigest()
