"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate, MembershipAccess
from carecircle.core.config import settings
from carecircle.core.security import decode_session_token
from carecircle.db.session import SessionLocal


COOKIE_NAME = "carecircle_session"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(request: Request) -> UUID:
    """
    Resolve the caller from a Bearer token or the session cookie.

    Raises:
        HTTPException 401: Authentication failed
    """
    token = None
    auth_header = request.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
    if not token:
        token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
        return UUID(payload["sub"])
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")


def get_access(db: Session = Depends(get_db)) -> AccessPredicate:
    """Access predicate bound to the request's session."""
    return MembershipAccess(db)


def verify_internal_secret(x_internal_secret: str = Header(...)) -> None:
    """Verify the internal secret header."""
    if not settings.INTERNAL_SECRET:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != settings.INTERNAL_SECRET:
        raise HTTPException(status_code=403, detail="Invalid internal secret")
