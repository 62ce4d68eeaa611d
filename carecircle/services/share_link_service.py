"""
Share link service - capability tokens for login-free access to one object.

Security:
- Tokens come from ``secrets.token_urlsafe`` (URL-safe, unpadded)
- Tokens are never logged or written to audit metadata
- Requester IP and user agent are stored as SHA-256 hashes only

A link is usable iff now < expires_at, revoked_at IS NULL and the access
limit (if any) has not been reached. Resolution increments the access count
with one conditional UPDATE that re-checks all three conditions, so two
concurrent resolutions can never push access_count past max_access_count.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import delete, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate, require_member
from carecircle.core.config import settings
from carecircle.core.errors import (
    AccessLimitReachedError,
    ConflictError,
    ExpiredError,
    InvalidArgumentError,
    NotFoundError,
    RevokedError,
)
from carecircle.db.enums import AuditEventType, AuditObjectType, ShareObjectType
from carecircle.db.models import ShareLink, ShareLinkAccessLog
from carecircle.services import audit_service
from carecircle.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)

MIN_TOKEN_BYTES = 18
ISSUE_ATTEMPTS = 2


@dataclass
class RequestMeta:
    """Requester fingerprint, already hashed."""

    ip_hash: str | None = None
    user_agent_hash: str | None = None


@dataclass
class ResolvedLink:
    link_id: UUID
    object_type: str
    object_id: UUID
    circle_id: UUID


def generate_token(nbytes: int | None = None) -> str:
    """Opaque URL-safe token with at least MIN_TOKEN_BYTES of entropy."""
    return secrets.token_urlsafe(max(nbytes or settings.SHARE_LINK_TOKEN_BYTES, MIN_TOKEN_BYTES))


def _resolve_ttl(ttl: timedelta | None) -> timedelta:
    if ttl is None:
        return timedelta(hours=settings.SHARE_LINK_DEFAULT_TTL_HOURS)
    if ttl <= timedelta(0):
        raise InvalidArgumentError("ttl must be positive")
    if ttl > timedelta(hours=settings.SHARE_LINK_MAX_TTL_HOURS):
        raise InvalidArgumentError(
            f"ttl exceeds maximum of {settings.SHARE_LINK_MAX_TTL_HOURS} hours"
        )
    return ttl


# =============================================================================
# Issue / revoke
# =============================================================================


def issue_link(
    db: Session,
    access: AccessPredicate,
    circle_id: UUID,
    actor_id: UUID,
    object_type: ShareObjectType | str,
    object_id: UUID,
    ttl: timedelta | None = None,
    max_access_count: int | None = None,
) -> ShareLink:
    """
    Issue a share link for one object.

    A token collision on the unique constraint is retried once with fresh
    randomness, then surfaces as ConflictError.
    """
    require_member(access, circle_id, actor_id)
    try:
        object_type = ShareObjectType(object_type)
    except ValueError:
        raise InvalidArgumentError(f"Invalid share object type: {object_type}")
    if max_access_count is not None and max_access_count < 1:
        raise InvalidArgumentError("max_access_count must be at least 1")
    expires_at = utcnow() + _resolve_ttl(ttl)

    for attempt in range(1, ISSUE_ATTEMPTS + 1):
        link = ShareLink(
            circle_id=circle_id,
            object_type=object_type.value,
            object_id=object_id,
            token=generate_token(),
            expires_at=expires_at,
            max_access_count=max_access_count,
            access_count=0,
            created_by=actor_id,
        )
        try:
            with db.begin_nested():
                db.add(link)
                db.flush()
        except IntegrityError:
            logger.warning("Share link token collision (attempt %s)", attempt)
            continue

        audit_service.record(
            db,
            circle_id=circle_id,
            actor_user_id=actor_id,
            event_type=AuditEventType.SHARE_LINK_CREATED,
            object_type=AuditObjectType.SHARE_LINK,
            object_id=link.id,
            metadata={
                "object_type": link.object_type,
                "object_id": link.object_id,
                "expires_at": expires_at,
                "max_access_count": max_access_count,
            },
        )
        return link

    raise ConflictError("Could not allocate a unique share token, please retry")


def revoke_link(
    db: Session,
    access: AccessPredicate,
    link_id: UUID,
    actor_id: UUID,
) -> ShareLink:
    """Revoke a link. Revoking twice keeps the first revoked_at."""
    link = (
        db.query(ShareLink)
        .filter(ShareLink.id == link_id)
        .with_for_update()
        .first()
    )
    if not link:
        raise NotFoundError("Share link not found")
    require_member(access, link.circle_id, actor_id)

    if link.revoked_at is not None:
        return link

    link.revoked_at = utcnow()
    db.flush()
    audit_service.record(
        db,
        circle_id=link.circle_id,
        actor_user_id=actor_id,
        event_type=AuditEventType.SHARE_LINK_REVOKED,
        object_type=AuditObjectType.SHARE_LINK,
        object_id=link.id,
        metadata={"object_type": link.object_type, "object_id": link.object_id},
    )
    return link


# =============================================================================
# Resolve
# =============================================================================


def _ensure_usable(link: ShareLink | None, now: datetime) -> None:
    """Raise the precise error unless the link exists and is usable at ``now``."""
    if link is None:
        raise NotFoundError("Share link not found")
    if link.is_usable(now):
        return
    if now >= ensure_utc(link.expires_at):
        raise ExpiredError("Share link has expired")
    if link.revoked_at is not None:
        raise RevokedError("Share link has been revoked")
    if link.max_access_count is not None and link.access_count >= link.max_access_count:
        raise AccessLimitReachedError("Share link access limit reached")


def resolve_link(db: Session, token: str, meta: RequestMeta | None = None) -> ResolvedLink:
    """
    Resolve a token to its object and record the access.

    Raises:
        NotFoundError, ExpiredError, RevokedError, AccessLimitReachedError
    """
    meta = meta or RequestMeta()
    now = utcnow()

    link = db.query(ShareLink).filter(ShareLink.token == token).first()
    _ensure_usable(link, now)
    link_id = link.id

    result = db.execute(
        update(ShareLink)
        .where(
            ShareLink.id == link_id,
            ShareLink.revoked_at.is_(None),
            ShareLink.expires_at > now,
            or_(
                ShareLink.max_access_count.is_(None),
                ShareLink.access_count < ShareLink.max_access_count,
            ),
        )
        .values(access_count=ShareLink.access_count + 1, last_accessed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Lost a race: re-read and report why
        link = db.query(ShareLink).filter(ShareLink.id == link_id).populate_existing().first()
        _ensure_usable(link, now)
        raise ConflictError("Share link changed during access, please retry")

    db.add(
        ShareLinkAccessLog(
            share_link_id=link.id,
            accessed_at=now,
            ip_hash=meta.ip_hash,
            user_agent_hash=meta.user_agent_hash,
        )
    )
    db.flush()
    audit_service.record(
        db,
        circle_id=link.circle_id,
        actor_user_id=None,
        event_type=AuditEventType.SHARE_LINK_ACCESSED,
        object_type=AuditObjectType.SHARE_LINK,
        object_id=link.id,
        metadata={"object_type": link.object_type, "object_id": link.object_id},
        ip_hash=meta.ip_hash,
        user_agent_hash=meta.user_agent_hash,
    )
    return ResolvedLink(
        link_id=link.id,
        object_type=link.object_type,
        object_id=link.object_id,
        circle_id=link.circle_id,
    )


# =============================================================================
# Listing / retention
# =============================================================================


def list_links(
    db: Session,
    access: AccessPredicate,
    circle_id: UUID,
    user_id: UUID,
    object_type: ShareObjectType | None = None,
    object_id: UUID | None = None,
) -> list[ShareLink]:
    require_member(access, circle_id, user_id)
    query = db.query(ShareLink).filter(ShareLink.circle_id == circle_id)
    if object_type is not None:
        query = query.filter(ShareLink.object_type == ShareObjectType(object_type).value)
    if object_id is not None:
        query = query.filter(ShareLink.object_id == object_id)
    return query.order_by(ShareLink.created_at.desc()).all()


def purge_stale(
    db: Session,
    older_than_days: int | None = None,
    now: datetime | None = None,
) -> int:
    """
    Delete links that expired or were revoked before the retention cutoff.

    Access log rows cascade with their link.
    """
    days = older_than_days if older_than_days is not None else settings.SHARE_LINK_RETENTION_DAYS
    cutoff = (now or utcnow()) - timedelta(days=days)
    stale_ids = [
        row.id
        for row in db.query(ShareLink.id).filter(
            or_(ShareLink.expires_at < cutoff, ShareLink.revoked_at < cutoff)
        )
    ]
    if not stale_ids:
        return 0
    db.execute(
        delete(ShareLinkAccessLog)
        .where(ShareLinkAccessLog.share_link_id.in_(stale_ids))
        .execution_options(synchronize_session=False)
    )
    result = db.execute(
        delete(ShareLink)
        .where(ShareLink.id.in_(stale_ids))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
