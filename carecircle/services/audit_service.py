"""Audit ledger - append-only record of sensitive actions.

Security guidelines:
- NEVER log secrets (share-link tokens, session tokens)
- Requester IP and user agent are stored as SHA-256 hashes only
- Use IDs instead of raw content in metadata
- IP: Trust X-Forwarded-For only behind a trusted proxy

Events are written inside the caller's transaction: if the mutation rolls
back, so does its audit row. There is no update or delete API.
"""

import json
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from carecircle.core.config import settings
from carecircle.db.enums import AuditEventType, AuditObjectType
from carecircle.db.models import AuditEvent


def get_client_ip(request: Request | None) -> str | None:
    """
    Extract client IP from request.

    Only trusts X-Forwarded-For when TRUST_PROXY_HEADERS=True (behind reverse proxy).
    """
    if not request:
        return None

    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For: client, proxy1, proxy2 - take first
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


def get_user_agent(request: Request | None) -> str | None:
    """Extract user agent from request."""
    if not request:
        return None
    ua = request.headers.get("user-agent", "")
    return ua[:500] if ua else None


def canonical_json(obj: Any) -> str:
    """
    Serialize to canonical JSON (sorted keys, compact separators).

    Used wherever two JSON documents are compared for semantic equality.
    """
    return json.dumps(obj if obj is not None else {}, sort_keys=True, separators=(",", ":"), default=str)


def json_document(value: dict[str, Any] | None) -> dict[str, Any]:
    """Round-trip through canonical JSON so UUIDs and datetimes serialize."""
    return json.loads(canonical_json(value or {}))


def record(
    db: Session,
    circle_id: UUID,
    actor_user_id: UUID | None,
    event_type: AuditEventType | str,
    object_type: AuditObjectType | str,
    object_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
    ip_hash: str | None = None,
    user_agent_hash: str | None = None,
) -> AuditEvent:
    """
    Append an audit event.

    Args:
        db: Database session (the mutation's transaction)
        circle_id: Circle context
        actor_user_id: User who performed the action (None for anonymous share access)
        event_type: Event type (open string set; AuditEventType for known ones)
        object_type: Type of entity affected
        object_id: ID of the affected entity
        metadata: Additional context (ids and flags only, no content or secrets)
        ip_hash / user_agent_hash: Pre-hashed requester metadata

    Returns:
        The created audit event (flushed, id assigned)
    """
    event = AuditEvent(
        circle_id=circle_id,
        actor_user_id=actor_user_id,
        event_type=event_type.value if isinstance(event_type, AuditEventType) else event_type,
        object_type=(
            object_type.value if isinstance(object_type, AuditObjectType) else object_type
        ),
        object_id=object_id,
        ip_hash=ip_hash,
        user_agent_hash=user_agent_hash,
        metadata_json=json_document(metadata),
    )
    db.add(event)
    db.flush()
    return event


def list_events(
    db: Session,
    circle_id: UUID,
    event_type: AuditEventType | str | None = None,
    object_id: UUID | None = None,
    limit: int = 100,
) -> list[AuditEvent]:
    """Read-only listing for admin views, newest first."""
    query = db.query(AuditEvent).filter(AuditEvent.circle_id == circle_id)
    if event_type is not None:
        value = event_type.value if isinstance(event_type, AuditEventType) else event_type
        query = query.filter(AuditEvent.event_type == value)
    if object_id is not None:
        query = query.filter(AuditEvent.object_id == object_id)
    return query.order_by(AuditEvent.created_at.desc()).limit(limit).all()
