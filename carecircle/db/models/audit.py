"""Audit ledger model."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from carecircle.db.base import Base
from carecircle.db.types import GUID, JSONDocument
from carecircle.utils.clock import utcnow


class AuditEvent(Base):
    """
    Immutable audit log for sensitive actions.

    Security:
    - Never stores secrets/tokens
    - Requester IP and user agent are stored as SHA-256 hashes only
    - No update, delete or retention purge exists for this table
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("idx_audit_events_circle_created", "circle_id", "created_at"),
        Index("idx_audit_events_event_type", "event_type"),
        Index("idx_audit_events_object", "object_type", "object_id"),
        Index("idx_audit_events_actor", "actor_user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    circle_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False
    )
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID, nullable=True  # Anonymous share-link access has no actor
    )
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    object_type: Mapped[str] = mapped_column(String(50), nullable=False)
    object_id: Mapped[uuid.UUID | None] = mapped_column(GUID, nullable=True)
    ip_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    metadata_json: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
