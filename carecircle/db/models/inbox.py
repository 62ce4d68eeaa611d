"""Care inbox: quick captures awaiting triage."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from carecircle.db.base import Base
from carecircle.db.enums import InboxItemStatus
from carecircle.db.types import GUID
from carecircle.utils.clock import utcnow


class InboxItem(Base):
    """
    Quick capture item for later triage and routing.

    Once TRIAGED (or ARCHIVED) the destination is final.
    """

    __tablename__ = "inbox_items"
    __table_args__ = (
        Index("idx_inbox_items_circle", "circle_id"),
        Index("idx_inbox_items_status", "status"),
        Index("idx_inbox_items_assigned_to", "assigned_to"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    circle_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False
    )
    patient_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID, ForeignKey("patients.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InboxItemStatus.NEW.value
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(GUID, nullable=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID, ForeignKey("attachments.id", ondelete="SET NULL"), nullable=True
    )
    text_payload: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class InboxTriageLog(Base):
    """Immutable record of a triage decision."""

    __tablename__ = "inbox_triage_log"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    inbox_item_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("inbox_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    triaged_by: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    triaged_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    destination_type: Mapped[str] = mapped_column(String(20), nullable=False)
    destination_id: Mapped[uuid.UUID | None] = mapped_column(GUID, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
