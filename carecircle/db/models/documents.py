"""Revisioned documents: handoffs and binder items.

Both kinds share one shape: mutable JSON content, a ``current_revision``
pointer and an append-only revision table holding the content as it was
*before* each change. Revision numbers are unique and gap-free per document.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from carecircle.db.base import Base
from carecircle.db.enums import HandoffStatus, HandoffType
from carecircle.db.types import GUID, JSONDocument
from carecircle.utils.clock import utcnow


class Handoff(Base):
    """
    Structured narrative update about a patient.

    Drafts carry ``current_revision = 0``; the first publish records revision 1.
    """

    __tablename__ = "handoffs"
    __table_args__ = (
        Index("idx_handoffs_circle", "circle_id"),
        Index("idx_handoffs_patient", "patient_id"),
        Index("idx_handoffs_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    circle_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False
    )
    patient_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID, ForeignKey("patients.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(GUID, nullable=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default=HandoffType.OTHER.value)
    title: Mapped[str] = mapped_column(String(80), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    keywords: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)
    content_json: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=HandoffStatus.DRAFT.value
    )
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)
    current_revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class HandoffRevision(Base):
    """Immutable revision history for handoffs."""

    __tablename__ = "handoff_revisions"
    __table_args__ = (
        UniqueConstraint("handoff_id", "revision", name="uq_handoff_revisions_handoff_revision"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    handoff_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("handoffs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    content_json: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    edited_by: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    edited_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    change_note: Mapped[str | None] = mapped_column(Text, nullable=True)


class HandoffReadReceipt(Base):
    __tablename__ = "handoff_read_receipts"
    __table_args__ = (
        UniqueConstraint("handoff_id", "user_id", name="uq_handoff_read_receipts_handoff_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    circle_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False
    )
    handoff_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("handoffs.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False, index=True)
    read_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class BinderItem(Base):
    """Reference record (meds, contacts, facilities, documents, notes)."""

    __tablename__ = "binder_items"
    __table_args__ = (
        Index("idx_binder_items_circle", "circle_id"),
        Index("idx_binder_items_type", "type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    circle_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False
    )
    patient_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID, ForeignKey("patients.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content_json: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    current_revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(GUID, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class BinderItemRevision(Base):
    """Revision history for binder items."""

    __tablename__ = "binder_item_revisions"
    __table_args__ = (
        UniqueConstraint(
            "binder_item_id", "revision", name="uq_binder_item_revisions_item_revision"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    binder_item_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("binder_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    content_json: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    edited_by: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    edited_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    change_note: Mapped[str | None] = mapped_column(Text, nullable=True)
