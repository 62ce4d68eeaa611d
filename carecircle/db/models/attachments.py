"""Attachment metadata. File bytes live in object storage."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from carecircle.db.base import Base
from carecircle.db.types import GUID
from carecircle.utils.clock import utcnow


class Attachment(Base):
    __tablename__ = "attachments"
    __table_args__ = (
        Index("idx_attachments_circle", "circle_id"),
        Index("idx_attachments_handoff", "handoff_id"),
        Index("idx_attachments_binder_item", "binder_item_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    circle_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False
    )
    uploader_user_id: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    handoff_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID, ForeignKey("handoffs.id", ondelete="SET NULL"), nullable=True
    )
    binder_item_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID, ForeignKey("binder_items.id", ondelete="SET NULL"), nullable=True
    )
    kind: Mapped[str] = mapped_column(String(10), nullable=False)  # PHOTO, PDF, AUDIO
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    byte_size: Mapped[int] = mapped_column(Integer, nullable=False)
    sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), unique=True, nullable=False)
    filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
