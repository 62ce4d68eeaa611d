"""Capability tokens (share links) and their access log."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from carecircle.db.base import Base
from carecircle.db.types import GUID
from carecircle.utils.clock import ensure_utc, utcnow


class ShareLink(Base):
    """
    Tokenized share link for login-free external access to one object.

    Usable iff now < expires_at, revoked_at IS NULL and
    (max_access_count IS NULL OR access_count < max_access_count).
    """

    __tablename__ = "share_links"
    __table_args__ = (
        Index("idx_share_links_object", "object_type", "object_id"),
        Index("idx_share_links_circle", "circle_id"),
        Index("idx_share_links_expires", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    circle_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False
    )
    object_type: Mapped[str] = mapped_column(String(50), nullable=False)
    object_id: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    max_access_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    access_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_accessed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    def is_usable(self, now: datetime) -> bool:
        if now >= ensure_utc(self.expires_at):
            return False
        if self.revoked_at is not None:
            return False
        if self.max_access_count is not None and self.access_count >= self.max_access_count:
            return False
        return True


class ShareLinkAccessLog(Base):
    """Access trail for share links (hashed requester metadata only)."""

    __tablename__ = "share_link_access_log"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    share_link_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("share_links.id", ondelete="CASCADE"), nullable=False, index=True
    )
    accessed_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    ip_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
