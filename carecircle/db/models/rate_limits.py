from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from carecircle.db.base import Base
from carecircle.db.types import GUID


class RateLimitCounter(Base):
    """
    Fixed-window request counter.

    One row per (subject, endpoint, window_start); rows from finished windows
    are removed by the retention sweep.
    """

    __tablename__ = "rate_limit_counters"
    __table_args__ = (
        UniqueConstraint(
            "subject", "endpoint", "window_start", name="uq_rate_limit_counters_key"
        ),
        Index("idx_rate_limit_counters_window", "window_start"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    subject: Mapped[str] = mapped_column(String(128), nullable=False)
    endpoint: Mapped[str] = mapped_column(String(100), nullable=False)
    window_start: Mapped[datetime] = mapped_column(nullable=False)
    request_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
