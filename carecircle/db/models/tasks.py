from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from carecircle.db.base import Base
from carecircle.db.enums import TaskPriority, TaskStatus
from carecircle.db.types import GUID
from carecircle.utils.clock import utcnow


class Task(Base):
    """
    Circle to-do item with a single owner.

    May be spawned from a handoff's next steps or from inbox triage.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_circle", "circle_id"),
        Index("idx_tasks_owner_status", "owner_user_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    circle_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False
    )
    patient_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID, ForeignKey("patients.id", ondelete="SET NULL"), nullable=True
    )
    handoff_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID, ForeignKey("handoffs.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    owner_user_id: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_at: Mapped[datetime | None] = mapped_column(nullable=True)
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=TaskPriority.MED.value
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TaskStatus.OPEN.value)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
