"""Notification-related enums."""

from enum import Enum


class NotificationType(str, Enum):
    """Types of outbox notifications."""

    HANDOFF_PUBLISHED = "HANDOFF_PUBLISHED"
    HANDOFF_REVISED = "HANDOFF_REVISED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_DUE_SOON = "TASK_DUE_SOON"  # Due within 24h
    TASK_OVERDUE = "TASK_OVERDUE"
    INBOX_ITEM_ASSIGNED = "INBOX_ITEM_ASSIGNED"
    MEMBER_JOINED = "MEMBER_JOINED"
    EXPORT_READY = "EXPORT_READY"


class OutboxStatus(str, Enum):
    """
    Delivery state, owned by the delivery worker.

    PENDING -> SENT | FAILED
    """

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
