"""
Notification outbox - durable queue for push/email delivery.

Producers enqueue PENDING rows inside their own transaction. The delivery
worker claims PENDING rows, delivers them, and resolves each to SENT or
FAILED; retry policy belongs to the worker.
"""

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate
from carecircle.core.config import settings
from carecircle.core.errors import ConflictError, NotFoundError
from carecircle.db.enums import NotificationType, OutboxStatus
from carecircle.db.models import Handoff, InboxItem, NotificationOutbox, Task
from carecircle.services.audit_service import json_document
from carecircle.utils.clock import utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# Producers
# =============================================================================


def enqueue(
    db: Session,
    user_id: UUID,
    circle_id: UUID,
    notification_type: NotificationType,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> NotificationOutbox:
    """Queue one notification for one user."""
    entry = NotificationOutbox(
        user_id=user_id,
        circle_id=circle_id,
        notification_type=notification_type.value,
        title=title[:255],
        body=body,
        data_json=json_document(data),
        status=OutboxStatus.PENDING.value,
        attempts=0,
    )
    db.add(entry)
    db.flush()
    return entry


def fan_out(
    db: Session,
    access: AccessPredicate,
    circle_id: UUID,
    exclude_user_id: UUID | None,
    notification_type: NotificationType,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> int:
    """
    Queue one notification per ACTIVE circle member except ``exclude_user_id``.

    Returns the number of entries enqueued.
    """
    count = 0
    for user_id in access.active_member_ids(circle_id):
        if user_id == exclude_user_id:
            continue
        enqueue(db, user_id, circle_id, notification_type, title, body, data)
        count += 1
    return count


def notify_handoff_published(
    db: Session,
    access: AccessPredicate,
    handoff: Handoff,
    actor_user_id: UUID,
    revision: int,
    first_publish: bool,
) -> int:
    """Notify the rest of the circle about a new or revised handoff."""
    if first_publish:
        notification_type = NotificationType.HANDOFF_PUBLISHED
        title = "New Handoff"
    else:
        notification_type = NotificationType.HANDOFF_REVISED
        title = "Handoff Updated"
    return fan_out(
        db,
        access,
        circle_id=handoff.circle_id,
        exclude_user_id=actor_user_id,
        notification_type=notification_type,
        title=title,
        body=handoff.title,
        data={
            "handoff_id": handoff.id,
            "circle_id": handoff.circle_id,
            "revision": revision,
        },
    )


def notify_task_assigned(db: Session, task: Task, actor_user_id: UUID) -> NotificationOutbox | None:
    """Notify task owner (skip self-assign)."""
    if task.owner_user_id == actor_user_id:
        return None
    return enqueue(
        db,
        user_id=task.owner_user_id,
        circle_id=task.circle_id,
        notification_type=NotificationType.TASK_ASSIGNED,
        title="New task assigned",
        body=task.title,
        data={"task_id": task.id, "circle_id": task.circle_id},
    )


def notify_inbox_item_assigned(
    db: Session, item: InboxItem, actor_user_id: UUID
) -> NotificationOutbox | None:
    """Notify inbox assignee (skip self-assign)."""
    if item.assigned_to is None or item.assigned_to == actor_user_id:
        return None
    return enqueue(
        db,
        user_id=item.assigned_to,
        circle_id=item.circle_id,
        notification_type=NotificationType.INBOX_ITEM_ASSIGNED,
        title="Inbox item assigned to you",
        body=item.title or "Inbox item",
        data={"inbox_item_id": item.id, "circle_id": item.circle_id},
    )


# =============================================================================
# Delivery worker helpers
# =============================================================================


def claim_pending(db: Session, limit: int | None = None) -> list[NotificationOutbox]:
    """
    Lock a batch of PENDING entries, oldest first.

    Uses SKIP LOCKED so concurrent workers never claim the same rows.
    """
    return (
        db.query(NotificationOutbox)
        .filter(NotificationOutbox.status == OutboxStatus.PENDING.value)
        .order_by(NotificationOutbox.created_at)
        .limit(limit or settings.OUTBOX_CLAIM_BATCH_SIZE)
        .with_for_update(skip_locked=True)
        .all()
    )


def _get_unsent(db: Session, entry_id: UUID) -> NotificationOutbox:
    entry = (
        db.query(NotificationOutbox)
        .filter(NotificationOutbox.id == entry_id)
        .with_for_update()
        .first()
    )
    if not entry:
        raise NotFoundError("Outbox entry not found")
    if entry.status == OutboxStatus.SENT.value:
        raise ConflictError("Outbox entry already sent")
    return entry


def mark_sent(db: Session, entry_id: UUID) -> NotificationOutbox:
    entry = _get_unsent(db, entry_id)
    now = utcnow()
    entry.status = OutboxStatus.SENT.value
    entry.attempts += 1
    entry.last_attempt_at = now
    entry.sent_at = now
    entry.error_message = None
    db.flush()
    return entry


def mark_failed(db: Session, entry_id: UUID, error_message: str) -> NotificationOutbox:
    entry = _get_unsent(db, entry_id)
    entry.status = OutboxStatus.FAILED.value
    entry.attempts += 1
    entry.last_attempt_at = utcnow()
    entry.error_message = error_message[:2000]
    db.flush()
    logger.warning(
        "Notification delivery failed: entry=%s attempts=%s", entry.id, entry.attempts
    )
    return entry


# =============================================================================
# Retention
# =============================================================================


def purge_resolved(
    db: Session,
    older_than_days: int | None = None,
    now: datetime | None = None,
) -> int:
    """
    Delete SENT/FAILED entries older than the retention window.

    PENDING entries are never purged: a stuck PENDING row means the delivery
    worker is unhealthy.
    """
    days = older_than_days if older_than_days is not None else settings.NOTIFICATION_RETENTION_DAYS
    cutoff = (now or utcnow()) - timedelta(days=days)
    result = db.execute(
        delete(NotificationOutbox)
        .where(
            NotificationOutbox.status.in_(
                [OutboxStatus.SENT.value, OutboxStatus.FAILED.value]
            ),
            NotificationOutbox.created_at < cutoff,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
