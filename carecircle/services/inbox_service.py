"""
Inbox service - assignment and one-shot triage of captured items.

Lifecycle:
    NEW -> ASSIGNED -> TRIAGED
    NEW/ASSIGNED -> ARCHIVED   (ARCHIVE destination)

Triage runs under a row lock on the inbox item. The destination entity,
status flip, triage log row and INBOX_ITEM_TRIAGED audit event are written
inside one savepoint, so a failure in any of them leaves the item untouched.
"""

import logging
from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate, require_member, require_role
from carecircle.core.errors import AlreadyTriagedError, InvalidArgumentError, NotFoundError
from carecircle.db.enums import (
    AttachmentParentType,
    AuditEventType,
    AuditObjectType,
    BinderItemType,
    InboxItemKind,
    InboxItemStatus,
    Role,
    TriageDestination,
)
from carecircle.db.models import InboxItem, InboxTriageLog
from carecircle.schemas.inbox import TriageParams
from carecircle.services import (
    attachment_service,
    audit_service,
    binder_service,
    handoff_service,
    notification_service,
    task_service,
)

logger = logging.getLogger(__name__)

DEFAULT_HANDOFF_TITLE = "Inbox Item"
DEFAULT_TITLE = "From Inbox"


@dataclass
class TriageResult:
    item: InboxItem
    destination_type: TriageDestination
    destination_id: UUID | None


def _get_item_for_update(db: Session, item_id: UUID) -> InboxItem:
    item = (
        db.query(InboxItem)
        .filter(InboxItem.id == item_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not item:
        raise NotFoundError("Inbox item not found")
    return item


def _is_terminal(item: InboxItem) -> bool:
    return item.status in {status.value for status in InboxItemStatus.terminal()}


def _item_text(item: InboxItem) -> str | None:
    return item.note or item.text_payload


# =============================================================================
# Assignment
# =============================================================================


def assign_item(
    db: Session,
    access: AccessPredicate,
    item_id: UUID,
    actor_id: UUID,
    assignee_id: UUID,
) -> InboxItem:
    """
    Assign (or re-assign) an item.

    Actor needs CONTRIBUTOR or higher; assignee must be a circle member.
    """
    item = _get_item_for_update(db, item_id)
    require_role(access, item.circle_id, actor_id, Role.CONTRIBUTOR)
    if not access.is_member(item.circle_id, assignee_id):
        raise InvalidArgumentError("Assignee is not a circle member")
    if _is_terminal(item):
        raise AlreadyTriagedError("Inbox item has already been triaged")

    item.assigned_to = assignee_id
    item.status = InboxItemStatus.ASSIGNED.value
    db.flush()

    audit_service.record(
        db,
        circle_id=item.circle_id,
        actor_user_id=actor_id,
        event_type=AuditEventType.INBOX_ITEM_ASSIGNED,
        object_type=AuditObjectType.INBOX_ITEM,
        object_id=item.id,
        metadata={"assignee_id": assignee_id},
    )
    notification_service.notify_inbox_item_assigned(db, item, actor_user_id=actor_id)
    return item


# =============================================================================
# Triage destinations
# =============================================================================


def _to_handoff(db: Session, item: InboxItem, actor_id: UUID, params: TriageParams) -> UUID:
    handoff = handoff_service.create_draft(
        db,
        circle_id=item.circle_id,
        created_by=actor_id,
        title=item.title or DEFAULT_HANDOFF_TITLE,
        summary=_item_text(item) or "",
        handoff_type=params.handoff_type,
        patient_id=item.patient_id or params.patient_id,
    )
    if item.attachment_id:
        attachment_service.reparent_attachment(
            db,
            item.attachment_id,
            AttachmentParentType.HANDOFF,
            handoff.id,
            circle_id=item.circle_id,
        )
    return handoff.id


def _to_task(db: Session, item: InboxItem, actor_id: UUID, params: TriageParams) -> UUID:
    task = task_service.create_task(
        db,
        circle_id=item.circle_id,
        created_by=actor_id,
        title=item.title or DEFAULT_TITLE,
        owner_user_id=params.owner_user_id or actor_id,
        description=_item_text(item),
        due_at=params.due_at,
        priority=params.priority,
        patient_id=item.patient_id,
    )
    return task.id


def _to_binder(db: Session, item: InboxItem, actor_id: UUID, params: TriageParams) -> UUID:
    kind = InboxItemKind(item.kind)
    binder_item = binder_service.new_binder_item(
        db,
        circle_id=item.circle_id,
        created_by=actor_id,
        item_type=BinderItemType.DOC if kind.is_document else BinderItemType.NOTE,
        title=item.title or DEFAULT_TITLE,
        content={
            "content": _item_text(item) or "",
            "attachment_id": item.attachment_id,
            "source": "inbox",
        },
        patient_id=item.patient_id,
    )
    if item.attachment_id:
        attachment_service.reparent_attachment(
            db,
            item.attachment_id,
            AttachmentParentType.BINDER_ITEM,
            binder_item.id,
            circle_id=item.circle_id,
        )
    return binder_item.id


def _to_archive(db: Session, item: InboxItem, actor_id: UUID, params: TriageParams) -> None:
    return None


DESTINATIONS: dict[TriageDestination, Callable[..., UUID | None]] = {
    TriageDestination.HANDOFF: _to_handoff,
    TriageDestination.TASK: _to_task,
    TriageDestination.BINDER: _to_binder,
    TriageDestination.ARCHIVE: _to_archive,
}


# =============================================================================
# Triage
# =============================================================================


def triage_item(
    db: Session,
    access: AccessPredicate,
    item_id: UUID,
    actor_id: UUID,
    destination_type: TriageDestination | str,
    params: TriageParams | None = None,
    note: str | None = None,
) -> TriageResult:
    """
    Route an inbox item to a handoff, task, binder item, or archive.

    Raises:
        NotFoundError: item missing
        ForbiddenError: actor not a circle member
        AlreadyTriagedError: item already TRIAGED or ARCHIVED
        InvalidArgumentError: unknown destination (nothing written)
    """
    params = params or TriageParams()
    item = _get_item_for_update(db, item_id)
    require_member(access, item.circle_id, actor_id)
    if _is_terminal(item):
        raise AlreadyTriagedError("Inbox item has already been triaged")

    try:
        destination = TriageDestination(destination_type)
    except ValueError:
        raise InvalidArgumentError(f"Invalid destination type: {destination_type}")

    with db.begin_nested():
        destination_id = DESTINATIONS[destination](db, item, actor_id, params)

        if destination == TriageDestination.ARCHIVE:
            item.status = InboxItemStatus.ARCHIVED.value
        else:
            item.status = InboxItemStatus.TRIAGED.value

        db.add(
            InboxTriageLog(
                inbox_item_id=item.id,
                triaged_by=actor_id,
                destination_type=destination.value,
                destination_id=destination_id,
                note=note,
            )
        )
        db.flush()

        audit_service.record(
            db,
            circle_id=item.circle_id,
            actor_user_id=actor_id,
            event_type=AuditEventType.INBOX_ITEM_TRIAGED,
            object_type=AuditObjectType.INBOX_ITEM,
            object_id=item.id,
            metadata={
                "destination_type": destination.value,
                "destination_id": destination_id,
            },
        )

    logger.info(
        "Inbox item %s triaged to %s (%s)", item.id, destination.value, destination_id
    )
    return TriageResult(item=item, destination_type=destination, destination_id=destination_id)


def get_triage_log(db: Session, item_id: UUID) -> list[InboxTriageLog]:
    return (
        db.query(InboxTriageLog)
        .filter(InboxTriageLog.inbox_item_id == item_id)
        .order_by(InboxTriageLog.triaged_at)
        .all()
    )
