"""
Handoff service - drafts, publishing, revisions and read receipts.

Drafts are edited in place (``current_revision`` stays 0). Publishing and
edits to published handoffs go through the revision store, so the first
publish records revision 1 and every later content change appends one more.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate, require_member, require_role
from carecircle.core.errors import InvalidArgumentError, NotFoundError
from carecircle.db.enums import AuditEventType, HandoffStatus, HandoffType, Role
from carecircle.db.models import Handoff, HandoffReadReceipt
from carecircle.schemas.handoff import HandoffPublish, HandoffUpdate
from carecircle.services import audit_service, notification_service, revision_service, task_service
from carecircle.services.revision_service import HANDOFF, RevisionResult
from carecircle.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class PublishResult:
    handoff: Handoff
    revision: int
    published_at: datetime
    tasks_created: int
    notifications_queued: int


def get_handoff(db: Session, handoff_id: UUID) -> Handoff:
    handoff = db.query(Handoff).filter(Handoff.id == handoff_id).first()
    if not handoff:
        raise NotFoundError("Handoff not found")
    return handoff


def create_draft(
    db: Session,
    circle_id: UUID,
    created_by: UUID,
    title: str,
    summary: str | None = None,
    handoff_type: HandoffType = HandoffType.OTHER,
    patient_id: UUID | None = None,
    content: dict | None = None,
) -> Handoff:
    """Insert a DRAFT handoff at revision 0."""
    handoff = Handoff(
        circle_id=circle_id,
        patient_id=patient_id,
        created_by=created_by,
        updated_by=created_by,
        type=HandoffType(handoff_type).value,
        title=title[:80],
        summary=summary,
        keywords=[],
        content_json=content or {},
        status=HandoffStatus.DRAFT.value,
        current_revision=0,
    )
    db.add(handoff)
    db.flush()
    return handoff


def publish_handoff(
    db: Session,
    access: AccessPredicate,
    handoff_id: UUID,
    actor_id: UUID,
    data: HandoffPublish,
) -> PublishResult:
    """
    Publish a handoff (first publish or revision).

    First publish: DRAFT -> PUBLISHED, published_at set once, revision 1,
    one task per next step, HANDOFF_PUBLISHED audit and fan-out.
    Later publishes only append a revision when content changed.
    """
    handoff = revision_service.get_document(db, HANDOFF, handoff_id, lock=True)
    if handoff is None:
        raise NotFoundError("Handoff not found")
    require_role(access, handoff.circle_id, actor_id, Role.CONTRIBUTOR)

    first_publish = handoff.status == HandoffStatus.DRAFT.value
    brief = data.structured_json
    content = brief.model_dump(mode="json", exclude_none=True)

    fields = {
        "status": HandoffStatus.PUBLISHED.value,
        "title": brief.title,
        "summary": brief.summary,
        "keywords": list(brief.keywords),
    }
    if handoff.published_at is None:
        fields["published_at"] = utcnow()

    result = revision_service.update_content(
        db,
        HANDOFF,
        handoff_id,
        content,
        editor_id=actor_id,
        fields=fields,
        change_note=data.change_note,
        force=first_publish,
    )
    handoff = result.document

    tasks_created = 0
    notifications_queued = 0
    if result.content_changed:
        if first_publish:
            for step in brief.next_steps:
                task_service.create_task(
                    db,
                    circle_id=handoff.circle_id,
                    created_by=actor_id,
                    title=step.action,
                    owner_user_id=step.suggested_owner,
                    due_at=step.due,
                    priority=step.priority,
                    patient_id=handoff.patient_id,
                    handoff_id=handoff.id,
                )
                tasks_created += 1

        audit_service.record(
            db,
            circle_id=handoff.circle_id,
            actor_user_id=actor_id,
            event_type=(
                AuditEventType.HANDOFF_PUBLISHED if first_publish else AuditEventType.HANDOFF_REVISED
            ),
            object_type=HANDOFF.object_type,
            object_id=handoff.id,
            metadata={"revision": result.revision},
        )
        notifications_queued = notification_service.notify_handoff_published(
            db,
            access,
            handoff,
            actor_user_id=actor_id,
            revision=result.revision,
            first_publish=first_publish,
        )

    logger.info(
        "Handoff %s published: revision=%s first=%s tasks=%s",
        handoff.id,
        result.revision,
        first_publish,
        tasks_created,
    )
    return PublishResult(
        handoff=handoff,
        revision=result.revision,
        published_at=ensure_utc(handoff.published_at),
        tasks_created=tasks_created,
        notifications_queued=notifications_queued,
    )


def update_handoff(
    db: Session,
    access: AccessPredicate,
    handoff_id: UUID,
    actor_id: UUID,
    data: HandoffUpdate,
) -> RevisionResult:
    """
    Edit a handoff.

    Drafts are overwritten in place. Published handoffs record a revision
    when content changes; title/summary/keywords/type alone do not.
    """
    handoff = revision_service.get_document(db, HANDOFF, handoff_id, lock=True)
    if handoff is None:
        raise NotFoundError("Handoff not found")
    require_role(access, handoff.circle_id, actor_id, Role.CONTRIBUTOR)

    fields = data.model_dump(exclude_unset=True, exclude={"content_json", "change_note"})
    if "type" in fields and fields["type"] is not None:
        fields["type"] = HandoffType(fields["type"]).value
    if "title" in fields and fields["title"] is None:
        raise InvalidArgumentError("Title cannot be empty")

    if handoff.status == HandoffStatus.DRAFT.value:
        for key, value in fields.items():
            setattr(handoff, key, value)
        if data.content_json is not None:
            handoff.content_json = data.content_json
        handoff.updated_by = actor_id
        db.flush()
        return RevisionResult(
            document=handoff,
            revision=handoff.current_revision,
            content_changed=False,
            fields_changed=True,
        )

    new_content = data.content_json if data.content_json is not None else handoff.content_json
    result = revision_service.update_content(
        db,
        HANDOFF,
        handoff_id,
        new_content,
        editor_id=actor_id,
        fields=fields,
        change_note=data.change_note,
    )
    if result.changed:
        audit_service.record(
            db,
            circle_id=handoff.circle_id,
            actor_user_id=actor_id,
            event_type=AuditEventType.HANDOFF_REVISED,
            object_type=HANDOFF.object_type,
            object_id=handoff.id,
            metadata={"revision": result.revision, "content_changed": result.content_changed},
        )
    return result


def mark_read(
    db: Session,
    access: AccessPredicate,
    handoff_id: UUID,
    user_id: UUID,
) -> HandoffReadReceipt:
    """Record that a member read a published handoff. Idempotent."""
    handoff = get_handoff(db, handoff_id)
    require_member(access, handoff.circle_id, user_id)
    if handoff.status != HandoffStatus.PUBLISHED.value:
        raise InvalidArgumentError("Handoff is not published")

    existing = _get_receipt(db, handoff_id, user_id)
    if existing:
        return existing

    receipt = HandoffReadReceipt(
        circle_id=handoff.circle_id,
        handoff_id=handoff_id,
        user_id=user_id,
    )
    try:
        with db.begin_nested():
            db.add(receipt)
            db.flush()
    except IntegrityError:
        # Concurrent read from another session won the insert
        return _get_receipt(db, handoff_id, user_id)
    return receipt


def _get_receipt(db: Session, handoff_id: UUID, user_id: UUID) -> HandoffReadReceipt | None:
    return db.query(HandoffReadReceipt).filter(
        HandoffReadReceipt.handoff_id == handoff_id,
        HandoffReadReceipt.user_id == user_id,
    ).first()


def list_revisions(db: Session, access: AccessPredicate, handoff_id: UUID, user_id: UUID) -> list:
    handoff = get_handoff(db, handoff_id)
    require_member(access, handoff.circle_id, user_id)
    return revision_service.list_revisions(db, HANDOFF, handoff_id)


def get_revision(
    db: Session, access: AccessPredicate, handoff_id: UUID, revision: int, user_id: UUID
):
    handoff = get_handoff(db, handoff_id)
    require_member(access, handoff.circle_id, user_id)
    return revision_service.get_revision(db, HANDOFF, handoff_id, revision)
