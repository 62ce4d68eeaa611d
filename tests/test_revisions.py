"""Tests for the revisioned document store (handoffs and binder items)."""

import uuid
from datetime import datetime, timezone

import pytest

from carecircle.core.errors import ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError
from carecircle.db.enums import AuditEventType, BinderItemType, HandoffStatus, NotificationType
from carecircle.db.models import AuditEvent, BinderItemRevision, NotificationOutbox, Task
from carecircle.schemas.binder import BinderItemCreate, BinderItemUpdate
from carecircle.schemas.handoff import HandoffPublish, HandoffUpdate
from carecircle.services import (
    audit_service,
    binder_service,
    handoff_service,
    notification_service,
    revision_service,
    task_service,
)
from carecircle.services.revision_service import BINDER_ITEM, HANDOFF


# =============================================================================
# Helpers
# =============================================================================

def _binder_item(db, access, ctx, content=None):
    item = binder_service.create_binder_item(
        db,
        access,
        ctx.circle_id,
        ctx.contributor_id,
        BinderItemCreate(type=BinderItemType.MED, title="Lisinopril", content_json=content or {"dose": "10mg"}),
    )
    db.commit()
    return item


def _draft(db, ctx, title="Visit with Dr. Lee"):
    handoff = handoff_service.create_draft(
        db,
        circle_id=ctx.circle_id,
        created_by=ctx.contributor_id,
        title=title,
        patient_id=ctx.patient.id,
    )
    db.commit()
    return handoff


def _brief(title="Visit with Dr. Lee", **extra):
    payload = {
        "title": title,
        "summary": "BP stable, labs next week",
        "keywords": ["bp", "labs"],
    }
    payload.update(extra)
    return HandoffPublish(structured_json=payload)


def _events(db, ctx, event_type):
    return audit_service.list_events(db, ctx.circle_id, event_type=event_type)


# =============================================================================
# Unit Tests (no DB required)
# =============================================================================

def test_content_equal_ignores_key_order():
    assert revision_service.content_equal({"a": 1, "b": [1, 2]}, {"b": [1, 2], "a": 1})


def test_content_equal_detects_nested_change():
    assert not revision_service.content_equal({"a": {"b": 1}}, {"a": {"b": 2}})


def test_content_equal_treats_none_as_empty():
    assert revision_service.content_equal(None, {})


# =============================================================================
# Binder revisions
# =============================================================================

def test_binder_update_appends_revision_with_previous_content(db, ctx, access):
    item = _binder_item(db, access, ctx)

    result = binder_service.update_binder_item(
        db, access, item.id, ctx.contributor_id,
        BinderItemUpdate(content_json={"dose": "20mg"}, change_note="dose increased"),
    )
    db.commit()

    assert result.revision == 1
    assert result.content_changed is True
    assert result.document.current_revision == 1
    assert result.document.content_json == {"dose": "20mg"}

    revision = revision_service.get_revision(db, BINDER_ITEM, item.id, 1)
    assert revision.content_json == {"dose": "10mg"}
    assert revision.edited_by == ctx.contributor_id
    assert revision.change_note == "dose increased"


def test_binder_revisions_are_gap_free(db, ctx, access):
    item = _binder_item(db, access, ctx)

    for dose in ("20mg", "30mg", "40mg"):
        binder_service.update_binder_item(
            db, access, item.id, ctx.contributor_id, BinderItemUpdate(content_json={"dose": dose})
        )
        db.commit()

    revisions = binder_service.list_revisions(db, access, item.id, ctx.viewer_id)
    assert [r.revision for r in revisions] == [1, 2, 3]
    assert [r.content_json["dose"] for r in revisions] == ["10mg", "20mg", "30mg"]
    assert binder_service.get_binder_item(db, item.id).current_revision == 3


def test_identical_content_records_no_revision(db, ctx, access):
    item = _binder_item(db, access, ctx, content={"dose": "10mg", "route": "oral"})

    result = binder_service.update_binder_item(
        db, access, item.id, ctx.contributor_id,
        BinderItemUpdate(content_json={"route": "oral", "dose": "10mg"}),
    )
    db.commit()

    assert result.changed is False
    assert result.revision == 0
    assert revision_service.list_revisions(db, BINDER_ITEM, item.id) == []
    assert _events(db, ctx, AuditEventType.BINDER_ITEM_UPDATED) == []


def test_field_only_change_applies_without_revision(db, ctx, access):
    item = _binder_item(db, access, ctx)

    result = binder_service.update_binder_item(
        db, access, item.id, ctx.contributor_id, BinderItemUpdate(is_active=False)
    )
    db.commit()

    assert result.content_changed is False
    assert result.fields_changed is True
    assert result.document.is_active is False
    assert result.document.current_revision == 0

    events = _events(db, ctx, AuditEventType.BINDER_ITEM_UPDATED)
    assert len(events) == 1
    assert events[0].metadata_json["content_changed"] is False
    assert events[0].metadata_json["is_active"] is False


def test_create_binder_item_writes_audit(db, ctx, access):
    item = _binder_item(db, access, ctx)

    events = _events(db, ctx, AuditEventType.BINDER_ITEM_CREATED)
    assert len(events) == 1
    assert events[0].object_id == item.id
    assert events[0].actor_user_id == ctx.contributor_id
    assert item.current_revision == 0


def test_viewer_cannot_edit_binder_item(db, ctx, access):
    item = _binder_item(db, access, ctx)

    with pytest.raises(ForbiddenError):
        binder_service.update_binder_item(
            db, access, item.id, ctx.viewer_id, BinderItemUpdate(content_json={"dose": "5mg"})
        )


def test_outsider_cannot_list_revisions(db, ctx, access):
    item = _binder_item(db, access, ctx)

    with pytest.raises(ForbiddenError):
        binder_service.list_revisions(db, access, item.id, ctx.outsider_id)


def test_null_title_rejected(db, ctx, access):
    item = _binder_item(db, access, ctx)

    with pytest.raises(InvalidArgumentError):
        binder_service.update_binder_item(
            db, access, item.id, ctx.contributor_id, BinderItemUpdate(title=None)
        )


def test_missing_revision_is_not_found(db, ctx, access):
    item = _binder_item(db, access, ctx)

    with pytest.raises(NotFoundError):
        revision_service.get_revision(db, BINDER_ITEM, item.id, 7)


def test_update_missing_document_is_not_found(db):
    with pytest.raises(NotFoundError):
        revision_service.update_content(db, BINDER_ITEM, uuid.uuid4(), {"a": 1}, editor_id=uuid.uuid4())


def test_revision_slot_taken_raises_conflict_after_retry(db, ctx, access):
    """A revision row already holding the next number loses twice, then conflicts."""
    item = _binder_item(db, access, ctx)
    db.add(
        BinderItemRevision(
            binder_item_id=item.id,
            revision=1,
            content_json={"dose": "stale"},
            edited_by=ctx.owner_id,
        )
    )
    db.commit()

    with pytest.raises(ConflictError):
        revision_service.update_content(
            db, BINDER_ITEM, item.id, {"dose": "20mg"}, editor_id=ctx.contributor_id
        )
    db.rollback()

    fresh = binder_service.get_binder_item(db, item.id)
    db.refresh(fresh)
    assert fresh.current_revision == 0
    assert fresh.content_json == {"dose": "10mg"}


# =============================================================================
# Handoff drafts and publishing
# =============================================================================

def test_draft_edits_do_not_create_revisions(db, ctx, access):
    handoff = _draft(db, ctx)

    result = handoff_service.update_handoff(
        db, access, handoff.id, ctx.contributor_id,
        HandoffUpdate(title="Visit notes", content_json={"status": "draft text"}),
    )
    db.commit()

    assert result.document.current_revision == 0
    assert result.document.title == "Visit notes"
    assert result.document.content_json == {"status": "draft text"}
    assert revision_service.list_revisions(db, HANDOFF, handoff.id) == []


def test_first_publish_records_revision_one(db, ctx, access):
    handoff = _draft(db, ctx)

    result = handoff_service.publish_handoff(db, access, handoff.id, ctx.contributor_id, _brief())
    db.commit()

    assert result.revision == 1
    assert result.handoff.status == HandoffStatus.PUBLISHED.value
    assert result.handoff.current_revision == 1
    assert result.handoff.keywords == ["bp", "labs"]
    assert result.published_at is not None

    revisions = revision_service.list_revisions(db, HANDOFF, handoff.id)
    assert [r.revision for r in revisions] == [1]
    assert revisions[0].content_json == {}

    published = _events(db, ctx, AuditEventType.HANDOFF_PUBLISHED)
    assert len(published) == 1
    assert published[0].metadata_json == {"revision": 1}


def test_first_publish_fans_out_to_other_members(db, ctx, access):
    handoff = _draft(db, ctx)

    result = handoff_service.publish_handoff(db, access, handoff.id, ctx.contributor_id, _brief())
    db.commit()

    assert result.notifications_queued == 3
    entries = db.query(NotificationOutbox).filter(
        NotificationOutbox.circle_id == ctx.circle_id,
        NotificationOutbox.notification_type == NotificationType.HANDOFF_PUBLISHED.value,
    ).all()
    assert {e.user_id for e in entries} == {ctx.owner_id, ctx.admin_id, ctx.viewer_id}
    assert all(e.data_json["handoff_id"] == str(handoff.id) for e in entries)


def test_first_publish_creates_tasks_from_next_steps(db, ctx, access):
    handoff = _draft(db, ctx)
    due = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    brief = _brief(
        next_steps=[
            {"action": "Book follow-up labs", "suggested_owner": str(ctx.viewer_id), "due": due.isoformat(), "priority": "HIGH"},
            {"action": "Pick up refills"},
        ]
    )

    result = handoff_service.publish_handoff(db, access, handoff.id, ctx.contributor_id, brief)
    db.commit()

    assert result.tasks_created == 2
    tasks = task_service.list_tasks_for_handoff(db, handoff.id)
    by_title = {t.title: t for t in tasks}
    assert by_title["Book follow-up labs"].owner_user_id == ctx.viewer_id
    assert by_title["Book follow-up labs"].priority == "HIGH"
    assert by_title["Pick up refills"].owner_user_id == ctx.contributor_id
    assert by_title["Pick up refills"].priority == "MED"
    assert all(t.patient_id == ctx.patient.id for t in tasks)

    assigned = db.query(NotificationOutbox).filter(
        NotificationOutbox.notification_type == NotificationType.TASK_ASSIGNED.value,
        NotificationOutbox.circle_id == ctx.circle_id,
    ).all()
    assert [e.user_id for e in assigned] == [ctx.viewer_id]


def test_republish_identical_content_is_noop(db, ctx, access):
    handoff = _draft(db, ctx)
    first = handoff_service.publish_handoff(db, access, handoff.id, ctx.contributor_id, _brief())
    db.commit()
    published_at = first.published_at

    again = handoff_service.publish_handoff(db, access, handoff.id, ctx.contributor_id, _brief())
    db.commit()

    assert again.revision == 1
    assert again.published_at == published_at
    assert again.tasks_created == 0
    assert again.notifications_queued == 0
    assert len(revision_service.list_revisions(db, HANDOFF, handoff.id)) == 1
    assert _events(db, ctx, AuditEventType.HANDOFF_REVISED) == []


def test_republish_changed_content_appends_revision(db, ctx, access):
    handoff = _draft(db, ctx)
    first = handoff_service.publish_handoff(
        db, access, handoff.id, ctx.contributor_id,
        _brief(next_steps=[{"action": "Call pharmacy"}]),
    )
    db.commit()

    second = handoff_service.publish_handoff(
        db, access, handoff.id, ctx.contributor_id,
        _brief(summary="BP slightly high", next_steps=[{"action": "Call pharmacy"}, {"action": "New step"}]),
    )
    db.commit()

    assert second.revision == 2
    assert second.published_at == first.published_at
    assert second.tasks_created == 0
    assert len(task_service.list_tasks_for_handoff(db, handoff.id)) == 1

    revisions = revision_service.list_revisions(db, HANDOFF, handoff.id)
    assert [r.revision for r in revisions] == [1, 2]
    assert revisions[1].content_json["summary"] == "BP stable, labs next week"

    revised = _events(db, ctx, AuditEventType.HANDOFF_REVISED)
    assert len(revised) == 1
    assert revised[0].metadata_json == {"revision": 2}
    revised_notes = db.query(NotificationOutbox).filter(
        NotificationOutbox.notification_type == NotificationType.HANDOFF_REVISED.value,
        NotificationOutbox.circle_id == ctx.circle_id,
    ).count()
    assert revised_notes == 3


def test_patch_published_handoff_content_appends_revision(db, ctx, access):
    handoff = _draft(db, ctx)
    handoff_service.publish_handoff(db, access, handoff.id, ctx.contributor_id, _brief())
    db.commit()

    result = handoff_service.update_handoff(
        db, access, handoff.id, ctx.owner_id,
        HandoffUpdate(content_json={"title": "Visit with Dr. Lee", "summary": "Corrected"}),
    )
    db.commit()

    assert result.revision == 2
    assert result.document.updated_by == ctx.owner_id


def test_patch_published_handoff_title_only_keeps_revision(db, ctx, access):
    handoff = _draft(db, ctx)
    handoff_service.publish_handoff(db, access, handoff.id, ctx.contributor_id, _brief())
    db.commit()

    result = handoff_service.update_handoff(
        db, access, handoff.id, ctx.contributor_id, HandoffUpdate(title="Renamed")
    )
    db.commit()

    assert result.revision == 1
    assert result.document.title == "Renamed"
    assert len(revision_service.list_revisions(db, HANDOFF, handoff.id)) == 1


def test_viewer_cannot_publish(db, ctx, access):
    handoff = _draft(db, ctx)

    with pytest.raises(ForbiddenError):
        handoff_service.publish_handoff(db, access, handoff.id, ctx.viewer_id, _brief())


def test_publish_missing_handoff(db, access, ctx):
    with pytest.raises(NotFoundError):
        handoff_service.publish_handoff(db, access, uuid.uuid4(), ctx.contributor_id, _brief())


def test_failed_publish_leaves_no_trace(db, ctx, access, monkeypatch):
    """A fan-out failure rolls back the revision, tasks and audit event."""
    handoff = _draft(db, ctx)

    def boom(*args, **kwargs):
        raise ConflictError("outbox unavailable")

    monkeypatch.setattr(notification_service, "notify_handoff_published", boom)

    with pytest.raises(ConflictError):
        handoff_service.publish_handoff(
            db, access, handoff.id, ctx.contributor_id,
            _brief(next_steps=[{"action": "Call pharmacy"}]),
        )
    db.rollback()

    fresh = handoff_service.get_handoff(db, handoff.id)
    assert fresh.status == HandoffStatus.DRAFT.value
    assert fresh.current_revision == 0
    assert revision_service.list_revisions(db, HANDOFF, handoff.id) == []
    assert db.query(Task).filter(Task.handoff_id == handoff.id).count() == 0
    assert db.query(AuditEvent).filter(AuditEvent.object_id == handoff.id).count() == 0


# =============================================================================
# Read receipts
# =============================================================================

def test_mark_read_is_idempotent(db, ctx, access):
    handoff = _draft(db, ctx)
    handoff_service.publish_handoff(db, access, handoff.id, ctx.contributor_id, _brief())
    db.commit()

    first = handoff_service.mark_read(db, access, handoff.id, ctx.viewer_id)
    db.commit()
    second = handoff_service.mark_read(db, access, handoff.id, ctx.viewer_id)

    assert first.id == second.id


def test_mark_read_rejects_draft(db, ctx, access):
    handoff = _draft(db, ctx)

    with pytest.raises(InvalidArgumentError):
        handoff_service.mark_read(db, access, handoff.id, ctx.viewer_id)
