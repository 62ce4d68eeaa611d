"""Tests for the notification outbox and the retention CLI."""

import uuid
from datetime import timedelta

import pytest
from click.testing import CliRunner

from carecircle.cli import cli
from carecircle.core.errors import ConflictError, NotFoundError
from carecircle.db.enums import MemberStatus, NotificationType, OutboxStatus
from carecircle.db.models import CircleMember, NotificationOutbox, Task
from carecircle.services import notification_service
from carecircle.utils.clock import utcnow


def _enqueue(db, ctx, user_id=None, title="Hello"):
    entry = notification_service.enqueue(
        db,
        user_id=user_id or ctx.owner_id,
        circle_id=ctx.circle_id,
        notification_type=NotificationType.HANDOFF_PUBLISHED,
        title=title,
        body="body",
        data={"circle_id": ctx.circle_id},
    )
    db.commit()
    return entry


# =============================================================================
# Producers
# =============================================================================

def test_enqueue_serializes_data(db, ctx):
    entry = _enqueue(db, ctx)

    assert entry.status == OutboxStatus.PENDING.value
    assert entry.attempts == 0
    assert entry.data_json == {"circle_id": str(ctx.circle_id)}


def test_fan_out_excludes_actor(db, ctx, access):
    count = notification_service.fan_out(
        db, access, ctx.circle_id, ctx.contributor_id,
        NotificationType.HANDOFF_REVISED, "Handoff Updated", "Visit",
    )
    db.commit()

    assert count == 3
    recipients = {
        e.user_id
        for e in db.query(NotificationOutbox).filter(NotificationOutbox.circle_id == ctx.circle_id)
    }
    assert recipients == {ctx.owner_id, ctx.admin_id, ctx.viewer_id}


def test_fan_out_skips_inactive_members(db, ctx, access):
    member = db.query(CircleMember).filter(
        CircleMember.circle_id == ctx.circle_id, CircleMember.user_id == ctx.viewer_id
    ).one()
    member.status = MemberStatus.REMOVED.value
    db.commit()

    count = notification_service.fan_out(
        db, access, ctx.circle_id, None, NotificationType.MEMBER_JOINED, "Welcome", "body"
    )

    assert count == 3


def test_task_notification_skips_self_assignment(db, ctx):
    task = Task(
        circle_id=ctx.circle_id,
        created_by=ctx.owner_id,
        owner_user_id=ctx.owner_id,
        title="Refill",
    )
    db.add(task)
    db.flush()

    assert notification_service.notify_task_assigned(db, task, actor_user_id=ctx.owner_id) is None


# =============================================================================
# Delivery worker helpers
# =============================================================================

def test_claim_pending_returns_pending_only(db, ctx):
    pending = _enqueue(db, ctx, title="pending")
    sent = _enqueue(db, ctx, title="sent")
    notification_service.mark_sent(db, sent.id)
    db.commit()

    claimed = notification_service.claim_pending(db, limit=10)

    claimed_ids = [e.id for e in claimed]
    assert pending.id in claimed_ids
    assert sent.id not in claimed_ids


def test_mark_sent_is_final(db, ctx):
    entry = _enqueue(db, ctx)

    sent = notification_service.mark_sent(db, entry.id)
    db.commit()

    assert sent.status == OutboxStatus.SENT.value
    assert sent.attempts == 1
    assert sent.sent_at is not None

    with pytest.raises(ConflictError):
        notification_service.mark_sent(db, entry.id)
    with pytest.raises(ConflictError):
        notification_service.mark_failed(db, entry.id, "late failure")


def test_mark_failed_counts_attempts_and_allows_retry(db, ctx):
    entry = _enqueue(db, ctx)

    notification_service.mark_failed(db, entry.id, "push token expired")
    failed = notification_service.mark_failed(db, entry.id, "push token expired")
    db.commit()

    assert failed.status == OutboxStatus.FAILED.value
    assert failed.attempts == 2
    assert failed.error_message == "push token expired"

    retried = notification_service.mark_sent(db, entry.id)
    assert retried.status == OutboxStatus.SENT.value
    assert retried.attempts == 3
    assert retried.error_message is None


def test_mark_missing_entry(db):
    with pytest.raises(NotFoundError):
        notification_service.mark_sent(db, uuid.uuid4())


# =============================================================================
# Retention
# =============================================================================

def test_purge_resolved_keeps_pending(db, ctx):
    old = utcnow() - timedelta(days=40)
    pending = _enqueue(db, ctx, title="stuck")
    sent = _enqueue(db, ctx, title="delivered")
    failed = _enqueue(db, ctx, title="bounced")
    recent = _enqueue(db, ctx, title="recent")
    notification_service.mark_sent(db, sent.id)
    notification_service.mark_failed(db, failed.id, "bounce")
    notification_service.mark_sent(db, recent.id)
    for entry in (pending, sent, failed):
        entry.created_at = old
    db.commit()

    deleted = notification_service.purge_resolved(db, older_than_days=30)
    db.commit()

    assert deleted == 2
    remaining = {
        e.title
        for e in db.query(NotificationOutbox).filter(NotificationOutbox.circle_id == ctx.circle_id)
    }
    assert remaining == {"stuck", "recent"}


def test_cli_sweep_runs_all_purges():
    runner = CliRunner()

    result = runner.invoke(cli, ["sweep"])

    assert result.exit_code == 0, result.output
    assert "Sweep complete" in result.output


def test_cli_purge_outbox_accepts_days():
    runner = CliRunner()

    result = runner.invoke(cli, ["purge-outbox", "--days", "90"])

    assert result.exit_code == 0, result.output
    assert "outbox entries" in result.output
