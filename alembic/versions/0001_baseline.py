"""Baseline migration - circles, revisioned documents, inbox, audit, outbox, share links

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18

Creates every table of the care circle workflow core.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


JSON_DOC = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _ts(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False
    )


def _circle_fk() -> sa.Column:
    return sa.Column(
        'circle_id', sa.Uuid(), sa.ForeignKey('circles.id', ondelete='CASCADE'), nullable=False
    )


def upgrade() -> None:
    """Create workflow core tables."""

    # ==========================================================================
    # Circles and membership
    # ==========================================================================
    op.create_table(
        'circles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        _ts('created_at'),
    )

    op.create_table(
        'circle_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        _ts('created_at'),
        sa.UniqueConstraint('circle_id', 'user_id', name='uq_circle_members_circle_user'),
    )
    op.create_index('idx_circle_members_user', 'circle_members', ['user_id'])

    op.create_table(
        'patients',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('display_name', sa.String(255), nullable=False),
        _ts('created_at'),
    )
    op.create_index('ix_patients_circle_id', 'patients', ['circle_id'])

    # ==========================================================================
    # Handoffs
    # ==========================================================================
    op.create_table(
        'handoffs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('patient_id', sa.Uuid(), sa.ForeignKey('patients.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('title', sa.String(80), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('keywords', JSON_DOC, nullable=False),
        sa.Column('content_json', JSON_DOC, nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        _ts('published_at', nullable=True),
        sa.Column('current_revision', sa.Integer(), nullable=False, server_default='0'),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_handoffs_circle', 'handoffs', ['circle_id'])
    op.create_index('idx_handoffs_patient', 'handoffs', ['patient_id'])
    op.create_index('idx_handoffs_status', 'handoffs', ['status'])

    op.create_table(
        'handoff_revisions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('handoff_id', sa.Uuid(), sa.ForeignKey('handoffs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('revision', sa.Integer(), nullable=False),
        sa.Column('content_json', JSON_DOC, nullable=False),
        sa.Column('edited_by', sa.Uuid(), nullable=False),
        _ts('edited_at'),
        sa.Column('change_note', sa.Text(), nullable=True),
        sa.UniqueConstraint('handoff_id', 'revision', name='uq_handoff_revisions_handoff_revision'),
    )
    op.create_index('ix_handoff_revisions_handoff_id', 'handoff_revisions', ['handoff_id'])

    op.create_table(
        'handoff_read_receipts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('handoff_id', sa.Uuid(), sa.ForeignKey('handoffs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        _ts('read_at'),
        sa.UniqueConstraint('handoff_id', 'user_id', name='uq_handoff_read_receipts_handoff_user'),
    )
    op.create_index('ix_handoff_read_receipts_user_id', 'handoff_read_receipts', ['user_id'])

    # ==========================================================================
    # Binder
    # ==========================================================================
    op.create_table(
        'binder_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('patient_id', sa.Uuid(), sa.ForeignKey('patients.id', ondelete='SET NULL'), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content_json', JSON_DOC, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('current_revision', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_binder_items_circle', 'binder_items', ['circle_id'])
    op.create_index('idx_binder_items_type', 'binder_items', ['type'])

    op.create_table(
        'binder_item_revisions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('binder_item_id', sa.Uuid(), sa.ForeignKey('binder_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('revision', sa.Integer(), nullable=False),
        sa.Column('content_json', JSON_DOC, nullable=False),
        sa.Column('edited_by', sa.Uuid(), nullable=False),
        _ts('edited_at'),
        sa.Column('change_note', sa.Text(), nullable=True),
        sa.UniqueConstraint('binder_item_id', 'revision', name='uq_binder_item_revisions_item_revision'),
    )
    op.create_index('ix_binder_item_revisions_binder_item_id', 'binder_item_revisions', ['binder_item_id'])

    # ==========================================================================
    # Attachments and tasks
    # ==========================================================================
    op.create_table(
        'attachments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('uploader_user_id', sa.Uuid(), nullable=False),
        sa.Column('handoff_id', sa.Uuid(), sa.ForeignKey('handoffs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('binder_item_id', sa.Uuid(), sa.ForeignKey('binder_items.id', ondelete='SET NULL'), nullable=True),
        sa.Column('kind', sa.String(10), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('byte_size', sa.Integer(), nullable=False),
        sa.Column('sha256', sa.String(64), nullable=False),
        sa.Column('storage_key', sa.String(512), nullable=False, unique=True),
        sa.Column('filename', sa.String(255), nullable=True),
        _ts('created_at'),
    )
    op.create_index('idx_attachments_circle', 'attachments', ['circle_id'])
    op.create_index('idx_attachments_handoff', 'attachments', ['handoff_id'])
    op.create_index('idx_attachments_binder_item', 'attachments', ['binder_item_id'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('patient_id', sa.Uuid(), sa.ForeignKey('patients.id', ondelete='SET NULL'), nullable=True),
        sa.Column('handoff_id', sa.Uuid(), sa.ForeignKey('handoffs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('owner_user_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _ts('due_at', nullable=True),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_tasks_circle', 'tasks', ['circle_id'])
    op.create_index('idx_tasks_owner_status', 'tasks', ['owner_user_id', 'status'])

    # ==========================================================================
    # Inbox
    # ==========================================================================
    op.create_table(
        'inbox_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('patient_id', sa.Uuid(), sa.ForeignKey('patients.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('kind', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('assigned_to', sa.Uuid(), nullable=True),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('attachment_id', sa.Uuid(), sa.ForeignKey('attachments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('text_payload', sa.Text(), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_inbox_items_circle', 'inbox_items', ['circle_id'])
    op.create_index('idx_inbox_items_status', 'inbox_items', ['status'])
    op.create_index('idx_inbox_items_assigned_to', 'inbox_items', ['assigned_to'])

    op.create_table(
        'inbox_triage_log',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('inbox_item_id', sa.Uuid(), sa.ForeignKey('inbox_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('triaged_by', sa.Uuid(), nullable=False),
        _ts('triaged_at'),
        sa.Column('destination_type', sa.String(20), nullable=False),
        sa.Column('destination_id', sa.Uuid(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
    )
    op.create_index('ix_inbox_triage_log_inbox_item_id', 'inbox_triage_log', ['inbox_item_id'])

    # ==========================================================================
    # Audit ledger (append-only, never purged)
    # ==========================================================================
    op.create_table(
        'audit_events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('actor_user_id', sa.Uuid(), nullable=True),
        sa.Column('event_type', sa.String(64), nullable=False),
        sa.Column('object_type', sa.String(50), nullable=False),
        sa.Column('object_id', sa.Uuid(), nullable=True),
        sa.Column('ip_hash', sa.String(64), nullable=True),
        sa.Column('user_agent_hash', sa.String(64), nullable=True),
        sa.Column('metadata_json', JSON_DOC, nullable=False),
        _ts('created_at'),
    )
    op.create_index('idx_audit_events_circle_created', 'audit_events', ['circle_id', 'created_at'])
    op.create_index('idx_audit_events_event_type', 'audit_events', ['event_type'])
    op.create_index('idx_audit_events_object', 'audit_events', ['object_type', 'object_id'])
    op.create_index('idx_audit_events_actor', 'audit_events', ['actor_user_id'])

    # ==========================================================================
    # Notification outbox
    # ==========================================================================
    op.create_table(
        'notification_outbox',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        _circle_fk(),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('data_json', JSON_DOC, nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        _ts('last_attempt_at', nullable=True),
        _ts('sent_at', nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        _ts('created_at'),
    )
    op.create_index('idx_notification_outbox_status_created', 'notification_outbox', ['status', 'created_at'])
    op.create_index('idx_notification_outbox_user', 'notification_outbox', ['user_id'])

    # ==========================================================================
    # Share links
    # ==========================================================================
    op.create_table(
        'share_links',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _circle_fk(),
        sa.Column('object_type', sa.String(50), nullable=False),
        sa.Column('object_id', sa.Uuid(), nullable=False),
        sa.Column('token', sa.String(128), nullable=False, unique=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        _ts('revoked_at', nullable=True),
        sa.Column('max_access_count', sa.Integer(), nullable=True),
        sa.Column('access_count', sa.Integer(), nullable=False, server_default='0'),
        _ts('last_accessed_at', nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        _ts('created_at'),
    )
    op.create_index('idx_share_links_object', 'share_links', ['object_type', 'object_id'])
    op.create_index('idx_share_links_circle', 'share_links', ['circle_id'])
    op.create_index('idx_share_links_expires', 'share_links', ['expires_at'])

    op.create_table(
        'share_link_access_log',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('share_link_id', sa.Uuid(), sa.ForeignKey('share_links.id', ondelete='CASCADE'), nullable=False),
        _ts('accessed_at'),
        sa.Column('ip_hash', sa.String(64), nullable=True),
        sa.Column('user_agent_hash', sa.String(64), nullable=True),
    )
    op.create_index('ix_share_link_access_log_share_link_id', 'share_link_access_log', ['share_link_id'])

    # ==========================================================================
    # Rate limit counters
    # ==========================================================================
    op.create_table(
        'rate_limit_counters',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('subject', sa.String(128), nullable=False),
        sa.Column('endpoint', sa.String(100), nullable=False),
        sa.Column('window_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('request_count', sa.Integer(), nullable=False, server_default='1'),
        sa.UniqueConstraint('subject', 'endpoint', 'window_start', name='uq_rate_limit_counters_key'),
    )
    op.create_index('idx_rate_limit_counters_window', 'rate_limit_counters', ['window_start'])


def downgrade() -> None:
    """Drop all workflow core tables."""
    for table in (
        'rate_limit_counters',
        'share_link_access_log',
        'share_links',
        'notification_outbox',
        'audit_events',
        'inbox_triage_log',
        'inbox_items',
        'tasks',
        'attachments',
        'binder_item_revisions',
        'binder_items',
        'handoff_read_receipts',
        'handoff_revisions',
        'handoffs',
        'patients',
        'circle_members',
        'circles',
    ):
        op.drop_table(table)
