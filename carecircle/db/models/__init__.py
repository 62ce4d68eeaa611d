"""SQLAlchemy ORM models."""

from carecircle.db.models.attachments import Attachment
from carecircle.db.models.audit import AuditEvent
from carecircle.db.models.circles import Circle, CircleMember, Patient
from carecircle.db.models.documents import (
    BinderItem,
    BinderItemRevision,
    Handoff,
    HandoffReadReceipt,
    HandoffRevision,
)
from carecircle.db.models.inbox import InboxItem, InboxTriageLog
from carecircle.db.models.notifications import NotificationOutbox
from carecircle.db.models.rate_limits import RateLimitCounter
from carecircle.db.models.share_links import ShareLink, ShareLinkAccessLog
from carecircle.db.models.tasks import Task

__all__ = [
    "Attachment",
    "AuditEvent",
    "BinderItem",
    "BinderItemRevision",
    "Circle",
    "CircleMember",
    "Handoff",
    "HandoffReadReceipt",
    "HandoffRevision",
    "InboxItem",
    "InboxTriageLog",
    "NotificationOutbox",
    "Patient",
    "RateLimitCounter",
    "ShareLink",
    "ShareLinkAccessLog",
    "Task",
]
