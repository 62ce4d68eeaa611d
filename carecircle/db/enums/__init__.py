"""Enum definitions for application constants."""

from carecircle.db.enums.audit import AuditEventType, AuditObjectType
from carecircle.db.enums.circles import MemberStatus, Role
from carecircle.db.enums.documents import (
    AttachmentParentType,
    BinderItemType,
    HandoffStatus,
    HandoffType,
)
from carecircle.db.enums.inbox import InboxItemKind, InboxItemStatus, TriageDestination
from carecircle.db.enums.notifications import NotificationType, OutboxStatus
from carecircle.db.enums.share_links import ShareObjectType
from carecircle.db.enums.tasks import TaskPriority, TaskStatus

__all__ = [
    "AttachmentParentType",
    "AuditEventType",
    "AuditObjectType",
    "BinderItemType",
    "HandoffStatus",
    "HandoffType",
    "InboxItemKind",
    "InboxItemStatus",
    "MemberStatus",
    "NotificationType",
    "OutboxStatus",
    "Role",
    "ShareObjectType",
    "TaskPriority",
    "TaskStatus",
    "TriageDestination",
]
