"""Audit enums."""

from enum import Enum


class AuditEventType(str, Enum):
    """
    Sensitive-action audit events.

    The column is an open string; these are the events this service writes.
    """

    # Handoffs
    HANDOFF_PUBLISHED = "HANDOFF_PUBLISHED"
    HANDOFF_REVISED = "HANDOFF_REVISED"

    # Binder
    BINDER_ITEM_CREATED = "BINDER_ITEM_CREATED"
    BINDER_ITEM_UPDATED = "BINDER_ITEM_UPDATED"

    # Inbox
    INBOX_ITEM_ASSIGNED = "INBOX_ITEM_ASSIGNED"
    INBOX_ITEM_TRIAGED = "INBOX_ITEM_TRIAGED"

    # Share links
    SHARE_LINK_CREATED = "SHARE_LINK_CREATED"
    SHARE_LINK_ACCESSED = "SHARE_LINK_ACCESSED"
    SHARE_LINK_REVOKED = "SHARE_LINK_REVOKED"


class AuditObjectType(str, Enum):
    HANDOFF = "handoff"
    BINDER_ITEM = "binder_item"
    INBOX_ITEM = "inbox_item"
    TASK = "task"
    SHARE_LINK = "share_link"
