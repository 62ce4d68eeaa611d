"""Care inbox enums."""

from enum import Enum


class InboxItemKind(str, Enum):
    PHOTO = "PHOTO"
    PDF = "PDF"
    AUDIO = "AUDIO"
    TEXT = "TEXT"

    @property
    def is_document(self) -> bool:
        """Photos and PDFs land in the binder as documents."""
        return self in (InboxItemKind.PHOTO, InboxItemKind.PDF)


class InboxItemStatus(str, Enum):
    """
    Inbox item lifecycle.

    NEW -> ASSIGNED -> TRIAGED
    NEW/ASSIGNED -> ARCHIVED (archive destination)

    TRIAGED and ARCHIVED are terminal for triage.
    """

    NEW = "NEW"
    ASSIGNED = "ASSIGNED"
    TRIAGED = "TRIAGED"
    ARCHIVED = "ARCHIVED"

    @classmethod
    def terminal(cls) -> frozenset["InboxItemStatus"]:
        return frozenset({cls.TRIAGED, cls.ARCHIVED})


class TriageDestination(str, Enum):
    HANDOFF = "HANDOFF"
    TASK = "TASK"
    BINDER = "BINDER"
    ARCHIVE = "ARCHIVE"
