"""Handoff and binder enums."""

from enum import Enum


class HandoffStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class HandoffType(str, Enum):
    VISIT = "VISIT"
    CALL = "CALL"
    APPOINTMENT = "APPOINTMENT"
    FACILITY_UPDATE = "FACILITY_UPDATE"
    OTHER = "OTHER"


class BinderItemType(str, Enum):
    MED = "MED"
    CONTACT = "CONTACT"
    FACILITY = "FACILITY"
    INSURANCE = "INSURANCE"
    DOC = "DOC"
    NOTE = "NOTE"


class AttachmentParentType(str, Enum):
    """Entities an attachment can hang off."""

    HANDOFF = "handoff"
    BINDER_ITEM = "binder_item"
