"""Share link enums."""

from enum import Enum


class ShareObjectType(str, Enum):
    """Objects that can be shared through a capability link."""

    APPOINTMENT_PACK = "appointment_pack"
    EMERGENCY_CARD = "emergency_card"
    CARE_SUMMARY = "care_summary"
    CONDITION_PHOTOS = "condition_photos"
