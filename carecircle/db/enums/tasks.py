"""Task-related enums."""

from enum import Enum


class TaskPriority(str, Enum):
    LOW = "LOW"
    MED = "MED"
    HIGH = "HIGH"


class TaskStatus(str, Enum):
    OPEN = "OPEN"
    DONE = "DONE"
    CANCELED = "CANCELED"
