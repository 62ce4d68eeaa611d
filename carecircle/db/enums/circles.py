"""Circle membership enums."""

from enum import Enum


class Role(str, Enum):
    """
    Circle roles with increasing privilege levels.

    VIEWER < CONTRIBUTOR < ADMIN < OWNER
    """

    VIEWER = "VIEWER"
    CONTRIBUTOR = "CONTRIBUTOR"
    ADMIN = "ADMIN"
    OWNER = "OWNER"

    @property
    def level(self) -> int:
        return _ROLE_LEVELS[self]

    def at_least(self, minimum: "Role") -> bool:
        return self.level >= minimum.level

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


_ROLE_LEVELS = {
    Role.VIEWER: 1,
    Role.CONTRIBUTOR: 2,
    Role.ADMIN: 3,
    Role.OWNER: 4,
}


class MemberStatus(str, Enum):
    INVITED = "INVITED"
    ACTIVE = "ACTIVE"
    REMOVED = "REMOVED"
