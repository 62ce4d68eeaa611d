"""Circle access predicate.

Membership and role storage belong to the membership service; the workflow
services only ask yes/no questions through :class:`AccessPredicate`, so tests
and callers can inject any implementation.
"""

from typing import Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from carecircle.core.errors import ForbiddenError
from carecircle.db.enums import MemberStatus, Role
from carecircle.db.models import CircleMember


class AccessPredicate(Protocol):
    def is_member(self, circle_id: UUID, user_id: UUID) -> bool: ...

    def has_role(self, circle_id: UUID, user_id: UUID, min_role: Role) -> bool: ...

    def active_member_ids(self, circle_id: UUID) -> list[UUID]: ...


class MembershipAccess:
    """Access predicate backed by ACTIVE rows in circle_members."""

    def __init__(self, db: Session):
        self.db = db

    def _active_role(self, circle_id: UUID, user_id: UUID) -> Role | None:
        member = self.db.query(CircleMember).filter(
            CircleMember.circle_id == circle_id,
            CircleMember.user_id == user_id,
            CircleMember.status == MemberStatus.ACTIVE.value,
        ).first()
        if not member or not Role.has_value(member.role):
            return None
        return Role(member.role)

    def is_member(self, circle_id: UUID, user_id: UUID) -> bool:
        return self._active_role(circle_id, user_id) is not None

    def has_role(self, circle_id: UUID, user_id: UUID, min_role: Role) -> bool:
        role = self._active_role(circle_id, user_id)
        return role is not None and role.at_least(min_role)

    def active_member_ids(self, circle_id: UUID) -> list[UUID]:
        rows = self.db.query(CircleMember.user_id).filter(
            CircleMember.circle_id == circle_id,
            CircleMember.status == MemberStatus.ACTIVE.value,
        ).order_by(CircleMember.created_at).all()
        return [row.user_id for row in rows]


def require_member(access: AccessPredicate, circle_id: UUID, user_id: UUID) -> None:
    """Raise ForbiddenError unless user is an active circle member."""
    if not access.is_member(circle_id, user_id):
        raise ForbiddenError("Not a circle member")


def require_role(
    access: AccessPredicate, circle_id: UUID, user_id: UUID, min_role: Role
) -> None:
    """Raise ForbiddenError unless user holds at least ``min_role``."""
    if not access.has_role(circle_id, user_id, min_role):
        raise ForbiddenError(f"Requires {min_role.value} role or higher")
