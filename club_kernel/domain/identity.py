"""Caller identity passed into services by the boundary layer (trusted)."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from club_kernel.exceptions import AuthorizationError


class Role(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


@dataclass(frozen=True)
class Actor:
    """
    Authenticated caller.

    ``member_id`` is the member record the caller acts as; admins may have
    none.  ``actor_id`` is what audit columns record.
    """

    actor_id: UUID
    role: Role
    member_id: UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def require_admin(self, operation: str) -> None:
        if not self.is_admin:
            raise AuthorizationError(self.actor_id, operation)

    def require_self_or_admin(self, member_id: UUID, operation: str) -> None:
        """Members may act only on their own records."""
        if self.is_admin:
            return
        if self.member_id is None or self.member_id != member_id:
            raise AuthorizationError(self.actor_id, operation)

    @classmethod
    def admin(cls, actor_id: UUID, member_id: UUID | None = None) -> "Actor":
        return cls(actor_id=actor_id, role=Role.ADMIN, member_id=member_id)

    @classmethod
    def for_member(cls, member_id: UUID) -> "Actor":
        return cls(actor_id=member_id, role=Role.MEMBER, member_id=member_id)
