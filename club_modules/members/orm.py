"""
SQLAlchemy ORM persistence model for members.

Invariants enforced
-------------------
* ``email`` is unique (``uq_member_email``), stored lower-cased.
* Members are deactivated, never hard-deleted, so historical payments keep
  their identifying fields.
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from club_kernel.db.base import TrackedBase


class MemberModel(TrackedBase):
    """Maps to the ``Member`` DTO in ``club_modules.members.models``."""

    __tablename__ = "members"

    __table_args__ = (UniqueConstraint("email", name="uq_member_email"),)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self):
        from club_kernel.domain.identity import Role
        from club_modules.members.models import Member

        return Member(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            role=Role(self.role),
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<MemberModel {self.email} [{self.role}]>"
