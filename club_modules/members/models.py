"""Member domain models."""

from dataclasses import dataclass
from uuid import UUID

from club_kernel.domain.identity import Role
from club_kernel.exceptions import ValidationError

UNKNOWN_MEMBER_LABEL = "unknown member"


@dataclass(frozen=True)
class Member:
    id: UUID
    first_name: str
    last_name: str
    email: str
    role: Role = Role.MEMBER
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class MemberDraft:
    """Input for creating a member."""

    first_name: str
    last_name: str
    email: str
    role: Role = Role.MEMBER

    def __post_init__(self) -> None:
        if not self.first_name or not self.first_name.strip():
            raise ValidationError("first_name", "required")
        if not self.last_name or not self.last_name.strip():
            raise ValidationError("last_name", "required")
        if len(self.first_name) > 100 or len(self.last_name) > 100:
            raise ValidationError("name", "at most 100 characters")
        email = (self.email or "").strip()
        local, _, domain = email.partition("@")
        if not local or "." not in domain:
            raise ValidationError("email", f"not an email address: {self.email!r}")
        object.__setattr__(self, "email", email.lower())
        if not isinstance(self.role, Role):
            try:
                object.__setattr__(self, "role", Role(self.role))
            except ValueError:
                raise ValidationError("role", f"unknown role {self.role!r}") from None
