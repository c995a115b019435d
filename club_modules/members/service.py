"""
Member Module Service (``club_modules.members.service``).

Minimal member directory.  Enrollment and payment flows reference members by
id only; this service exists so reports and KPIs can join identifying fields
and count active members.

Failure modes
-------------
* Duplicate email  -> ``ValidationError`` (session rolled back).
* Unknown id  -> ``MemberNotFoundError``.
* Non-admin caller on a mutating method  -> ``AuthorizationError``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from club_kernel.domain.clock import Clock
from club_kernel.domain.identity import Actor
from club_kernel.exceptions import MemberNotFoundError, ValidationError
from club_kernel.logging_config import get_logger
from club_kernel.services.base import BaseService
from club_modules.members.models import Member, MemberDraft
from club_modules.members.orm import MemberModel

logger = get_logger("modules.members.service")


class MemberService(BaseService):
    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def create_member(self, draft: MemberDraft, actor: Actor) -> Member:
        actor.require_admin("create_member")
        now = self.clock.now()
        with self._unit_of_work("create_member", "member"):
            model = MemberModel(
                first_name=draft.first_name.strip(),
                last_name=draft.last_name.strip(),
                email=draft.email,
                role=draft.role.value,
                is_active=True,
                created_at=now,
                updated_at=now,
                created_by_id=actor.actor_id,
            )
            self.session.add(model)
            try:
                self.session.flush()
            except IntegrityError as exc:
                raise ValidationError("email", f"{draft.email} is already registered") from exc
            member = model.to_dto()

        logger.info("member_created", extra={"member_id": str(member.id), "role": member.role.value})
        return member

    def deactivate_member(self, member_id: UUID, actor: Actor) -> Member:
        actor.require_admin("deactivate_member")
        with self._unit_of_work("deactivate_member", "member", member_id):
            model = self.session.get(MemberModel, member_id)
            if model is None:
                raise MemberNotFoundError(member_id)
            model.is_active = False
            model.updated_by_id = actor.actor_id
            member = model.to_dto()

        logger.info("member_deactivated", extra={"member_id": str(member_id)})
        return member

    def get_member(self, member_id: UUID) -> Member:
        with self._read("get_member"):
            model = self.session.get(MemberModel, member_id)
            if model is None:
                raise MemberNotFoundError(member_id)
            return model.to_dto()

    def list_members(self, active_only: bool = True) -> list[Member]:
        with self._read("list_members"):
            stmt = select(MemberModel).order_by(MemberModel.last_name, MemberModel.first_name)
            if active_only:
                stmt = stmt.where(MemberModel.is_active.is_(True))
            return [m.to_dto() for m in self.session.scalars(stmt)]

    def count_active(self) -> int:
        with self._read("count_active"):
            return self.session.scalar(
                select(func.count()).select_from(MemberModel).where(MemberModel.is_active.is_(True))
            ) or 0
