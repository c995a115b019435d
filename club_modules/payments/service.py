"""
Payments Module Service (``club_modules.payments.service``).

Responsibility
--------------
Payment State Tracker for course enrollments and annual registrations,
plus annual registration bookkeeping (create, delete, yearly statistics,
members missing a registration).

Invariants enforced
-------------------
* Every status change goes through ``payments.transitions.apply_transition``;
  this service only loads the row, applies the computed state and commits.
* Rows are read ``FOR UPDATE`` and carry a version column, so two
  administrators updating the same payment cannot silently overwrite each
  other (the loser gets ``ConcurrentModificationError``).
* One registration per member per year.

Failure modes
-------------
* ``InvalidPaymentTransitionError`` / ``ValidationError`` from the transition
  rules; nothing is written.
* ``EnrollmentNotFoundError`` / ``RegistrationNotFoundError`` for unknown rows.
* ``RegistrationExistsError`` on a duplicate (member, year).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from club_config import ClubConfig, get_active_config
from club_kernel.domain.clock import Clock
from club_kernel.domain.identity import Actor
from club_kernel.domain.money import PaymentStatus
from club_kernel.exceptions import (
    EnrollmentNotFoundError,
    RegistrationExistsError,
    RegistrationNotFoundError,
    ValidationError,
)
from club_kernel.logging_config import LogContext, get_logger
from club_kernel.services.base import BaseService
from club_kernel.utils.references import ReferenceKind
from club_modules.courses.models import Enrollment
from club_modules.courses.orm import EnrollmentModel
from club_modules.members.models import Member
from club_modules.members.orm import MemberModel
from club_modules.payments.models import (
    AnnualRegistration,
    PaymentUpdate,
    RegistrationStats,
    validate_notes,
    validate_year,
)
from club_modules.payments.orm import AnnualRegistrationModel
from club_modules.payments.transitions import apply_transition

logger = get_logger("modules.payments.service")


class PaymentService(BaseService):
    """
    Records payment outcomes reported by administrators.

    All mutating methods are admin-only.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ClubConfig | None = None,
    ):
        super().__init__(session, clock)
        self._config = config or get_active_config()

    # =========================================================================
    # Course enrollments
    # =========================================================================

    def record_enrollment_payment(
        self,
        course_id: UUID,
        member_id: UUID,
        update: PaymentUpdate,
        actor: Actor,
    ) -> Enrollment:
        actor.require_admin("record_enrollment_payment")
        now = self.clock.now()

        with LogContext.bind(
            actor_id=actor.actor_id, member_id=member_id, course_id=course_id,
            operation="record_enrollment_payment",
        ):
            with self._unit_of_work("record_enrollment_payment", "enrollment"):
                model = self.session.scalar(
                    select(EnrollmentModel)
                    .where(
                        EnrollmentModel.course_id == course_id,
                        EnrollmentModel.member_id == member_id,
                    )
                    .with_for_update()
                )
                if model is None:
                    raise EnrollmentNotFoundError(course_id, member_id)

                previous = model.payment_status
                outcome = apply_transition(
                    model.payment_state(), update, now=now, kind=ReferenceKind.COURSE
                )
                if outcome.changed:
                    model.set_payment_state(outcome.state)
                if update.notes is not None:
                    model.notes = update.notes
                model.updated_by_id = actor.actor_id
                self.session.flush()
                enrollment = model.to_dto()

            logger.info(
                "enrollment_payment_recorded",
                extra={
                    "from_status": previous,
                    "to_status": enrollment.payment_status.value,
                    "changed": outcome.changed,
                    "payment_reference": enrollment.payment_reference,
                },
            )
        return enrollment

    # =========================================================================
    # Annual registrations
    # =========================================================================

    def register_annual(
        self,
        member_id: UUID,
        year: int,
        actor: Actor,
        amount: int | None = None,
        notes: str | None = None,
    ) -> AnnualRegistration:
        """Create a pending registration for ``year``.

        ``amount`` defaults to the organisation's annual fee.
        """
        actor.require_admin("register_annual")
        validate_year(year)
        validate_notes(notes)
        if amount is None:
            amount = self._config.default_annual_fee
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValidationError("amount", f"must be a non-negative integer, got {amount!r}")
        now = self.clock.now()

        with self._unit_of_work("register_annual", "annual_registration"):
            existing = self.session.scalar(
                select(AnnualRegistrationModel.id).where(
                    AnnualRegistrationModel.member_id == member_id,
                    AnnualRegistrationModel.year == year,
                )
            )
            if existing is not None:
                raise RegistrationExistsError(member_id, year)

            model = AnnualRegistrationModel(
                member_id=member_id,
                year=year,
                amount=amount,
                status=PaymentStatus.PENDING.value,
                notes=notes,
                created_at=now,
                updated_at=now,
                created_by_id=actor.actor_id,
            )
            self.session.add(model)
            try:
                self.session.flush()
            except IntegrityError as exc:
                raise RegistrationExistsError(member_id, year) from exc
            registration = model.to_dto()

        logger.info(
            "annual_registration_created",
            extra={"registration_id": str(registration.id), "member_id": str(member_id),
                   "year": year, "amount": amount},
        )
        return registration

    def record_registration_payment(
        self,
        registration_id: UUID,
        update: PaymentUpdate,
        actor: Actor,
    ) -> AnnualRegistration:
        """Apply a status change.  Exempting a registration requires a reason."""
        actor.require_admin("record_registration_payment")
        now = self.clock.now()

        with self._unit_of_work(
            "record_registration_payment", "annual_registration", registration_id
        ):
            model = self.session.scalar(
                select(AnnualRegistrationModel)
                .where(AnnualRegistrationModel.id == registration_id)
                .with_for_update()
            )
            if model is None:
                raise RegistrationNotFoundError(registration_id)

            previous = model.status
            outcome = apply_transition(
                model.payment_state(),
                update,
                now=now,
                kind=ReferenceKind.ANNUAL_REGISTRATION,
                requires_exemption_reason=True,
            )
            if outcome.changed:
                model.set_payment_state(outcome.state)
            if update.notes is not None:
                model.notes = update.notes
            model.updated_by_id = actor.actor_id
            self.session.flush()
            registration = model.to_dto()

        logger.info(
            "registration_payment_recorded",
            extra={
                "registration_id": str(registration_id),
                "from_status": previous,
                "to_status": registration.status.value,
                "changed": outcome.changed,
            },
        )
        return registration

    def delete_registration(self, registration_id: UUID, actor: Actor) -> None:
        actor.require_admin("delete_registration")
        with self._unit_of_work("delete_registration", "annual_registration", registration_id):
            model = self.session.get(AnnualRegistrationModel, registration_id)
            if model is None:
                raise RegistrationNotFoundError(registration_id)
            status = model.status
            self.session.delete(model)

        logger.warning(
            "annual_registration_deleted",
            extra={"registration_id": str(registration_id), "status": status},
        )

    def get_registration(self, registration_id: UUID) -> AnnualRegistration:
        with self._read("get_registration"):
            model = self.session.get(AnnualRegistrationModel, registration_id)
            if model is None:
                raise RegistrationNotFoundError(registration_id)
            return model.to_dto()

    def get_member_registration(self, member_id: UUID, year: int) -> AnnualRegistration | None:
        with self._read("get_member_registration"):
            model = self.session.scalar(
                select(AnnualRegistrationModel).where(
                    AnnualRegistrationModel.member_id == member_id,
                    AnnualRegistrationModel.year == year,
                )
            )
            return model.to_dto() if model is not None else None

    def list_registrations(
        self, year: int, status: PaymentStatus | None = None
    ) -> list[AnnualRegistration]:
        with self._read("list_registrations"):
            stmt = (
                select(AnnualRegistrationModel)
                .where(AnnualRegistrationModel.year == year)
                .order_by(AnnualRegistrationModel.created_at)
            )
            if status is not None:
                stmt = stmt.where(AnnualRegistrationModel.status == PaymentStatus(status).value)
            return [r.to_dto() for r in self.session.scalars(stmt)]

    def registration_stats(self, year: int) -> RegistrationStats:
        """Counts by status, paid revenue and the average registration amount."""
        with self._read("registration_stats"):
            validate_year(year)
            rows = self.session.execute(
                select(AnnualRegistrationModel.status, AnnualRegistrationModel.amount).where(
                    AnnualRegistrationModel.year == year
                )
            ).all()

            counts = {s: 0 for s in PaymentStatus}
            revenue = 0
            for status, amount in rows:
                counts[PaymentStatus(status)] += 1
                if status == PaymentStatus.PAID.value:
                    revenue += amount

            total = len(rows)
            average = Decimal("0")
            if total:
                average = (Decimal(sum(a for _, a in rows)) / total).quantize(
                    Decimal("0.01"), rounding=ROUND_HALF_UP
                )
            return RegistrationStats(
                year=year,
                total=total,
                paid=counts[PaymentStatus.PAID],
                pending=counts[PaymentStatus.PENDING],
                exempted=counts[PaymentStatus.EXEMPTED],
                revenue=revenue,
                average_amount=average,
            )

    def members_without_registration(self, year: int) -> list[Member]:
        """Active members with no registration row for ``year``."""
        with self._read("members_without_registration"):
            validate_year(year)
            registered = select(AnnualRegistrationModel.member_id).where(
                AnnualRegistrationModel.year == year
            )
            stmt = (
                select(MemberModel)
                .where(MemberModel.is_active.is_(True), MemberModel.id.not_in(registered))
                .order_by(MemberModel.last_name, MemberModel.first_name)
            )
            return [m.to_dto() for m in self.session.scalars(stmt)]

    def count_registrations(self, year: int) -> int:
        with self._read("count_registrations"):
            return self.session.scalar(
                select(func.count())
                .select_from(AnnualRegistrationModel)
                .where(AnnualRegistrationModel.year == year)
            ) or 0
