"""
SQLAlchemy ORM persistence model for annual registrations.

Invariants enforced
-------------------
* One registration per member per year (``uq_registration_member_year``).
* Amounts are whole currency units (BigInteger), never float.
* ``version`` is the optimistic lock column; a concurrent writer that lost
  the race gets ``StaleDataError`` at flush.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from club_kernel.db.base import TrackedBase


class AnnualRegistrationModel(TrackedBase):
    """Maps to the ``AnnualRegistration`` DTO in ``club_modules.payments.models``."""

    __tablename__ = "annual_registrations"

    __table_args__ = (
        UniqueConstraint("member_id", "year", name="uq_registration_member_year"),
        Index("idx_registration_year_status", "year", "status"),
    )

    member_id: Mapped[UUID] = mapped_column(nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    payment_date: Mapped[datetime | None]
    payment_method: Mapped[str | None] = mapped_column(String(30))
    payment_reference: Mapped[str | None] = mapped_column(String(100))
    exemption_reason: Mapped[str | None] = mapped_column(String(500))
    notes: Mapped[str | None] = mapped_column(Text)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def payment_state(self):
        from club_kernel.domain.money import PaymentStatus, parse_payment_method
        from club_modules.payments.models import PaymentState

        return PaymentState(
            status=PaymentStatus(self.status),
            payment_date=self.payment_date,
            payment_method=parse_payment_method(self.payment_method) if self.payment_method else None,
            payment_reference=self.payment_reference,
            exemption_reason=self.exemption_reason,
        )

    def set_payment_state(self, state) -> None:
        self.status = state.status.value
        self.payment_date = state.payment_date
        self.payment_method = state.payment_method.value if state.payment_method else None
        self.payment_reference = state.payment_reference
        self.exemption_reason = state.exemption_reason

    def to_dto(self):
        from club_modules.payments.models import AnnualRegistration

        state = self.payment_state()
        return AnnualRegistration(
            id=self.id,
            member_id=self.member_id,
            year=self.year,
            amount=self.amount,
            status=state.status,
            created_at=self.created_at,
            payment_date=state.payment_date,
            payment_method=state.payment_method,
            payment_reference=state.payment_reference,
            exemption_reason=state.exemption_reason,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<AnnualRegistrationModel {self.member_id} {self.year} [{self.status}]>"
