"""
Payment domain models.

The nouns of member payments: the update an administrator submits, the
payment state carried by enrollments and annual registrations, and the
unified ``PaymentFact`` the reporting engine folds over.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from club_kernel.domain.money import PaymentMethod, PaymentStatus, parse_payment_method
from club_kernel.exceptions import ValidationError
from club_kernel.utils.references import MAX_REFERENCE_LENGTH

MAX_NOTES_LENGTH = 500
MIN_REGISTRATION_YEAR = 2020
MAX_REGISTRATION_YEAR = 2050


class PaymentSourceType(str, Enum):
    COURSE = "course"
    ANNUAL_REGISTRATION = "annual_registration"


def validate_year(year: int) -> int:
    if isinstance(year, bool) or not isinstance(year, int):
        raise ValidationError("year", f"expected an integer year, got {year!r}")
    if not MIN_REGISTRATION_YEAR <= year <= MAX_REGISTRATION_YEAR:
        raise ValidationError(
            "year", f"must be between {MIN_REGISTRATION_YEAR} and {MAX_REGISTRATION_YEAR}"
        )
    return year


def validate_notes(notes: str | None) -> str | None:
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError("notes", f"at most {MAX_NOTES_LENGTH} characters")
    return notes


@dataclass(frozen=True)
class PaymentUpdate:
    """
    Requested payment change, validated on construction.

    ``payment_date`` is honoured only when the record has none yet.
    ``admin_correction`` must be set to move a settled record back to pending.
    """

    status: PaymentStatus
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    payment_date: datetime | None = None
    exemption_reason: str | None = None
    notes: str | None = None
    admin_correction: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.status, PaymentStatus):
            try:
                object.__setattr__(self, "status", PaymentStatus(self.status))
            except ValueError:
                raise ValidationError("status", f"unknown payment status {self.status!r}") from None
        if self.payment_method is not None:
            object.__setattr__(self, "payment_method", parse_payment_method(self.payment_method))
        if self.payment_reference is not None:
            ref = self.payment_reference.strip()
            if len(ref) > MAX_REFERENCE_LENGTH:
                raise ValidationError(
                    "payment_reference", f"at most {MAX_REFERENCE_LENGTH} characters"
                )
            object.__setattr__(self, "payment_reference", ref or None)
        if self.payment_date is not None and self.payment_date.tzinfo is None:
            raise ValidationError("payment_date", "must be timezone-aware")
        if self.exemption_reason is not None:
            object.__setattr__(self, "exemption_reason", self.exemption_reason.strip() or None)
        validate_notes(self.notes)


@dataclass(frozen=True)
class PaymentState:
    """Payment fields of one enrollment or registration."""

    status: PaymentStatus
    payment_date: datetime | None = None
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    exemption_reason: str | None = None


@dataclass(frozen=True)
class AnnualRegistration:
    id: UUID
    member_id: UUID
    year: int
    amount: int
    status: PaymentStatus
    created_at: datetime
    payment_date: datetime | None = None
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    exemption_reason: str | None = None
    notes: str | None = None

    def effective_payment_date(self) -> datetime:
        return self.payment_date or self.created_at


@dataclass(frozen=True)
class RegistrationStats:
    year: int
    total: int
    paid: int
    pending: int
    exempted: int
    revenue: int
    average_amount: Decimal


@dataclass(frozen=True)
class PaymentFact:
    """
    One payment-bearing record, projected for aggregation.  Never persisted.

    ``date`` is the payment date, or the record's creation time when the
    payment date is missing, in which case ``date_is_approximate`` is set.
    """

    amount: int
    method: PaymentMethod | None
    status: PaymentStatus
    date: datetime
    date_is_approximate: bool
    source_type: PaymentSourceType
    source_id: UUID
    member_id: UUID
    description: str
    member_name: str = ""
    member_email: str = ""
    reference: str | None = None
