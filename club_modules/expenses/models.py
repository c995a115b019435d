"""
Expense Domain Models.

Operating costs the organisation pays out: equipment, facility rent,
teaching fees, events.  ``OVERDUE`` is never stored; it is derived from a
pending expense whose due date has passed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from club_kernel.exceptions import ValidationError

MAX_TITLE_LENGTH = 200
MAX_VENDOR_LENGTH = 200
MAX_NOTES_LENGTH = 2000


class ExpenseCategory(str, Enum):
    """Expense categories."""
    EQUIPMENT = "equipment"
    FACILITY = "facility"
    TEACHING = "teaching"
    EVENTS = "events"
    ADMINISTRATION = "administration"
    OTHER = "other"


class ExpenseType(str, Enum):
    ONE_TIME = "one_time"
    RECURRING = "recurring"


class ExpensePaymentMethod(str, Enum):
    """How the organisation pays a vendor."""
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    MOBILE = "mobile"
    CHECK = "check"


class ExpenseStatus(str, Enum):
    """Expense lifecycle.  OVERDUE appears on DTOs only."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class RecurrenceFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class RecurringSchedule:
    frequency: RecurrenceFrequency
    interval: int = 1
    end_date: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.frequency, RecurrenceFrequency):
            try:
                object.__setattr__(self, "frequency", RecurrenceFrequency(self.frequency))
            except ValueError:
                raise ValidationError("frequency", f"unknown frequency {self.frequency!r}") from None
        if isinstance(self.interval, bool) or not isinstance(self.interval, int) or self.interval < 1:
            raise ValidationError("interval", "must be a positive integer")
        if self.end_date is not None and self.end_date.tzinfo is None:
            raise ValidationError("end_date", "must be timezone-aware")


def effective_status(
    status: ExpenseStatus, due_date: datetime | None, now: datetime
) -> ExpenseStatus:
    if status is ExpenseStatus.PENDING and due_date is not None and due_date < now:
        return ExpenseStatus.OVERDUE
    return status


@dataclass(frozen=True)
class Expense:
    id: UUID
    title: str
    amount: int
    category: ExpenseCategory
    expense_type: ExpenseType
    payment_method: ExpensePaymentMethod
    date: datetime
    status: ExpenseStatus
    created_at: datetime
    description: str = ""
    vendor: str | None = None
    payment_reference: str | None = None
    due_date: datetime | None = None
    paid_date: datetime | None = None
    schedule: RecurringSchedule | None = None
    parent_id: UUID | None = None
    notes: str | None = None

    def effective_status(self, now: datetime) -> ExpenseStatus:
        return effective_status(self.status, self.due_date, now)

    def effective_paid_date(self) -> datetime:
        return self.paid_date or self.created_at


@dataclass(frozen=True)
class ExpenseDraft:
    """Input for recording an expense."""

    title: str
    amount: int
    category: ExpenseCategory
    payment_method: ExpensePaymentMethod
    date: datetime
    description: str = ""
    vendor: str | None = None
    payment_reference: str | None = None
    due_date: datetime | None = None
    schedule: RecurringSchedule | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        title = (self.title or "").strip()
        if not title:
            raise ValidationError("title", "required")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError("title", f"at most {MAX_TITLE_LENGTH} characters")
        object.__setattr__(self, "title", title)

        if isinstance(self.amount, bool) or not isinstance(self.amount, int) or self.amount <= 0:
            raise ValidationError("amount", "must be a positive whole amount")
        for name, enum_type in (
            ("category", ExpenseCategory),
            ("payment_method", ExpensePaymentMethod),
        ):
            value = getattr(self, name)
            if not isinstance(value, enum_type):
                try:
                    object.__setattr__(self, name, enum_type(value))
                except ValueError:
                    raise ValidationError(name, f"unknown value {value!r}") from None
        for name in ("date", "due_date"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                raise ValidationError(name, "must be timezone-aware")
        if self.vendor is not None and len(self.vendor) > MAX_VENDOR_LENGTH:
            raise ValidationError("vendor", f"at most {MAX_VENDOR_LENGTH} characters")
        if self.payment_reference is not None and len(self.payment_reference) > 100:
            raise ValidationError("payment_reference", "at most 100 characters")
        if self.notes is not None and len(self.notes) > MAX_NOTES_LENGTH:
            raise ValidationError("notes", f"at most {MAX_NOTES_LENGTH} characters")

    @property
    def expense_type(self) -> ExpenseType:
        return ExpenseType.RECURRING if self.schedule is not None else ExpenseType.ONE_TIME


@dataclass(frozen=True)
class ExpenseFilter:
    status: ExpenseStatus | None = None
    category: ExpenseCategory | None = None
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True)
class PaidExpenseResult:
    """Outcome of paying an expense; ``next_occurrence`` for recurring ones."""

    expense: Expense
    next_occurrence: Expense | None = None
