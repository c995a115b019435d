"""
Reporting Domain Models.

Frozen result types produced by the aggregation engine.  All money is whole
units (``int``); ratios are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from club_kernel.domain.money import PaymentMethod, PaymentStatus
from club_kernel.exceptions import ValidationError
from club_modules.payments.models import PaymentFact, PaymentSourceType


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"

    @classmethod
    def parse(cls, value: "str | ExportFormat") -> "ExportFormat":
        try:
            return cls(value.lower() if isinstance(value, str) else value)
        except ValueError:
            raise ValidationError("format", f"unsupported export format {value!r}") from None


class ReportKind(str, Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    MONTHLY = "monthly"
    MEMBER_LEDGER = "member_ledger"
    PAYMENT_HISTORY = "payment_history"
    DASHBOARD = "dashboard"


@dataclass(frozen=True)
class ReportPeriod:
    """Calendar-date period, both days inclusive."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if isinstance(self.start, datetime) or isinstance(self.end, datetime):
            raise ValidationError("period", "expected calendar dates, not datetimes")
        if self.end < self.start:
            raise ValidationError("period", f"end {self.end} is before start {self.start}")

    @classmethod
    def for_year(cls, year: int) -> "ReportPeriod":
        return cls(date(year, 1, 1), date(year, 12, 31))

    @classmethod
    def for_month(cls, year: int, month: int) -> "ReportPeriod":
        if not 1 <= month <= 12:
            raise ValidationError("month", "must be between 1 and 12")
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return cls(date(year, month, 1), date.fromordinal(end.toordinal() - 1))


@dataclass(frozen=True)
class RevenueBreakdown:
    registration_amount: int = 0
    registration_count: int = 0
    course_amount: int = 0
    course_count: int = 0


@dataclass(frozen=True)
class FinancialSummary:
    period_start: date
    period_end: date
    total_revenue: int
    total_expenses: int
    net_profit: int
    profit_margin: Decimal
    breakdown: RevenueBreakdown
    approximate_dates: int = 0


@dataclass(frozen=True)
class MonthlyBucket:
    month: int
    registration_revenue: int = 0
    course_revenue: int = 0
    total_revenue: int = 0
    expenses: int = 0
    net_profit: int = 0


@dataclass(frozen=True)
class MonthlySeries:
    year: int
    months: tuple[MonthlyBucket, ...]

    @property
    def total_revenue(self) -> int:
        return sum(m.total_revenue for m in self.months)

    @property
    def total_expenses(self) -> int:
        return sum(m.expenses for m in self.months)


@dataclass(frozen=True)
class MemberLedger:
    member_id: UUID
    year: int
    member_name: str
    registration_status: PaymentStatus | None
    registration_amount: int
    courses_enrolled: int
    courses_paid: int
    total_paid: int
    total_owed: int


@dataclass(frozen=True)
class RegistrationLine:
    registration_id: UUID
    member_id: UUID
    member_name: str
    member_email: str
    year: int
    amount: int
    payment_date: datetime
    date_is_approximate: bool
    payment_method: PaymentMethod | None
    payment_reference: str | None


@dataclass(frozen=True)
class CoursePaymentLine:
    enrollment_id: UUID
    course_id: UUID
    course_title: str
    course_date: datetime | None
    member_id: UUID
    member_name: str
    member_email: str
    amount: int
    payment_date: datetime
    date_is_approximate: bool
    payment_method: PaymentMethod | None
    payment_reference: str | None


@dataclass(frozen=True)
class ExpenseLine:
    expense_id: UUID
    title: str
    category: str
    vendor: str | None
    amount: int
    paid_date: datetime
    date_is_approximate: bool
    payment_method: str


@dataclass(frozen=True)
class DetailedReport:
    summary: FinancialSummary
    registrations: tuple[RegistrationLine, ...]
    course_payments: tuple[CoursePaymentLine, ...]
    expenses: tuple[ExpenseLine, ...]


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: int
    count: int


@dataclass(frozen=True)
class PendingOverview:
    year: int
    pending_registrations: int
    pending_registration_amount: int
    pending_course_payments: int
    pending_course_amount: int
    unpaid_expenses: int
    unpaid_expense_amount: int
    overdue_expenses: int
    overdue_expense_amount: int


@dataclass(frozen=True)
class Dashboard:
    year: int
    month: int | None
    summary: FinancialSummary
    monthly: MonthlySeries
    expenses_by_category: tuple[CategoryTotal, ...]
    pending: PendingOverview


@dataclass(frozen=True)
class PaymentFilter:
    """Filters for the unified payment history; all optional."""

    source_type: PaymentSourceType | None = None
    method: PaymentMethod | None = None
    status: PaymentStatus | None = None
    start: date | None = None
    end: date | None = None
    search: str | None = None

    def __post_init__(self) -> None:
        if self.start and self.end and self.end < self.start:
            raise ValidationError("period", f"end {self.end} is before start {self.start}")
        if self.search is not None:
            object.__setattr__(self, "search", self.search.strip().lower() or None)


@dataclass(frozen=True)
class PaymentStats:
    total_revenue: int
    course_revenue: int
    registration_revenue: int
    pending_amount: int
    transaction_count: int
    average_transaction: Decimal


@dataclass(frozen=True)
class PaymentHistory:
    payments: tuple[PaymentFact, ...]
    stats: PaymentStats


@dataclass(frozen=True)
class CourseAttendance:
    course_id: UUID
    title: str
    date: datetime
    attended: int
    enrolled: int


@dataclass(frozen=True)
class KPIs:
    as_of: datetime
    active_members: int
    registration_payment_rate: Decimal
    courses_this_month: int
    average_attendance_this_month: Decimal
    pending_course_payments: int
    recent_attendance: tuple[CourseAttendance, ...] = ()
