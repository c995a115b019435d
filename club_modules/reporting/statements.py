"""
Pure financial aggregation functions.

These functions fold snapshots of registrations, enrollments, courses,
members and expenses into report DTOs.  ZERO I/O. ZERO side effects.

- No database access
- No clock access (``now`` is a parameter where needed)
- Deterministic: same inputs always produce same outputs

Date rule, applied everywhere: a paid record is placed by its payment date,
or by its creation time when the payment date is missing, in which case the
result is flagged ``date_is_approximate``.  Periods are calendar dates in
the reporting timezone, both ends inclusive, evaluated as the half-open
instant range ``[start 00:00, end + 1 day 00:00)``.

A course that no longer exists is reported as ``deleted course`` with a fee
of 0; a missing member as ``unknown member``.  Nothing here raises for
missing joined data.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID
from zoneinfo import ZoneInfo

from club_kernel.domain.money import PaymentMethod, PaymentStatus
from club_modules.payments.models import PaymentFact, PaymentSourceType
from club_modules.reporting.config import ReportingConfig
from club_modules.reporting.models import (
    CategoryTotal,
    CourseAttendance,
    CoursePaymentLine,
    DetailedReport,
    ExpenseLine,
    FinancialSummary,
    KPIs,
    MemberLedger,
    MonthlyBucket,
    MonthlySeries,
    PaymentFilter,
    PaymentStats,
    PendingOverview,
    RegistrationLine,
    ReportPeriod,
    RevenueBreakdown,
)

# =========================================================================
# Bridge types: snapshots for pure functions
# =========================================================================


@dataclasses.dataclass(frozen=True)
class CourseInfo:
    course_id: UUID
    title: str
    date: datetime
    price: int
    status: str
    max_participants: int = 0


@dataclasses.dataclass(frozen=True)
class MemberInfo:
    member_id: UUID
    name: str
    email: str


@dataclasses.dataclass(frozen=True)
class RegistrationInfo:
    registration_id: UUID
    member_id: UUID
    year: int
    amount: int
    status: PaymentStatus
    created_at: datetime
    payment_date: datetime | None = None
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None


@dataclasses.dataclass(frozen=True)
class EnrollmentInfo:
    enrollment_id: UUID
    course_id: UUID
    member_id: UUID
    created_at: datetime
    payment_status: PaymentStatus
    attended: bool = False
    payment_date: datetime | None = None
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None


@dataclasses.dataclass(frozen=True)
class ExpenseInfo:
    expense_id: UUID
    title: str
    category: str
    amount: int
    status: str
    date: datetime
    created_at: datetime
    payment_method: str
    due_date: datetime | None = None
    paid_date: datetime | None = None
    vendor: str | None = None


# =========================================================================
# Helpers
# =========================================================================


def effective_date(recorded: datetime | None, created_at: datetime) -> tuple[datetime, bool]:
    """Payment date, or creation time flagged as approximate."""
    if recorded is not None:
        return recorded, False
    return created_at, True


def period_bounds(period: ReportPeriod, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC instants ``[start 00:00, end + 1 day 00:00)`` in ``tz``."""
    lo = datetime.combine(period.start, time.min, tzinfo=tz)
    hi = datetime.combine(period.end + timedelta(days=1), time.min, tzinfo=tz)
    return lo.astimezone(timezone.utc), hi.astimezone(timezone.utc)


def in_range(moment: datetime, bounds: tuple[datetime, datetime]) -> bool:
    lo, hi = bounds
    return lo <= moment < hi


def ratio(numerator: int | Decimal, denominator: int | Decimal, places: int = 4) -> Decimal:
    """``numerator / denominator`` rounded half-up; 0 when the denominator is 0."""
    if not denominator:
        return Decimal(0).quantize(Decimal(1).scaleb(-places))
    return (Decimal(numerator) / Decimal(denominator)).quantize(
        Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP
    )


def course_label(course: CourseInfo | None, config: ReportingConfig) -> tuple[str, int]:
    if course is None:
        return config.deleted_course_label, 0
    return course.title, course.price


def member_label(member: MemberInfo | None, config: ReportingConfig) -> tuple[str, str]:
    if member is None:
        return config.unknown_member_label, ""
    return member.name, member.email


# =========================================================================
# 1. PAYMENT FACTS
# =========================================================================


def registration_facts(
    registrations: Iterable[RegistrationInfo],
    members: Mapping[UUID, MemberInfo],
    config: ReportingConfig,
) -> list[PaymentFact]:
    facts = []
    for reg in registrations:
        when, approx = effective_date(reg.payment_date, reg.created_at)
        name, email = member_label(members.get(reg.member_id), config)
        facts.append(
            PaymentFact(
                amount=reg.amount,
                method=reg.payment_method,
                status=reg.status,
                date=when,
                date_is_approximate=approx,
                source_type=PaymentSourceType.ANNUAL_REGISTRATION,
                source_id=reg.registration_id,
                member_id=reg.member_id,
                description=f"Annual registration {reg.year}",
                member_name=name,
                member_email=email,
                reference=reg.payment_reference,
            )
        )
    return facts


def course_facts(
    enrollments: Iterable[EnrollmentInfo],
    courses: Mapping[UUID, CourseInfo],
    members: Mapping[UUID, MemberInfo],
    config: ReportingConfig,
) -> list[PaymentFact]:
    facts = []
    for enr in enrollments:
        title, fee = course_label(courses.get(enr.course_id), config)
        when, approx = effective_date(enr.payment_date, enr.created_at)
        name, email = member_label(members.get(enr.member_id), config)
        facts.append(
            PaymentFact(
                amount=fee,
                method=enr.payment_method,
                status=enr.payment_status,
                date=when,
                date_is_approximate=approx,
                source_type=PaymentSourceType.COURSE,
                source_id=enr.enrollment_id,
                member_id=enr.member_id,
                description=title,
                member_name=name,
                member_email=email,
                reference=enr.payment_reference,
            )
        )
    return facts


def _paid_in(facts: Iterable[PaymentFact], bounds: tuple[datetime, datetime]) -> list[PaymentFact]:
    return [f for f in facts if f.status is PaymentStatus.PAID and in_range(f.date, bounds)]


def _paid_expenses_in(
    expenses: Iterable[ExpenseInfo], bounds: tuple[datetime, datetime]
) -> list[tuple[ExpenseInfo, datetime, bool]]:
    rows = []
    for exp in expenses:
        if exp.status != "paid":
            continue
        when, approx = effective_date(exp.paid_date, exp.created_at)
        if in_range(when, bounds):
            rows.append((exp, when, approx))
    return rows


# =========================================================================
# 2. SUMMARY
# =========================================================================


def build_summary(
    period: ReportPeriod,
    facts: Iterable[PaymentFact],
    expenses: Iterable[ExpenseInfo],
    config: ReportingConfig,
) -> FinancialSummary:
    bounds = period_bounds(period, config.tz)
    paid = _paid_in(facts, bounds)
    paid_expenses = _paid_expenses_in(expenses, bounds)

    registrations = [f for f in paid if f.source_type is PaymentSourceType.ANNUAL_REGISTRATION]
    courses = [f for f in paid if f.source_type is PaymentSourceType.COURSE]
    breakdown = RevenueBreakdown(
        registration_amount=sum(f.amount for f in registrations),
        registration_count=len(registrations),
        course_amount=sum(f.amount for f in courses),
        course_count=len(courses),
    )
    revenue = breakdown.registration_amount + breakdown.course_amount
    total_expenses = sum(exp.amount for exp, _, _ in paid_expenses)
    net = revenue - total_expenses
    approximate = sum(1 for f in paid if f.date_is_approximate) + sum(
        1 for _, _, approx in paid_expenses if approx
    )

    return FinancialSummary(
        period_start=period.start,
        period_end=period.end,
        total_revenue=revenue,
        total_expenses=total_expenses,
        net_profit=net,
        profit_margin=ratio(net, revenue, config.ratio_places),
        breakdown=breakdown,
        approximate_dates=approximate,
    )


# =========================================================================
# 3. MONTHLY SERIES
# =========================================================================


def build_monthly_series(
    year: int,
    facts: Iterable[PaymentFact],
    expenses: Iterable[ExpenseInfo],
    config: ReportingConfig,
) -> MonthlySeries:
    """Twelve buckets keyed by the month of the effective date in the
    reporting timezone.  Summing the buckets equals the yearly summary."""
    tz = config.tz
    registration = [0] * 12
    course = [0] * 12
    spent = [0] * 12

    bounds = period_bounds(ReportPeriod.for_year(year), tz)
    for f in _paid_in(facts, bounds):
        idx = f.date.astimezone(tz).month - 1
        if f.source_type is PaymentSourceType.ANNUAL_REGISTRATION:
            registration[idx] += f.amount
        else:
            course[idx] += f.amount
    for exp, when, _ in _paid_expenses_in(expenses, bounds):
        spent[when.astimezone(tz).month - 1] += exp.amount

    return MonthlySeries(
        year=year,
        months=tuple(
            MonthlyBucket(
                month=i + 1,
                registration_revenue=registration[i],
                course_revenue=course[i],
                total_revenue=registration[i] + course[i],
                expenses=spent[i],
                net_profit=registration[i] + course[i] - spent[i],
            )
            for i in range(12)
        ),
    )


# =========================================================================
# 4. MEMBER LEDGER
# =========================================================================


def build_member_ledger(
    member_id: UUID,
    year: int,
    member: MemberInfo | None,
    registration: RegistrationInfo | None,
    enrollments: Iterable[EnrollmentInfo],
    courses: Mapping[UUID, CourseInfo],
    config: ReportingConfig,
) -> MemberLedger:
    """
    What one member paid and owes for ``year``.

    Courses count when the enrollment was created in the year.  Exempted
    items are neither paid nor owed.
    """
    bounds = period_bounds(ReportPeriod.for_year(year), config.tz)
    total_paid = 0
    total_owed = 0

    if registration is not None:
        if registration.status is PaymentStatus.PAID:
            total_paid += registration.amount
        elif registration.status is PaymentStatus.PENDING:
            total_owed += registration.amount

    enrolled = 0
    paid_courses = 0
    for enr in enrollments:
        if enr.member_id != member_id or not in_range(enr.created_at, bounds):
            continue
        enrolled += 1
        _, fee = course_label(courses.get(enr.course_id), config)
        if enr.payment_status is PaymentStatus.PAID:
            paid_courses += 1
            total_paid += fee
        elif enr.payment_status is PaymentStatus.PENDING:
            total_owed += fee

    name, _ = member_label(member, config)
    return MemberLedger(
        member_id=member_id,
        year=year,
        member_name=name,
        registration_status=registration.status if registration else None,
        registration_amount=registration.amount if registration else 0,
        courses_enrolled=enrolled,
        courses_paid=paid_courses,
        total_paid=total_paid,
        total_owed=total_owed,
    )


# =========================================================================
# 5. DETAILED REPORT
# =========================================================================


def build_detailed_report(
    period: ReportPeriod,
    registrations: Iterable[RegistrationInfo],
    enrollments: Iterable[EnrollmentInfo],
    courses: Mapping[UUID, CourseInfo],
    members: Mapping[UUID, MemberInfo],
    expenses: Iterable[ExpenseInfo],
    config: ReportingConfig,
) -> DetailedReport:
    registrations = list(registrations)
    enrollments = list(enrollments)
    expenses = list(expenses)
    bounds = period_bounds(period, config.tz)

    facts = registration_facts(registrations, members, config) + course_facts(
        enrollments, courses, members, config
    )
    summary = build_summary(period, facts, expenses, config)

    reg_lines = []
    for reg in registrations:
        when, approx = effective_date(reg.payment_date, reg.created_at)
        if reg.status is not PaymentStatus.PAID or not in_range(when, bounds):
            continue
        name, email = member_label(members.get(reg.member_id), config)
        reg_lines.append(
            RegistrationLine(
                registration_id=reg.registration_id,
                member_id=reg.member_id,
                member_name=name,
                member_email=email,
                year=reg.year,
                amount=reg.amount,
                payment_date=when,
                date_is_approximate=approx,
                payment_method=reg.payment_method,
                payment_reference=reg.payment_reference,
            )
        )

    course_lines = []
    for enr in enrollments:
        when, approx = effective_date(enr.payment_date, enr.created_at)
        if enr.payment_status is not PaymentStatus.PAID or not in_range(when, bounds):
            continue
        course = courses.get(enr.course_id)
        title, fee = course_label(course, config)
        name, email = member_label(members.get(enr.member_id), config)
        course_lines.append(
            CoursePaymentLine(
                enrollment_id=enr.enrollment_id,
                course_id=enr.course_id,
                course_title=title,
                course_date=course.date if course else None,
                member_id=enr.member_id,
                member_name=name,
                member_email=email,
                amount=fee,
                payment_date=when,
                date_is_approximate=approx,
                payment_method=enr.payment_method,
                payment_reference=enr.payment_reference,
            )
        )

    expense_lines = [
        ExpenseLine(
            expense_id=exp.expense_id,
            title=exp.title,
            category=exp.category,
            vendor=exp.vendor,
            amount=exp.amount,
            paid_date=when,
            date_is_approximate=approx,
            payment_method=exp.payment_method,
        )
        for exp, when, approx in _paid_expenses_in(expenses, bounds)
    ]

    return DetailedReport(
        summary=summary,
        registrations=tuple(sorted(reg_lines, key=lambda r: r.payment_date)),
        course_payments=tuple(sorted(course_lines, key=lambda c: c.payment_date)),
        expenses=tuple(sorted(expense_lines, key=lambda e: e.paid_date)),
    )


# =========================================================================
# 6. DASHBOARD PIECES
# =========================================================================


def build_expenses_by_category(
    period: ReportPeriod, expenses: Iterable[ExpenseInfo], config: ReportingConfig
) -> tuple[CategoryTotal, ...]:
    """Paid expense totals per category, largest first."""
    totals: dict[str, list[int]] = {}
    for exp, _, _ in _paid_expenses_in(expenses, period_bounds(period, config.tz)):
        bucket = totals.setdefault(exp.category, [0, 0])
        bucket[0] += exp.amount
        bucket[1] += 1
    return tuple(
        CategoryTotal(category=cat, amount=amount, count=count)
        for cat, (amount, count) in sorted(totals.items(), key=lambda kv: (-kv[1][0], kv[0]))
    )


def build_pending_overview(
    year: int,
    registrations: Iterable[RegistrationInfo],
    enrollments: Iterable[EnrollmentInfo],
    courses: Mapping[UUID, CourseInfo],
    expenses: Iterable[ExpenseInfo],
    now: datetime,
    config: ReportingConfig,
) -> PendingOverview:
    pending_regs = [
        r for r in registrations if r.year == year and r.status is PaymentStatus.PENDING
    ]
    pending_courses = [e for e in enrollments if e.payment_status is PaymentStatus.PENDING]
    unpaid = [e for e in expenses if e.status == "pending"]
    overdue = [e for e in unpaid if e.due_date is not None and e.due_date < now]

    return PendingOverview(
        year=year,
        pending_registrations=len(pending_regs),
        pending_registration_amount=sum(r.amount for r in pending_regs),
        pending_course_payments=len(pending_courses),
        pending_course_amount=sum(
            course_label(courses.get(e.course_id), config)[1] for e in pending_courses
        ),
        unpaid_expenses=len(unpaid),
        unpaid_expense_amount=sum(e.amount for e in unpaid),
        overdue_expenses=len(overdue),
        overdue_expense_amount=sum(e.amount for e in overdue),
    )


# =========================================================================
# 7. PAYMENT HISTORY
# =========================================================================


def filter_payments(
    facts: Iterable[PaymentFact], filters: PaymentFilter, config: ReportingConfig
) -> list[PaymentFact]:
    """Apply ``filters``; newest first."""
    bounds = None
    if filters.start or filters.end:
        start = filters.start or date(1900, 1, 1)
        end = filters.end or date(9998, 12, 31)
        bounds = period_bounds(ReportPeriod(start, end), config.tz)

    selected = []
    for f in facts:
        if filters.source_type is not None and f.source_type is not filters.source_type:
            continue
        if filters.method is not None and f.method is not filters.method:
            continue
        if filters.status is not None and f.status is not filters.status:
            continue
        if bounds is not None and not in_range(f.date, bounds):
            continue
        if filters.search:
            haystack = " ".join(
                (f.member_name, f.member_email, f.description, f.reference or "")
            ).lower()
            if filters.search not in haystack:
                continue
        selected.append(f)
    return sorted(selected, key=lambda f: f.date, reverse=True)


def build_payment_stats(facts: Iterable[PaymentFact]) -> PaymentStats:
    facts = list(facts)
    paid = [f for f in facts if f.status is PaymentStatus.PAID]
    course = sum(f.amount for f in paid if f.source_type is PaymentSourceType.COURSE)
    registration = sum(
        f.amount for f in paid if f.source_type is PaymentSourceType.ANNUAL_REGISTRATION
    )
    total = course + registration
    return PaymentStats(
        total_revenue=total,
        course_revenue=course,
        registration_revenue=registration,
        pending_amount=sum(f.amount for f in facts if f.status is PaymentStatus.PENDING),
        transaction_count=len(paid),
        average_transaction=ratio(total, len(paid), 2),
    )


# =========================================================================
# 8. KPIs
# =========================================================================


def build_kpis(
    now: datetime,
    active_members: int,
    paid_registrations_this_year: int,
    month_courses: Iterable[CourseInfo],
    recent_courses: Iterable[CourseInfo],
    enrollments_by_course: Mapping[UUID, list[EnrollmentInfo]],
    pending_attended_payments: int,
    config: ReportingConfig,
) -> KPIs:
    """
    Rates are ratios in [0, 1].  Average attendance covers this month's
    ongoing or completed courses that have at least one enrollment.
    """
    month_courses = list(month_courses)
    rates = []
    for course in month_courses:
        if course.status not in ("ongoing", "completed"):
            continue
        enrolled = enrollments_by_course.get(course.course_id, [])
        if enrolled:
            rates.append(Decimal(sum(1 for e in enrolled if e.attended)) / len(enrolled))

    average_attendance = ratio(sum(rates, Decimal(0)), len(rates), config.ratio_places)

    recent = tuple(
        CourseAttendance(
            course_id=c.course_id,
            title=c.title,
            date=c.date,
            attended=sum(1 for e in enrollments_by_course.get(c.course_id, []) if e.attended),
            enrolled=len(enrollments_by_course.get(c.course_id, [])),
        )
        for c in recent_courses
    )

    return KPIs(
        as_of=now,
        active_members=active_members,
        registration_payment_rate=ratio(
            min(paid_registrations_this_year, active_members), active_members, config.ratio_places
        ),
        courses_this_month=len(month_courses),
        average_attendance_this_month=average_attendance,
        pending_course_payments=pending_attended_payments,
        recent_attendance=recent,
    )


# =========================================================================
# 9. RENDERER (dict/JSON output)
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to a plain dict for JSON serialization.

    Handles:
    - Decimal -> str (preserving precision)
    - UUID -> str
    - datetime / date -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts
    - Tuples -> lists
    - None preserved
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
