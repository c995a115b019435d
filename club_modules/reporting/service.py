"""
Reporting Module Service (``club_modules.reporting.service``).

Responsibility
--------------
Financial Aggregation Engine entry point.  Bridges ``ReportingSelector``
loads to the pure folds in ``statements.py``: period summaries, monthly
series, member ledgers, detailed reports, dashboards, unified payment
history and KPIs.

Invariants enforced
-------------------
* Read-only -- never mutates source records and never commits.
* One date rule everywhere (payment date, else creation time, flagged).
* Periods are calendar dates in the reporting timezone, both ends inclusive.

Failure modes
-------------
* Invalid parameters (end before start, bad month)  -> ``ValidationError``
  raised before any query runs.
* Missing joined course / member  -> sentinel labels, never an error.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from club_config import ClubConfig, get_active_config
from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.domain.money import PaymentStatus
from club_kernel.logging_config import get_logger
from club_modules.payments.models import (
    MAX_REGISTRATION_YEAR,
    MIN_REGISTRATION_YEAR,
    PaymentFact,
    PaymentSourceType,
    validate_year,
)
from club_modules.reporting.config import ReportingConfig
from club_modules.reporting.models import (
    CategoryTotal,
    Dashboard,
    DetailedReport,
    FinancialSummary,
    KPIs,
    MemberLedger,
    MonthlySeries,
    PaymentFilter,
    PaymentHistory,
    PendingOverview,
    ReportPeriod,
)
from club_modules.reporting.selectors import ReportingSelector
from club_modules.reporting.statements import (
    build_detailed_report,
    build_expenses_by_category,
    build_kpis,
    build_member_ledger,
    build_monthly_series,
    build_payment_stats,
    build_pending_overview,
    build_summary,
    course_facts,
    filter_payments,
    period_bounds,
    registration_facts,
)

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Financial aggregation service.

    Contract
    --------
    * Every public method returns a frozen report DTO.
    * All methods are read-only.  Constructor: ``session`` + ``clock`` +
      ``config``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ClubConfig | ReportingConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        if isinstance(config, ReportingConfig):
            self._config = config
        else:
            self._config = ReportingConfig.from_club_config(config or get_active_config())
        self._selector = ReportingSelector(session)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _paid_facts(self, period: ReportPeriod) -> list[PaymentFact]:
        lo, hi = period_bounds(period, self._config.tz)
        registrations = self._selector.registrations(lo, hi, PaymentStatus.PAID)
        enrollments = self._selector.enrollments(lo, hi, PaymentStatus.PAID)
        members = self._selector.members(
            [r.member_id for r in registrations] + [e.member_id for e in enrollments]
        )
        courses = self._selector.courses(e.course_id for e in enrollments)
        return registration_facts(registrations, members, self._config) + course_facts(
            enrollments, courses, members, self._config
        )

    def _paid_expenses(self, period: ReportPeriod):
        lo, hi = period_bounds(period, self._config.tz)
        return self._selector.expenses(lo, hi, status="paid")

    # =========================================================================
    # Public API
    # =========================================================================

    def summarize(self, start: date, end: date) -> FinancialSummary:
        """Totals, net profit and margin over ``[start, end]`` inclusive."""
        period = ReportPeriod(start, end)
        summary = build_summary(
            period, self._paid_facts(period), self._paid_expenses(period), self._config
        )
        logger.info(
            "financial_summary_generated",
            extra={
                "period_start": start,
                "period_end": end,
                "total_revenue": summary.total_revenue,
                "total_expenses": summary.total_expenses,
                "approximate_dates": summary.approximate_dates,
            },
        )
        return summary

    def monthly_series(self, year: int) -> MonthlySeries:
        period = ReportPeriod.for_year(year)
        series = build_monthly_series(
            year, self._paid_facts(period), self._paid_expenses(period), self._config
        )
        logger.info("monthly_series_generated", extra={"year": year})
        return series

    def member_ledger(self, member_id: UUID, year: int) -> MemberLedger:
        validate_year(year)
        enrollments = self._selector.enrollments_for_member(member_id)
        ledger = build_member_ledger(
            member_id,
            year,
            self._selector.members([member_id]).get(member_id),
            self._selector.registration_for(member_id, year),
            enrollments,
            self._selector.courses(e.course_id for e in enrollments),
            self._config,
        )
        logger.info(
            "member_ledger_generated",
            extra={"member_id": str(member_id), "year": year, "total_owed": ledger.total_owed},
        )
        return ledger

    def detailed_report(self, start: date, end: date) -> DetailedReport:
        period = ReportPeriod(start, end)
        lo, hi = period_bounds(period, self._config.tz)
        registrations = self._selector.registrations(lo, hi, PaymentStatus.PAID)
        enrollments = self._selector.enrollments(lo, hi, PaymentStatus.PAID)
        report = build_detailed_report(
            period,
            registrations,
            enrollments,
            self._selector.courses(e.course_id for e in enrollments),
            self._selector.members(
                [r.member_id for r in registrations] + [e.member_id for e in enrollments]
            ),
            self._selector.expenses(lo, hi, status="paid"),
            self._config,
        )
        logger.info(
            "detailed_report_generated",
            extra={
                "period_start": start,
                "period_end": end,
                "registration_lines": len(report.registrations),
                "course_lines": len(report.course_payments),
                "expense_lines": len(report.expenses),
            },
        )
        return report

    def expenses_by_category(self, start: date, end: date) -> tuple[CategoryTotal, ...]:
        period = ReportPeriod(start, end)
        return build_expenses_by_category(period, self._paid_expenses(period), self._config)

    def pending_overview(self, year: int) -> PendingOverview:
        validate_year(year)
        pending_enrollments = self._selector.enrollments(status=PaymentStatus.PENDING)
        return build_pending_overview(
            year,
            self._selector.registrations_for_year(year, PaymentStatus.PENDING),
            pending_enrollments,
            self._selector.courses(e.course_id for e in pending_enrollments),
            self._selector.expenses(status="pending"),
            self._clock.now(),
            self._config,
        )

    def dashboard(self, year: int, month: int | None = None) -> Dashboard:
        """Summary for the year (or one month of it), the year's monthly
        series, expenses by category and outstanding amounts."""
        validate_year(year)
        period = ReportPeriod.for_month(year, month) if month else ReportPeriod.for_year(year)
        return Dashboard(
            year=year,
            month=month,
            summary=self.summarize(period.start, period.end),
            monthly=self.monthly_series(year),
            expenses_by_category=self.expenses_by_category(period.start, period.end),
            pending=self.pending_overview(year),
        )

    def payment_history(self, filters: PaymentFilter | None = None) -> PaymentHistory:
        """Unified course and registration payments with filters and stats.

        Stats are computed over the filtered list.
        """
        filters = filters or PaymentFilter()
        facts: list[PaymentFact] = []
        if filters.source_type in (None, PaymentSourceType.ANNUAL_REGISTRATION):
            registrations = self._selector.registrations(status=filters.status)
            members = self._selector.members(r.member_id for r in registrations)
            facts += registration_facts(registrations, members, self._config)
        if filters.source_type in (None, PaymentSourceType.COURSE):
            enrollments = self._selector.enrollments(status=filters.status)
            members = self._selector.members(e.member_id for e in enrollments)
            courses = self._selector.courses(e.course_id for e in enrollments)
            facts += course_facts(enrollments, courses, members, self._config)

        selected = filter_payments(facts, filters, self._config)
        return PaymentHistory(payments=tuple(selected), stats=build_payment_stats(selected))

    def kpis(self) -> KPIs:
        now = self._clock.now()
        local_now = now.astimezone(self._config.tz)
        month = ReportPeriod.for_month(local_now.year, local_now.month)
        lo, hi = period_bounds(month, self._config.tz)

        month_courses = self._selector.courses_between(lo, hi)
        recent = self._selector.recent_held_courses(self._config.recent_courses_limit)
        by_course = self._selector.enrollments_by_course(
            [c.course_id for c in month_courses] + [c.course_id for c in recent]
        )
        paid_this_year = 0
        if MIN_REGISTRATION_YEAR <= local_now.year <= MAX_REGISTRATION_YEAR:
            paid_this_year = len(
                self._selector.registrations_for_year(local_now.year, PaymentStatus.PAID)
            )

        return build_kpis(
            now=now,
            active_members=self._selector.count_active_members(),
            paid_registrations_this_year=paid_this_year,
            month_courses=month_courses,
            recent_courses=recent,
            enrollments_by_course=by_course,
            pending_attended_payments=self._selector.count_pending_attended(),
            config=self._config,
        )
