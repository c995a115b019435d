"""
Pure function unit tests for statements.py.

NO database, NO I/O. Tests every pure transformation with synthetic data.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from club_config import ClubConfig
from club_kernel.domain.money import PaymentMethod, PaymentStatus
from club_modules.payments.models import PaymentFact, PaymentSourceType
from club_modules.reporting.config import ReportingConfig
from club_modules.reporting.models import PaymentFilter, ReportPeriod
from club_modules.reporting.statements import (
    CourseInfo,
    EnrollmentInfo,
    ExpenseInfo,
    MemberInfo,
    RegistrationInfo,
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
    ratio,
    registration_facts,
    render_to_dict,
)

# =========================================================================
# Fixtures / helpers
# =========================================================================

AWA_ID = uuid4()
BINTA_ID = uuid4()
YOGA_ID = uuid4()
DANCE_ID = uuid4()

YEAR_2024 = ReportPeriod.for_year(2024)


def _at(month: int, day: int = 15, hour: int = 12, year: int = 2024) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def _config(**overrides) -> ReportingConfig:
    return replace(ReportingConfig.with_defaults(), **overrides)


def _members() -> dict[UUID, MemberInfo]:
    return {
        AWA_ID: MemberInfo(AWA_ID, "Awa Ndiaye", "awa@example.org"),
        BINTA_ID: MemberInfo(BINTA_ID, "Binta Ba", "binta@example.org"),
    }


def _courses() -> dict[UUID, CourseInfo]:
    return {
        YOGA_ID: CourseInfo(YOGA_ID, "Morning yoga", _at(3), 1500, "completed", 10),
        DANCE_ID: CourseInfo(DANCE_ID, "Salsa", _at(4), 2000, "planned", 8),
    }


def _registration(member_id=AWA_ID, status=PaymentStatus.PAID, paid_at=None, created_at=None,
                  amount=10000, year=2024) -> RegistrationInfo:
    return RegistrationInfo(
        registration_id=uuid4(),
        member_id=member_id,
        year=year,
        amount=amount,
        status=status,
        created_at=created_at or _at(1, 5),
        payment_date=paid_at,
        payment_method=PaymentMethod.CASH if status is PaymentStatus.PAID else None,
        payment_reference="REG-TEST" if status is PaymentStatus.PAID else None,
    )


def _enrollment(course_id=YOGA_ID, member_id=AWA_ID, status=PaymentStatus.PAID, paid_at=None,
                created_at=None, attended=False) -> EnrollmentInfo:
    return EnrollmentInfo(
        enrollment_id=uuid4(),
        course_id=course_id,
        member_id=member_id,
        created_at=created_at or _at(2, 20),
        payment_status=status,
        attended=attended,
        payment_date=paid_at,
        payment_method=PaymentMethod.MOBILE_MONEY if status is PaymentStatus.PAID else None,
    )


def _expense(amount=3000, status="paid", paid_at=None, category="facility", due=None,
             created_at=None) -> ExpenseInfo:
    return ExpenseInfo(
        expense_id=uuid4(),
        title="Hall rent",
        category=category,
        amount=amount,
        status=status,
        date=_at(3, 1),
        created_at=created_at or _at(3, 1),
        payment_method="bank_transfer",
        due_date=due,
        paid_date=paid_at,
    )


def _facts(registrations=(), enrollments=(), config=None):
    config = config or _config()
    return registration_facts(registrations, _members(), config) + course_facts(
        enrollments, _courses(), _members(), config
    )


# =========================================================================
# Helpers
# =========================================================================


class TestHelpers:
    def test_ratio_rounds_half_up(self):
        assert ratio(2, 3) == Decimal("0.6667")
        assert ratio(1, 8, 2) == Decimal("0.13")

    def test_ratio_zero_denominator(self):
        assert ratio(5, 0) == Decimal("0.0000")

    def test_period_bounds_follow_timezone(self):
        lo, hi = period_bounds(ReportPeriod(date(2024, 3, 1), date(2024, 3, 31)),
                               _config(reporting_timezone="Africa/Douala").tz)
        assert lo == datetime(2024, 2, 29, 23, 0, tzinfo=timezone.utc)
        assert hi == datetime(2024, 3, 31, 23, 0, tzinfo=timezone.utc)

    def test_report_period_for_month(self):
        assert ReportPeriod.for_month(2024, 2) == ReportPeriod(date(2024, 2, 1), date(2024, 2, 29))
        assert ReportPeriod.for_month(2024, 12).end == date(2024, 12, 31)

    def test_amounts_use_the_club_currency_symbol(self):
        config = ReportingConfig.from_club_config(ClubConfig(currency_code="EUR", currency_symbol="€"))
        assert config.format_amount(12500) == "12 500 €"
        assert ReportingConfig.with_defaults().format_amount(12500) == "12 500 FCFA"


# =========================================================================
# Payment facts
# =========================================================================


class TestPaymentFacts:
    def test_missing_course_and_member_use_sentinels(self):
        enrollment = _enrollment(course_id=uuid4(), member_id=uuid4(), paid_at=_at(3))
        (fact,) = course_facts([enrollment], _courses(), _members(), _config())

        assert fact.description == "deleted course"
        assert fact.amount == 0
        assert fact.member_name == "unknown member"
        assert fact.member_email == ""

    def test_missing_payment_date_is_flagged(self):
        (fact,) = registration_facts([_registration(created_at=_at(2, 1))], _members(), _config())
        assert fact.date == _at(2, 1)
        assert fact.date_is_approximate is True

    def test_recorded_date_wins(self):
        (fact,) = registration_facts(
            [_registration(paid_at=_at(6), created_at=_at(1))], _members(), _config()
        )
        assert fact.date == _at(6)
        assert fact.date_is_approximate is False


# =========================================================================
# Summary
# =========================================================================


class TestSummary:
    def test_registration_paid_in_year_counts(self):
        """A paid 10000 registration shows up in the year's revenue."""
        summary = build_summary(
            YEAR_2024, _facts([_registration(paid_at=_at(5))]), [], _config()
        )
        assert summary.total_revenue == 10000
        assert summary.breakdown.registration_amount == 10000
        assert summary.breakdown.registration_count == 1
        assert summary.profit_margin == Decimal("1.0000")

    def test_only_paid_records_count(self):
        facts = _facts(
            [_registration(status=PaymentStatus.PENDING), _registration(status=PaymentStatus.EXEMPTED)],
            [_enrollment(status=PaymentStatus.PENDING)],
        )
        summary = build_summary(YEAR_2024, facts, [_expense(status="pending")], _config())
        assert summary.total_revenue == 0
        assert summary.total_expenses == 0

    def test_revenue_minus_expenses(self):
        facts = _facts(
            [_registration(paid_at=_at(1))],
            [_enrollment(paid_at=_at(3)), _enrollment(course_id=DANCE_ID, paid_at=_at(4))],
        )
        summary = build_summary(YEAR_2024, facts, [_expense(amount=4500, paid_at=_at(3, 2))], _config())

        assert summary.breakdown.course_amount == 3500
        assert summary.breakdown.course_count == 2
        assert summary.total_revenue == 13500
        assert summary.total_expenses == 4500
        assert summary.net_profit == 9000
        assert summary.profit_margin == Decimal("0.6667")

    def test_zero_revenue_margin_is_zero(self):
        summary = build_summary(YEAR_2024, [], [_expense(paid_at=_at(3))], _config())
        assert summary.net_profit == -3000
        assert summary.profit_margin == Decimal("0")

    def test_period_ends_are_inclusive(self):
        facts = _facts([
            _registration(paid_at=datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)),
            _registration(paid_at=datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc)),
            _registration(paid_at=datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)),
        ])
        assert build_summary(YEAR_2024, facts, [], _config()).total_revenue == 20000

    def test_reporting_timezone_decides_the_day(self):
        late_evening = datetime(2024, 12, 31, 23, 30, tzinfo=timezone.utc)
        facts = _facts([_registration(paid_at=late_evening)])

        assert build_summary(YEAR_2024, facts, [], _config()).total_revenue == 10000
        douala = _config(reporting_timezone="Africa/Douala")
        assert build_summary(YEAR_2024, facts, [], douala).total_revenue == 0

    def test_approximate_dates_are_counted(self):
        facts = _facts([_registration()], [_enrollment(paid_at=_at(3))])
        summary = build_summary(YEAR_2024, facts, [_expense()], _config())
        assert summary.approximate_dates == 2


# =========================================================================
# Monthly series
# =========================================================================


class TestMonthlySeries:
    def test_buckets(self):
        facts = _facts([_registration(paid_at=_at(1))], [_enrollment(paid_at=_at(3))])
        series = build_monthly_series(2024, facts, [_expense(paid_at=_at(3))], _config())

        assert [m.month for m in series.months] == list(range(1, 13))
        january, march = series.months[0], series.months[2]
        assert january.registration_revenue == 10000
        assert march.course_revenue == 1500
        assert march.expenses == 3000
        assert march.net_profit == -1500
        assert series.total_revenue == 11500

    @settings(max_examples=60, deadline=None)
    @given(
        payments=st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=50_000),
                st.sampled_from(list(PaymentStatus)),
                st.sampled_from(list(PaymentSourceType)),
                st.datetimes(
                    min_value=datetime(2023, 11, 1),
                    max_value=datetime(2025, 2, 28),
                    timezones=st.just(timezone.utc),
                ),
            ),
            max_size=30,
        ),
        spent=st.lists(
            st.tuples(
                st.integers(min_value=1, max_value=50_000),
                st.sampled_from(["paid", "pending", "cancelled"]),
                st.datetimes(
                    min_value=datetime(2023, 11, 1),
                    max_value=datetime(2025, 2, 28),
                    timezones=st.just(timezone.utc),
                ),
            ),
            max_size=15,
        ),
        tz=st.sampled_from(["UTC", "Africa/Douala", "America/New_York", "Asia/Tokyo"]),
    )
    def test_months_add_up_to_the_year(self, payments, spent, tz):
        config = _config(reporting_timezone=tz)
        facts = [
            PaymentFact(
                amount=amount,
                method=PaymentMethod.CASH,
                status=status,
                date=when,
                date_is_approximate=False,
                source_type=source,
                source_id=uuid4(),
                member_id=AWA_ID,
                description="x",
            )
            for amount, status, source, when in payments
        ]
        expenses = [_expense(amount=amount, status=status, paid_at=when) for amount, status, when in spent]

        series = build_monthly_series(2024, facts, expenses, config)
        summary = build_summary(YEAR_2024, facts, expenses, config)

        assert series.total_revenue == summary.total_revenue
        assert series.total_expenses == summary.total_expenses
        assert sum(m.net_profit for m in series.months) == summary.net_profit
        assert sum(m.registration_revenue for m in series.months) == (
            summary.breakdown.registration_amount
        )


# =========================================================================
# Member ledger
# =========================================================================


class TestMemberLedger:
    def test_paid_and_owed(self):
        enrollments = [
            _enrollment(YOGA_ID, paid_at=_at(3)),
            _enrollment(DANCE_ID, status=PaymentStatus.PENDING),
            _enrollment(uuid4(), status=PaymentStatus.PENDING),  # deleted course, fee 0
            _enrollment(YOGA_ID, member_id=BINTA_ID),
            _enrollment(DANCE_ID, created_at=_at(12, 1, year=2023)),
        ]
        ledger = build_member_ledger(
            AWA_ID, 2024, _members()[AWA_ID], _registration(status=PaymentStatus.PENDING),
            enrollments, _courses(), _config(),
        )

        assert ledger.member_name == "Awa Ndiaye"
        assert ledger.registration_status is PaymentStatus.PENDING
        assert ledger.courses_enrolled == 3
        assert ledger.courses_paid == 1
        assert ledger.total_paid == 1500
        assert ledger.total_owed == 10000 + 2000

    def test_exempted_is_neither_paid_nor_owed(self):
        ledger = build_member_ledger(
            AWA_ID, 2024, None, _registration(status=PaymentStatus.EXEMPTED),
            [_enrollment(status=PaymentStatus.EXEMPTED)], _courses(), _config(),
        )
        assert ledger.member_name == "unknown member"
        assert (ledger.total_paid, ledger.total_owed) == (0, 0)

    def test_no_registration(self):
        ledger = build_member_ledger(AWA_ID, 2024, None, None, [], _courses(), _config())
        assert ledger.registration_status is None
        assert ledger.registration_amount == 0


# =========================================================================
# Detailed report and dashboard pieces
# =========================================================================


class TestDetailedReport:
    def test_lines_sorted_and_flagged(self):
        report = build_detailed_report(
            YEAR_2024,
            [_registration(paid_at=_at(6)), _registration(BINTA_ID, created_at=_at(2))],
            [_enrollment(uuid4(), paid_at=_at(4)), _enrollment(status=PaymentStatus.PENDING)],
            _courses(),
            _members(),
            [_expense(paid_at=_at(5)), _expense(status="cancelled")],
            _config(),
        )

        assert [r.member_name for r in report.registrations] == ["Binta Ba", "Awa Ndiaye"]
        assert report.registrations[0].date_is_approximate is True
        (course_line,) = report.course_payments
        assert course_line.course_title == "deleted course"
        assert course_line.course_date is None
        assert len(report.expenses) == 1
        assert report.summary.total_revenue == 20000
        assert report.summary.total_expenses == 3000


class TestDashboardPieces:
    def test_expenses_by_category_largest_first(self):
        totals = build_expenses_by_category(
            YEAR_2024,
            [
                _expense(500, category="equipment", paid_at=_at(2)),
                _expense(4000, category="facility", paid_at=_at(3)),
                _expense(700, category="equipment", paid_at=_at(4)),
                _expense(9999, category="salary", status="pending"),
            ],
            _config(),
        )
        assert [(t.category, t.amount, t.count) for t in totals] == [
            ("facility", 4000, 1),
            ("equipment", 1200, 2),
        ]

    def test_pending_overview(self):
        now = _at(6)
        overview = build_pending_overview(
            2024,
            [
                _registration(status=PaymentStatus.PENDING),
                _registration(status=PaymentStatus.PENDING, year=2023),
                _registration(),
            ],
            [_enrollment(DANCE_ID, status=PaymentStatus.PENDING), _enrollment()],
            _courses(),
            [
                _expense(1000, status="pending", due=_at(5)),
                _expense(2000, status="pending", due=_at(7)),
                _expense(4000, status="pending"),
                _expense(8000),
            ],
            now,
            _config(),
        )

        assert (overview.pending_registrations, overview.pending_registration_amount) == (1, 10000)
        assert (overview.pending_course_payments, overview.pending_course_amount) == (1, 2000)
        assert (overview.unpaid_expenses, overview.unpaid_expense_amount) == (3, 7000)
        assert (overview.overdue_expenses, overview.overdue_expense_amount) == (1, 1000)


# =========================================================================
# Payment history
# =========================================================================


class TestPaymentHistory:
    @pytest.fixture
    def facts(self):
        return _facts(
            [_registration(paid_at=_at(1)), _registration(BINTA_ID, status=PaymentStatus.PENDING)],
            [_enrollment(paid_at=_at(3)), _enrollment(DANCE_ID, BINTA_ID, paid_at=_at(4))],
        )

    def test_newest_first(self, facts):
        dates = [f.date for f in filter_payments(facts, PaymentFilter(), _config())]
        assert dates == sorted(dates, reverse=True)

    def test_filters(self, facts):
        config = _config()
        by_source = filter_payments(facts, PaymentFilter(source_type=PaymentSourceType.COURSE), config)
        assert {f.description for f in by_source} == {"Morning yoga", "Salsa"}

        by_method = filter_payments(facts, PaymentFilter(method=PaymentMethod.CASH), config)
        assert len(by_method) == 1

        by_status = filter_payments(facts, PaymentFilter(status=PaymentStatus.PENDING), config)
        assert [f.member_id for f in by_status] == [BINTA_ID]

        by_dates = filter_payments(
            facts, PaymentFilter(start=date(2024, 3, 1), end=date(2024, 3, 31)), config
        )
        assert [f.description for f in by_dates] == ["Morning yoga"]

        by_search = filter_payments(facts, PaymentFilter(search="  BINTA "), config)
        assert {f.member_id for f in by_search} == {BINTA_ID}

    def test_stats(self, facts):
        stats = build_payment_stats(facts)
        assert stats.total_revenue == 13500
        assert stats.course_revenue == 3500
        assert stats.registration_revenue == 10000
        assert stats.pending_amount == 10000
        assert stats.transaction_count == 3
        assert stats.average_transaction == Decimal("4500.00")

    def test_stats_empty(self):
        assert build_payment_stats([]).average_transaction == Decimal("0.00")


# =========================================================================
# KPIs and rendering
# =========================================================================


class TestKPIs:
    def test_rates(self):
        yoga, dance = _courses()[YOGA_ID], _courses()[DANCE_ID]
        empty = CourseInfo(uuid4(), "Empty", _at(3, 20), 0, "completed")
        enrollments = {
            YOGA_ID: [_enrollment(attended=True), _enrollment(attended=True), _enrollment()],
            DANCE_ID: [_enrollment(DANCE_ID, attended=True)],
        }
        kpis = build_kpis(
            now=_at(3, 25),
            active_members=4,
            paid_registrations_this_year=3,
            month_courses=[yoga, dance, empty],
            recent_courses=[yoga],
            enrollments_by_course=enrollments,
            pending_attended_payments=2,
            config=_config(),
        )

        assert kpis.registration_payment_rate == Decimal("0.7500")
        assert kpis.courses_this_month == 3
        # only the completed yoga course has enrollments and counts
        assert kpis.average_attendance_this_month == Decimal("0.6667")
        assert kpis.pending_course_payments == 2
        (recent,) = kpis.recent_attendance
        assert (recent.attended, recent.enrolled) == (2, 3)

    def test_no_members(self):
        kpis = build_kpis(_at(3), 0, 0, [], [], {}, 0, _config())
        assert kpis.registration_payment_rate == Decimal("0")
        assert kpis.average_attendance_this_month == Decimal("0")


def test_render_to_dict():
    summary = build_summary(YEAR_2024, _facts([_registration(paid_at=_at(5))]), [], _config())
    rendered = render_to_dict(summary)

    assert rendered["period_start"] == "2024-01-01"
    assert rendered["total_revenue"] == 10000
    assert rendered["profit_margin"] == "1.0000"
    assert rendered["breakdown"]["registration_count"] == 1
