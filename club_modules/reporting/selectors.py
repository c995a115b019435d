"""
Reporting selector: read-only loads that feed ``statements.py``.

Every method returns frozen ``*Info`` snapshots, never ORM instances.  No
row locks are taken, so reports never block enrollment or payment writes.
Date-ranged loads filter on ``COALESCE(payment_date, created_at)`` so the
store applies the same fallback rule as the pure layer.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from club_kernel.domain.identity import Role
from club_kernel.domain.money import PaymentStatus, parse_payment_method
from club_kernel.logging_config import get_logger
from club_kernel.selectors.base import BaseSelector
from club_modules.courses.orm import CourseModel, EnrollmentModel
from club_modules.expenses.orm import ExpenseModel
from club_modules.members.orm import MemberModel
from club_modules.payments.orm import AnnualRegistrationModel
from club_modules.reporting.statements import (
    CourseInfo,
    EnrollmentInfo,
    ExpenseInfo,
    MemberInfo,
    RegistrationInfo,
)

logger = get_logger("modules.reporting.selectors")


def _method(value: str | None):
    return parse_payment_method(value) if value else None


def _registration_info(row: AnnualRegistrationModel) -> RegistrationInfo:
    return RegistrationInfo(
        registration_id=row.id,
        member_id=row.member_id,
        year=row.year,
        amount=row.amount,
        status=PaymentStatus(row.status),
        created_at=row.created_at,
        payment_date=row.payment_date,
        payment_method=_method(row.payment_method),
        payment_reference=row.payment_reference,
    )


def _enrollment_info(row: EnrollmentModel) -> EnrollmentInfo:
    return EnrollmentInfo(
        enrollment_id=row.id,
        course_id=row.course_id,
        member_id=row.member_id,
        created_at=row.created_at,
        payment_status=PaymentStatus(row.payment_status),
        attended=row.attended,
        payment_date=row.payment_date,
        payment_method=_method(row.payment_method),
        payment_reference=row.payment_reference,
    )


def _expense_info(row: ExpenseModel) -> ExpenseInfo:
    return ExpenseInfo(
        expense_id=row.id,
        title=row.title,
        category=row.category,
        amount=row.amount,
        status=row.status,
        date=row.date,
        created_at=row.created_at,
        payment_method=row.payment_method,
        due_date=row.due_date,
        paid_date=row.paid_date,
        vendor=row.vendor,
    )


def _course_info(row: CourseModel) -> CourseInfo:
    return CourseInfo(
        course_id=row.id,
        title=row.title,
        date=row.date,
        price=row.price,
        status=row.status,
        max_participants=row.max_participants,
    )


class ReportingSelector(BaseSelector):
    """Snapshot loads for the aggregation engine."""

    # -- payments ----------------------------------------------------------

    def registrations(
        self,
        lo: datetime | None = None,
        hi: datetime | None = None,
        status: PaymentStatus | None = None,
    ) -> list[RegistrationInfo]:
        stmt = select(AnnualRegistrationModel)
        when = func.coalesce(AnnualRegistrationModel.payment_date, AnnualRegistrationModel.created_at)
        if lo is not None:
            stmt = stmt.where(when >= lo)
        if hi is not None:
            stmt = stmt.where(when < hi)
        if status is not None:
            stmt = stmt.where(AnnualRegistrationModel.status == status.value)
        return [_registration_info(r) for r in self._scalars(stmt)]

    def registrations_for_year(
        self, year: int, status: PaymentStatus | None = None
    ) -> list[RegistrationInfo]:
        stmt = select(AnnualRegistrationModel).where(AnnualRegistrationModel.year == year)
        if status is not None:
            stmt = stmt.where(AnnualRegistrationModel.status == status.value)
        return [_registration_info(r) for r in self._scalars(stmt)]

    def registration_for(self, member_id: UUID, year: int) -> RegistrationInfo | None:
        row = self._scalar(
            select(AnnualRegistrationModel).where(
                AnnualRegistrationModel.member_id == member_id,
                AnnualRegistrationModel.year == year,
            )
        )
        return _registration_info(row) if row is not None else None

    def enrollments(
        self,
        lo: datetime | None = None,
        hi: datetime | None = None,
        status: PaymentStatus | None = None,
    ) -> list[EnrollmentInfo]:
        stmt = select(EnrollmentModel)
        when = func.coalesce(EnrollmentModel.payment_date, EnrollmentModel.created_at)
        if lo is not None:
            stmt = stmt.where(when >= lo)
        if hi is not None:
            stmt = stmt.where(when < hi)
        if status is not None:
            stmt = stmt.where(EnrollmentModel.payment_status == status.value)
        return [_enrollment_info(e) for e in self._scalars(stmt)]

    def enrollments_for_member(self, member_id: UUID) -> list[EnrollmentInfo]:
        stmt = select(EnrollmentModel).where(EnrollmentModel.member_id == member_id)
        return [_enrollment_info(e) for e in self._scalars(stmt)]

    def enrollments_by_course(self, course_ids: Iterable[UUID]) -> dict[UUID, list[EnrollmentInfo]]:
        ids = list(set(course_ids))
        grouped: dict[UUID, list[EnrollmentInfo]] = {cid: [] for cid in ids}
        if not ids:
            return grouped
        stmt = select(EnrollmentModel).where(EnrollmentModel.course_id.in_(ids))
        for row in self._scalars(stmt):
            grouped[row.course_id].append(_enrollment_info(row))
        return grouped

    def count_pending_attended(self) -> int:
        return self._scalar(
            select(func.count())
            .select_from(EnrollmentModel)
            .where(
                EnrollmentModel.attended.is_(True),
                EnrollmentModel.payment_status == PaymentStatus.PENDING.value,
            )
        ) or 0

    # -- expenses ----------------------------------------------------------

    def expenses(
        self,
        lo: datetime | None = None,
        hi: datetime | None = None,
        status: str | None = None,
    ) -> list[ExpenseInfo]:
        stmt = select(ExpenseModel)
        when = func.coalesce(ExpenseModel.paid_date, ExpenseModel.created_at)
        if lo is not None:
            stmt = stmt.where(when >= lo)
        if hi is not None:
            stmt = stmt.where(when < hi)
        if status is not None:
            stmt = stmt.where(ExpenseModel.status == status)
        return [_expense_info(e) for e in self._scalars(stmt)]

    # -- joined records ----------------------------------------------------

    def courses(self, course_ids: Iterable[UUID]) -> dict[UUID, CourseInfo]:
        ids = list(set(course_ids))
        if not ids:
            return {}
        stmt = select(CourseModel).where(CourseModel.id.in_(ids))
        found = {c.id: _course_info(c) for c in self._scalars(stmt)}
        missing = len(ids) - len(found)
        if missing:
            logger.debug("reporting_courses_missing", extra={"missing_courses": missing})
        return found

    def courses_between(self, lo: datetime, hi: datetime) -> list[CourseInfo]:
        stmt = (
            select(CourseModel)
            .where(CourseModel.date >= lo, CourseModel.date < hi)
            .order_by(CourseModel.date)
        )
        return [_course_info(c) for c in self._scalars(stmt)]

    def recent_held_courses(self, limit: int) -> list[CourseInfo]:
        stmt = (
            select(CourseModel)
            .where(CourseModel.status.in_(("ongoing", "completed")))
            .order_by(CourseModel.date.desc())
            .limit(limit)
        )
        return [_course_info(c) for c in self._scalars(stmt)]

    def members(self, member_ids: Iterable[UUID]) -> dict[UUID, MemberInfo]:
        ids = list(set(member_ids))
        if not ids:
            return {}
        stmt = select(MemberModel).where(MemberModel.id.in_(ids))
        return {
            m.id: MemberInfo(
                member_id=m.id,
                name=f"{m.first_name} {m.last_name}".strip(),
                email=m.email,
            )
            for m in self._scalars(stmt)
        }

    def count_active_members(self) -> int:
        return self._scalar(
            select(func.count())
            .select_from(MemberModel)
            .where(MemberModel.is_active.is_(True), MemberModel.role == Role.MEMBER.value)
        ) or 0
