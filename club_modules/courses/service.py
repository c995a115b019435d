"""
Courses Module Service (``club_modules.courses.service``).

Responsibility
--------------
Course lifecycle, enrollment and attendance.  Three entry points share one
module because they share the course row and its capacity counter:

* ``CourseService``      -- schedule, change status, guarded delete.
* ``EnrollmentService``  -- enroll, self-service cancel, admin removal.
* ``AttendanceService``  -- single and bulk attendance, with optional
  payment updates routed through ``club_modules.payments.transitions``.

Invariants enforced
-------------------
* Every public mutating method is one transaction (commit on success,
  rollback on any failure).  A raised error leaves no partial state.
* Capacity: ``courses.enrolled_count`` is incremented by a guarded UPDATE
  (``... WHERE enrolled_count < max_participants``) in the same transaction
  as the enrollment insert.  If the UPDATE matches no row the course is
  full.  Concurrent enrolls can never push the count past capacity.
* Uniqueness: ``uq_enrollment_course_member``.  A unique-constraint race is
  reported as ``AlreadyEnrolledError``, never as a raw IntegrityError.
* Bulk attendance is best-effort: each entry runs in its own SAVEPOINT and
  produces its own outcome.  The only automatic course transition
  (planned -> completed) happens when at least one applied entry in the
  call records attendance.

Failure modes
-------------
* Precondition failures raise the typed errors of ``club_kernel.exceptions``
  in a fixed order (see ``enroll`` and ``cancel``).
* Transient store failures -> ``StoreUnavailableError``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from club_config import ClubConfig, get_active_config
from club_kernel.domain.clock import Clock
from club_kernel.domain.identity import Actor
from club_kernel.domain.money import PaymentStatus
from club_kernel.exceptions import (
    AlreadyEnrolledError,
    CancellationWindowClosedError,
    CourseFullError,
    CourseHasEnrollmentsError,
    CourseNotFoundError,
    EnrollmentClosedError,
    EnrollmentNotCancellableError,
    EnrollmentNotFoundError,
    InvalidPaymentTransitionError,
    ValidationError,
)
from club_kernel.logging_config import LogContext, get_logger
from club_kernel.services.base import BaseService
from club_kernel.utils.references import ReferenceKind
from club_modules.courses.models import (
    AttendanceApplied,
    AttendanceBatchResult,
    AttendanceEntry,
    AttendanceOutcome,
    AttendanceSkipped,
    Course,
    CourseDraft,
    CourseStatus,
    Enrollment,
    EnrollmentRequest,
    SkipReason,
    read_attendance_row,
)
from club_modules.courses.orm import CourseModel, EnrollmentModel
from club_modules.payments.transitions import apply_transition

logger = get_logger("modules.courses.service")


def _get_course(session: Session, course_id: UUID) -> CourseModel:
    course = session.get(CourseModel, course_id)
    if course is None:
        raise CourseNotFoundError(course_id)
    return course


def _find_enrollment(
    session: Session, course_id: UUID, member_id: UUID, for_update: bool = False
) -> EnrollmentModel | None:
    stmt = select(EnrollmentModel).where(
        EnrollmentModel.course_id == course_id,
        EnrollmentModel.member_id == member_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    return session.scalar(stmt)


def _release_seat(session: Session, course_id: UUID) -> None:
    session.execute(
        update(CourseModel)
        .where(CourseModel.id == course_id, CourseModel.enrolled_count > 0)
        .values(enrolled_count=CourseModel.enrolled_count - 1)
        .execution_options(synchronize_session="evaluate")
    )


class CourseService(BaseService):
    """
    Course scheduling and administrative lifecycle.

    Admin-only for every mutating method.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ClubConfig | None = None,
    ):
        super().__init__(session, clock)
        self._config = config or get_active_config()

    def create_course(self, draft: CourseDraft, actor: Actor) -> Course:
        actor.require_admin("create_course")
        now = self.clock.now()
        if draft.date <= now:
            raise ValidationError("date", "course must start in the future")

        price = draft.price if draft.price is not None else self._config.default_course_fee
        with self._unit_of_work("create_course", "course"):
            model = CourseModel(
                title=draft.title,
                description=draft.description or "",
                date=draft.date,
                duration_minutes=draft.duration_minutes,
                location=draft.location,
                price=price,
                max_participants=draft.max_participants,
                enrolled_count=0,
                instructor_id=draft.instructor_id,
                status=CourseStatus.PLANNED.value,
                created_at=now,
                updated_at=now,
                created_by_id=actor.actor_id,
            )
            self.session.add(model)
            self.session.flush()
            course = model.to_dto()

        logger.info(
            "course_created",
            extra={
                "course_id": str(course.id),
                "date": course.date,
                "price": course.price,
                "max_participants": course.max_participants,
            },
        )
        return course

    def set_status(self, course_id: UUID, status: CourseStatus | str, actor: Actor) -> Course:
        actor.require_admin("set_course_status")
        try:
            target = CourseStatus(status)
        except ValueError:
            raise ValidationError("status", f"unknown course status {status!r}") from None

        with self._unit_of_work("set_course_status", "course", course_id):
            model = _get_course(self.session, course_id)
            previous = model.status
            model.status = target.value
            model.updated_by_id = actor.actor_id
            self.session.flush()
            course = model.to_dto()

        logger.info(
            "course_status_changed",
            extra={"course_id": str(course_id), "from_status": previous, "to_status": target.value},
        )
        return course

    def delete_course(self, course_id: UUID, actor: Actor) -> None:
        actor.require_admin("delete_course")
        with self._unit_of_work("delete_course", "course", course_id):
            model = _get_course(self.session, course_id)
            count = self.session.scalar(
                select(func.count())
                .select_from(EnrollmentModel)
                .where(EnrollmentModel.course_id == course_id)
            ) or 0
            if count:
                raise CourseHasEnrollmentsError(course_id, count)
            self.session.delete(model)

        logger.info("course_deleted", extra={"course_id": str(course_id)})

    def get_course(self, course_id: UUID) -> Course:
        with self._read("get_course"):
            return _get_course(self.session, course_id).to_dto()

    def list_courses(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        status: CourseStatus | None = None,
    ) -> list[Course]:
        with self._read("list_courses"):
            stmt = select(CourseModel).order_by(CourseModel.date)
            if start is not None:
                stmt = stmt.where(CourseModel.date >= start)
            if end is not None:
                stmt = stmt.where(CourseModel.date < end)
            if status is not None:
                stmt = stmt.where(CourseModel.status == CourseStatus(status).value)
            return [c.to_dto() for c in self.session.scalars(stmt)]


class EnrollmentService(BaseService):
    """
    Enrollment Manager.

    Members act only for themselves; administrators may act for anyone.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ClubConfig | None = None,
    ):
        super().__init__(session, clock)
        self._config = config or get_active_config()

    def enroll(self, request: EnrollmentRequest, actor: Actor) -> Enrollment:
        """
        Enroll a member in a course.

        Checks run in this order and the first failure wins:
        course exists, course accepts enrollment, member not yet enrolled,
        a seat is free.

        Raises:
            CourseNotFoundError, EnrollmentClosedError, AlreadyEnrolledError,
            CourseFullError, AuthorizationError
        """
        actor.require_self_or_admin(request.member_id, "enroll")
        course_id, member_id = request.course_id, request.member_id
        now = self.clock.now()

        with LogContext.bind(
            actor_id=actor.actor_id, member_id=member_id, course_id=course_id, operation="enroll"
        ):
            with self._unit_of_work("enroll", "enrollment"):
                course = _get_course(self.session, course_id)
                snapshot = course.to_dto()
                if not snapshot.is_enrollment_open(now):
                    raise EnrollmentClosedError(course_id, snapshot.status.value)

                if _find_enrollment(self.session, course_id, member_id) is not None:
                    raise AlreadyEnrolledError(course_id, member_id)

                claimed = self.session.execute(
                    update(CourseModel)
                    .where(
                        CourseModel.id == course_id,
                        CourseModel.enrolled_count < CourseModel.max_participants,
                    )
                    .values(enrolled_count=CourseModel.enrolled_count + 1)
                    .execution_options(synchronize_session="evaluate")
                )
                if claimed.rowcount != 1:
                    raise CourseFullError(course_id, snapshot.max_participants)

                model = EnrollmentModel(
                    course_id=course_id,
                    member_id=member_id,
                    attended=False,
                    payment_status=PaymentStatus.PENDING.value,
                    notes=request.notes,
                    created_at=now,
                    updated_at=now,
                    created_by_id=actor.actor_id,
                )
                self.session.add(model)
                try:
                    self.session.flush()
                except IntegrityError as exc:
                    raise AlreadyEnrolledError(course_id, member_id) from exc
                enrollment = model.to_dto()

            logger.info(
                "enrollment_created",
                extra={"enrollment_id": str(enrollment.id), "max_participants": snapshot.max_participants},
            )
        return enrollment

    def cancel(self, course_id: UUID, member_id: UUID, actor: Actor) -> None:
        """
        Self-service cancellation.

        Only a pending enrollment can be cancelled, and only while the course
        starts at least ``cancellation_window_hours`` from now.  Paid or
        exempted enrollments need ``admin_remove``.

        Raises:
            CourseNotFoundError, EnrollmentNotFoundError,
            EnrollmentNotCancellableError, CancellationWindowClosedError,
            AuthorizationError
        """
        actor.require_self_or_admin(member_id, "cancel_enrollment")
        now = self.clock.now()
        window = self._config.cancellation_window_hours

        with LogContext.bind(
            actor_id=actor.actor_id, member_id=member_id, course_id=course_id, operation="cancel"
        ):
            with self._unit_of_work("cancel_enrollment", "enrollment"):
                course = _get_course(self.session, course_id)
                enrollment = _find_enrollment(self.session, course_id, member_id, for_update=True)
                if enrollment is None:
                    raise EnrollmentNotFoundError(course_id, member_id)
                if enrollment.payment_status != PaymentStatus.PENDING.value:
                    raise EnrollmentNotCancellableError(
                        course_id, member_id, enrollment.payment_status
                    )
                hours_until_start = (course.date - now).total_seconds() / 3600
                if hours_until_start < window:
                    raise CancellationWindowClosedError(course_id, hours_until_start, window)

                self.session.delete(enrollment)
                self.session.flush()
                _release_seat(self.session, course_id)

            logger.info("enrollment_cancelled", extra={"hours_until_start": round(hours_until_start, 1)})

    def admin_remove(self, course_id: UUID, member_id: UUID, actor: Actor) -> None:
        """Administrative removal regardless of payment status or timing."""
        actor.require_admin("admin_remove_enrollment")
        with self._unit_of_work("admin_remove_enrollment", "enrollment"):
            enrollment = _find_enrollment(self.session, course_id, member_id, for_update=True)
            if enrollment is None:
                raise EnrollmentNotFoundError(course_id, member_id)
            payment_status = enrollment.payment_status
            self.session.delete(enrollment)
            self.session.flush()
            # The course may already be gone; then there is no seat to free
            _release_seat(self.session, course_id)

        logger.warning(
            "enrollment_removed_by_admin",
            extra={
                "course_id": str(course_id),
                "member_id": str(member_id),
                "payment_status": payment_status,
                "actor_id": str(actor.actor_id),
            },
        )

    def get_enrollment(self, course_id: UUID, member_id: UUID) -> Enrollment:
        with self._read("get_enrollment"):
            enrollment = _find_enrollment(self.session, course_id, member_id)
            if enrollment is None:
                raise EnrollmentNotFoundError(course_id, member_id)
            return enrollment.to_dto()

    def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        with self._read("list_course_enrollments"):
            stmt = (
                select(EnrollmentModel)
                .where(EnrollmentModel.course_id == course_id)
                .order_by(EnrollmentModel.created_at)
            )
            return [e.to_dto() for e in self.session.scalars(stmt)]

    def list_member_enrollments(self, member_id: UUID) -> list[Enrollment]:
        with self._read("list_member_enrollments"):
            stmt = (
                select(EnrollmentModel)
                .where(EnrollmentModel.member_id == member_id)
                .order_by(EnrollmentModel.created_at)
            )
            return [e.to_dto() for e in self.session.scalars(stmt)]

    def count_enrollments(self, course_id: UUID) -> int:
        with self._read("count_enrollments"):
            return self.session.scalar(
                select(func.count())
                .select_from(EnrollmentModel)
                .where(EnrollmentModel.course_id == course_id)
            ) or 0


class AttendanceService(BaseService):
    """
    Attendance Recorder.

    Administrators record attendance (and optionally payment) per member.
    A missing enrollment or a rejected payment change skips that entry only.
    """

    def set_attendance(
        self,
        course_id: UUID,
        member_id: UUID,
        attended: bool,
        actor: Actor,
        notes: str | None = None,
    ) -> AttendanceOutcome:
        entry = AttendanceEntry(member_id=member_id, attended=attended, notes=notes)
        result = self.bulk_set_attendance(course_id, [entry], actor)
        return result.outcomes[0]

    def bulk_set_attendance(
        self,
        course_id: UUID,
        entries: Sequence[AttendanceEntry | Mapping[str, Any]],
        actor: Actor,
    ) -> AttendanceBatchResult:
        """
        Apply each entry independently, each in its own SAVEPOINT.

        Raises:
            ValidationError: malformed batch (not a sequence, or an item that
                is neither an AttendanceEntry nor a mapping with a usable
                member_id and attended flag).  A row with bad notes or
                payment fields is skipped instead.
            CourseNotFoundError: the course does not exist.
        """
        actor.require_admin("record_attendance")
        batch = self._normalize(entries)
        now = self.clock.now()

        with LogContext.bind(actor_id=actor.actor_id, course_id=course_id, operation="attendance"):
            with self._unit_of_work("bulk_set_attendance", "enrollment"):
                course = _get_course(self.session, course_id)
                outcomes = tuple(
                    e if isinstance(e, AttendanceSkipped) else self._apply_entry(course_id, e, actor, now)
                    for e in batch
                )

                completed = False
                attended_applied = any(
                    isinstance(o, AttendanceApplied) and o.enrollment.attended for o in outcomes
                )
                if course.status == CourseStatus.PLANNED.value and attended_applied:
                    course.status = CourseStatus.COMPLETED.value
                    course.updated_by_id = actor.actor_id
                    completed = True
                self.session.flush()

            result = AttendanceBatchResult(
                course_id=course_id, outcomes=outcomes, course_completed=completed
            )
            logger.info(
                "attendance_batch_applied",
                extra={
                    "entries": len(outcomes),
                    "applied": result.applied_count,
                    "skipped": len(result.skipped),
                    "course_completed": completed,
                },
            )
        return result

    @staticmethod
    def _normalize(entries: Any) -> list[AttendanceEntry | AttendanceSkipped]:
        if isinstance(entries, (str, bytes, Mapping)) or not isinstance(entries, Sequence):
            raise ValidationError("entries", "expected a list of attendance entries")
        batch = []
        for item in entries:
            if isinstance(item, AttendanceEntry):
                batch.append(item)
            else:
                batch.append(read_attendance_row(item))
        return batch

    def _apply_entry(
        self, course_id: UUID, entry: AttendanceEntry, actor: Actor, now: datetime
    ) -> AttendanceOutcome:
        member_id = entry.member_id
        try:
            with self.session.begin_nested():
                enrollment = _find_enrollment(self.session, course_id, member_id, for_update=True)
                if enrollment is None:
                    return AttendanceSkipped(member_id, SkipReason.NOT_ENROLLED)

                if entry.payment is not None:
                    outcome = apply_transition(
                        enrollment.payment_state(),
                        entry.payment,
                        now=now,
                        kind=ReferenceKind.COURSE,
                    )
                    if outcome.changed:
                        enrollment.set_payment_state(outcome.state)

                enrollment.attended = entry.attended
                if entry.notes is not None:
                    enrollment.notes = entry.notes
                enrollment.updated_by_id = actor.actor_id
                self.session.flush()
                return AttendanceApplied(member_id, enrollment.to_dto())
        except InvalidPaymentTransitionError as exc:
            return AttendanceSkipped(member_id, SkipReason.INVALID_PAYMENT_TRANSITION, str(exc))
        except ValidationError as exc:
            return AttendanceSkipped(member_id, SkipReason.INVALID_PAYMENT, str(exc))
        except StaleDataError as exc:
            logger.warning("attendance_entry_stale", extra={"member_id": str(member_id)})
            return AttendanceSkipped(member_id, SkipReason.CONCURRENT_MODIFICATION, str(exc))
