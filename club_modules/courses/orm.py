"""
SQLAlchemy ORM persistence models for the Courses module.

Invariants enforced
-------------------
* ``courses.enrolled_count`` never exceeds ``max_participants``: it only
  moves through the guarded UPDATE in ``EnrollmentService`` and is checked
  by ``ck_course_capacity``.
* One enrollment per (course, member) (``uq_enrollment_course_member``).
* ``enrollments.course_id`` carries no foreign key.  A course row may be
  removed under live payment history and reporting must still fold it.
* ``enrollments.version`` is the optimistic lock column for payment updates.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from club_kernel.db.base import TrackedBase


class CourseModel(TrackedBase):
    """Maps to the ``Course`` DTO in ``club_modules.courses.models``."""

    __tablename__ = "courses"

    __table_args__ = (
        CheckConstraint(
            "enrolled_count >= 0 AND enrolled_count <= max_participants",
            name="ck_course_capacity",
        ),
        Index("idx_course_date", "date"),
        Index("idx_course_status", "status"),
    )

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[datetime] = mapped_column(nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[int] = mapped_column(nullable=False)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    instructor_id: Mapped[UUID] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="planned")

    def to_dto(self):
        from club_modules.courses.models import Course, CourseStatus

        return Course(
            id=self.id,
            title=self.title,
            description=self.description,
            date=self.date,
            duration_minutes=self.duration_minutes,
            location=self.location,
            price=self.price,
            max_participants=self.max_participants,
            enrolled_count=self.enrolled_count,
            instructor_id=self.instructor_id,
            status=CourseStatus(self.status),
        )

    def __repr__(self) -> str:
        return f"<CourseModel {self.title!r} [{self.status}] {self.enrolled_count}/{self.max_participants}>"


class EnrollmentModel(TrackedBase):
    """Maps to the ``Enrollment`` DTO; ``created_at`` is the enrollment time."""

    __tablename__ = "enrollments"

    __table_args__ = (
        UniqueConstraint("course_id", "member_id", name="uq_enrollment_course_member"),
        Index("idx_enrollment_member", "member_id"),
        Index("idx_enrollment_payment_status", "payment_status"),
    )

    course_id: Mapped[UUID] = mapped_column(nullable=False)
    member_id: Mapped[UUID] = mapped_column(nullable=False)
    attended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    payment_date: Mapped[datetime | None]
    payment_method: Mapped[str | None] = mapped_column(String(30))
    payment_reference: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(String(500))
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def payment_state(self):
        from club_kernel.domain.money import PaymentStatus, parse_payment_method
        from club_modules.payments.models import PaymentState

        return PaymentState(
            status=PaymentStatus(self.payment_status),
            payment_date=self.payment_date,
            payment_method=parse_payment_method(self.payment_method) if self.payment_method else None,
            payment_reference=self.payment_reference,
        )

    def set_payment_state(self, state) -> None:
        self.payment_status = state.status.value
        self.payment_date = state.payment_date
        self.payment_method = state.payment_method.value if state.payment_method else None
        self.payment_reference = state.payment_reference

    def to_dto(self):
        from club_modules.courses.models import Enrollment

        state = self.payment_state()
        return Enrollment(
            id=self.id,
            course_id=self.course_id,
            member_id=self.member_id,
            enrolled_at=self.created_at,
            attended=self.attended,
            payment_status=state.status,
            payment_date=state.payment_date,
            payment_method=state.payment_method,
            payment_reference=state.payment_reference,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<EnrollmentModel {self.member_id} -> {self.course_id} [{self.payment_status}]>"
