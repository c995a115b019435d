"""
Course Domain Models.

The nouns of course scheduling: courses, enrollments, attendance entries
and the per-entry outcomes of a bulk attendance call.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Mapping, Union
from uuid import UUID

from club_kernel.domain.money import PaymentMethod, PaymentStatus
from club_kernel.exceptions import ValidationError
from club_modules.payments.models import PaymentUpdate, validate_notes

MAX_TITLE_LENGTH = 100
MAX_LOCATION_LENGTH = 200
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480
MIN_PARTICIPANTS = 1
MAX_PARTICIPANTS = 100


class CourseStatus(str, Enum):
    """Course lifecycle states."""
    PLANNED = "planned"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Course:
    id: UUID
    title: str
    date: datetime
    duration_minutes: int
    location: str
    price: int
    max_participants: int
    instructor_id: UUID
    status: CourseStatus = CourseStatus.PLANNED
    description: str = ""
    enrolled_count: int = 0

    @property
    def end_date(self) -> datetime:
        return self.date + timedelta(minutes=self.duration_minutes)

    @property
    def spots_left(self) -> int:
        return max(self.max_participants - self.enrolled_count, 0)

    def is_enrollment_open(self, now: datetime) -> bool:
        return self.status is CourseStatus.PLANNED and self.date > now


@dataclass(frozen=True)
class CourseDraft:
    """
    Input for scheduling a course.

    ``price`` defaults to the organisation's course fee when omitted.  The
    "starts in the future" rule needs a clock and is checked by the service.
    """

    title: str
    date: datetime
    duration_minutes: int
    location: str
    max_participants: int
    instructor_id: UUID
    price: int | None = None
    description: str = ""

    def __post_init__(self) -> None:
        title = (self.title or "").strip()
        if not title:
            raise ValidationError("title", "required")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError("title", f"at most {MAX_TITLE_LENGTH} characters")
        object.__setattr__(self, "title", title)

        location = (self.location or "").strip()
        if not location:
            raise ValidationError("location", "required")
        if len(location) > MAX_LOCATION_LENGTH:
            raise ValidationError("location", f"at most {MAX_LOCATION_LENGTH} characters")
        object.__setattr__(self, "location", location)

        if self.date.tzinfo is None:
            raise ValidationError("date", "must be timezone-aware")
        _check_int_range("duration_minutes", self.duration_minutes,
                         MIN_DURATION_MINUTES, MAX_DURATION_MINUTES)
        _check_int_range("max_participants", self.max_participants,
                         MIN_PARTICIPANTS, MAX_PARTICIPANTS)
        if self.price is not None:
            _check_int_range("price", self.price, 0, None)


def _check_int_range(name: str, value: Any, low: int, high: int | None) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(name, f"expected an integer, got {value!r}")
    if value < low or (high is not None and value > high):
        bound = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise ValidationError(name, f"must be {bound}")


@dataclass(frozen=True)
class Enrollment:
    id: UUID
    course_id: UUID
    member_id: UUID
    enrolled_at: datetime
    attended: bool = False
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_date: datetime | None = None
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    notes: str | None = None

    def effective_payment_date(self) -> datetime:
        return self.payment_date or self.enrolled_at


@dataclass(frozen=True)
class EnrollmentRequest:
    course_id: UUID
    member_id: UUID
    notes: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.course_id, UUID):
            raise ValidationError("course_id", "must be a UUID")
        if not isinstance(self.member_id, UUID):
            raise ValidationError("member_id", "must be a UUID")
        validate_notes(self.notes)


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttendanceEntry:
    """One member's line on an attendance sheet, optionally with a payment."""

    member_id: UUID
    attended: bool
    notes: str | None = None
    payment: PaymentUpdate | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.member_id, UUID):
            raise ValidationError("member_id", "must be a UUID")
        if not isinstance(self.attended, bool):
            raise ValidationError("attended", f"expected a boolean, got {self.attended!r}")
        validate_notes(self.notes)
        if self.payment is not None and not isinstance(self.payment, PaymentUpdate):
            raise ValidationError("payment", "expected a PaymentUpdate")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AttendanceEntry:
        """Build an entry from a sheet row (``member_id``, ``attended``,
        optional ``notes`` and ``payment_status``/``payment_method``...)."""
        return replace(
            _sheet_line(data), notes=data.get("notes"), payment=_payment_from_mapping(data)
        )


def _sheet_line(data: Any) -> AttendanceEntry:
    """The member and attendance flag of a sheet row, nothing else."""
    if not isinstance(data, Mapping):
        raise ValidationError("entries", f"expected a mapping, got {type(data).__name__}")
    try:
        member_id = data["member_id"]
        attended = data["attended"]
    except KeyError as exc:
        raise ValidationError(str(exc.args[0]), "required") from None
    if isinstance(member_id, str):
        try:
            member_id = UUID(member_id)
        except ValueError:
            raise ValidationError("member_id", f"not a UUID: {member_id!r}") from None
    return AttendanceEntry(member_id=member_id, attended=attended)


def _payment_from_mapping(data: Mapping[str, Any]) -> PaymentUpdate | None:
    if not data.get("payment_status"):
        return None
    return PaymentUpdate(
        status=data["payment_status"],
        payment_method=data.get("payment_method"),
        payment_reference=data.get("payment_reference"),
        exemption_reason=data.get("exemption_reason"),
        admin_correction=bool(data.get("admin_correction", False)),
    )


class SkipReason(str, Enum):
    NOT_ENROLLED = "not_enrolled"
    INVALID_PAYMENT_TRANSITION = "invalid_payment_transition"
    INVALID_PAYMENT = "invalid_payment"
    INVALID_NOTES = "invalid_notes"
    CONCURRENT_MODIFICATION = "concurrent_modification"


@dataclass(frozen=True)
class AttendanceApplied:
    member_id: UUID
    enrollment: Enrollment
    applied: bool = field(default=True, init=False)


@dataclass(frozen=True)
class AttendanceSkipped:
    member_id: UUID
    reason: SkipReason
    detail: str = ""
    applied: bool = field(default=False, init=False)


AttendanceOutcome = Union[AttendanceApplied, AttendanceSkipped]


def read_attendance_row(data: Any) -> AttendanceEntry | AttendanceSkipped:
    """
    Parse one sheet row.  Bad notes or payment fields skip that row only.

    Raises:
        ValidationError: the row is not a mapping, or has no usable
            ``member_id``/``attended``.
    """
    entry = _sheet_line(data)
    try:
        return replace(entry, notes=data.get("notes"), payment=_payment_from_mapping(data))
    except ValidationError as exc:
        reason = SkipReason.INVALID_NOTES if exc.field == "notes" else SkipReason.INVALID_PAYMENT
        return AttendanceSkipped(entry.member_id, reason, str(exc))


@dataclass(frozen=True)
class AttendanceBatchResult:
    course_id: UUID
    outcomes: tuple[AttendanceOutcome, ...]
    course_completed: bool = False

    @property
    def applied_count(self) -> int:
        return sum(1 for o in self.outcomes if o.applied)

    @property
    def skipped(self) -> tuple[AttendanceSkipped, ...]:
        return tuple(o for o in self.outcomes if isinstance(o, AttendanceSkipped))
