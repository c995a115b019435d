"""
Typed Exception Hierarchy for the Club Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the HTTP boundary, batch jobs, tests) must branch on the KIND of
failure, never on message wording.  Every error therefore has:
  1. A typed exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

    try:
        enrollment_service.enroll(request, actor)
    except CourseFullError as e:
        respond(409, code=e.code, course_id=str(e.course_id))

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ClubKernelError (base)
    |
    +-- ValidationError                      400
    |
    +-- AuthorizationError                   403
    |
    +-- NotFoundError                        404
    |   +-- CourseNotFoundError
    |   +-- EnrollmentNotFoundError
    |   +-- RegistrationNotFoundError
    |   +-- ExpenseNotFoundError
    |   +-- MemberNotFoundError
    |
    +-- ConflictError                        409
    |   +-- AlreadyEnrolledError
    |   +-- CourseFullError
    |   +-- EnrollmentClosedError
    |   +-- CancellationWindowClosedError
    |   +-- EnrollmentNotCancellableError
    |   +-- CourseHasEnrollmentsError
    |   +-- RegistrationExistsError
    |   +-- InvalidPaymentTransitionError
    |   +-- ExpenseStateError
    |   +-- ConcurrentModificationError
    |
    +-- StoreUnavailableError                503 (retryable)

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ValidationError and ConflictError are user-actionable and never retried
   automatically.
2. StoreUnavailableError is the only retryable error (``retryable = True``);
   the boundary layer retries with backoff.  It is never swallowed.
3. Batch operations (bulk attendance) never raise for individual items; each
   item carries its own outcome.
4. Aggregation never raises for missing joined data.
===============================================================================
"""

from uuid import UUID


class ClubKernelError(Exception):
    """
    Base exception for all club kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CLUB_KERNEL_ERROR"
    retryable: bool = False


# Validation


class ValidationError(ClubKernelError):
    """Malformed or missing input.  Reported to the caller, never retried."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Authorization


class AuthorizationError(ClubKernelError):
    """Caller identity is not allowed to perform the operation."""

    code: str = "FORBIDDEN"

    def __init__(self, actor_id: UUID, operation: str):
        self.actor_id = actor_id
        self.operation = operation
        super().__init__(f"Actor {actor_id} is not allowed to {operation}")


# Not found


class NotFoundError(ClubKernelError):
    """Base exception for absent referenced records."""

    code: str = "NOT_FOUND"


class CourseNotFoundError(NotFoundError):
    """Course with given ID was not found."""

    code: str = "COURSE_NOT_FOUND"

    def __init__(self, course_id: UUID):
        self.course_id = course_id
        super().__init__(f"Course not found: {course_id}")


class EnrollmentNotFoundError(NotFoundError):
    """No enrollment links this member to this course."""

    code: str = "ENROLLMENT_NOT_FOUND"

    def __init__(self, course_id: UUID, member_id: UUID):
        self.course_id = course_id
        self.member_id = member_id
        super().__init__(
            f"Member {member_id} is not enrolled in course {course_id}"
        )


class RegistrationNotFoundError(NotFoundError):
    """Annual registration was not found."""

    code: str = "REGISTRATION_NOT_FOUND"

    def __init__(self, registration_id: UUID):
        self.registration_id = registration_id
        super().__init__(f"Annual registration not found: {registration_id}")


class ExpenseNotFoundError(NotFoundError):
    """Expense was not found."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: UUID):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


class MemberNotFoundError(NotFoundError):
    """Member was not found."""

    code: str = "MEMBER_NOT_FOUND"

    def __init__(self, member_id: UUID):
        self.member_id = member_id
        super().__init__(f"Member not found: {member_id}")


# Conflicts


class ConflictError(ClubKernelError):
    """
    Base exception for uniqueness, capacity and state-rule violations.

    The request was well formed but conflicts with the current state of the
    store.  Never retried automatically.
    """

    code: str = "CONFLICT"


class AlreadyEnrolledError(ConflictError):
    """Member already holds an enrollment for this course."""

    code: str = "ALREADY_ENROLLED"

    def __init__(self, course_id: UUID, member_id: UUID):
        self.course_id = course_id
        self.member_id = member_id
        super().__init__(
            f"Member {member_id} is already enrolled in course {course_id}"
        )


class CourseFullError(ConflictError):
    """Course has reached max_participants."""

    code: str = "COURSE_FULL"

    def __init__(self, course_id: UUID, max_participants: int):
        self.course_id = course_id
        self.max_participants = max_participants
        super().__init__(
            f"Course {course_id} is full ({max_participants} participants)"
        )


class EnrollmentClosedError(ConflictError):
    """Course no longer accepts enrollment (not planned, or already started)."""

    code: str = "ENROLLMENT_CLOSED"

    def __init__(self, course_id: UUID, status: str):
        self.course_id = course_id
        self.status = status
        super().__init__(
            f"Enrollment is closed for course {course_id} (status={status})"
        )


class CancellationWindowClosedError(ConflictError):
    """Course starts too soon for self-service cancellation."""

    code: str = "CANCELLATION_WINDOW_CLOSED"

    def __init__(self, course_id: UUID, hours_until_start: float, window_hours: int):
        self.course_id = course_id
        self.hours_until_start = hours_until_start
        self.window_hours = window_hours
        super().__init__(
            f"Cancellation window closed for course {course_id}: "
            f"starts in {hours_until_start:.1f}h, window is {window_hours}h"
        )


class EnrollmentNotCancellableError(ConflictError):
    """Enrollment payment state forbids self-service cancellation."""

    code: str = "ENROLLMENT_NOT_CANCELLABLE"

    def __init__(self, course_id: UUID, member_id: UUID, payment_status: str):
        self.course_id = course_id
        self.member_id = member_id
        self.payment_status = payment_status
        super().__init__(
            f"Enrollment of member {member_id} in course {course_id} is "
            f"{payment_status}; contact an administrator to cancel"
        )


class CourseHasEnrollmentsError(ConflictError):
    """Course cannot be deleted while enrollments reference it."""

    code: str = "COURSE_HAS_ENROLLMENTS"

    def __init__(self, course_id: UUID, enrollment_count: int):
        self.course_id = course_id
        self.enrollment_count = enrollment_count
        super().__init__(
            f"Course {course_id} has {enrollment_count} enrollment(s)"
        )


class RegistrationExistsError(ConflictError):
    """Member already has an annual registration for the year."""

    code: str = "REGISTRATION_EXISTS"

    def __init__(self, member_id: UUID, year: int):
        self.member_id = member_id
        self.year = year
        super().__init__(
            f"Member {member_id} already has a registration for {year}"
        )


class InvalidPaymentTransitionError(ConflictError):
    """Payment status transition is not allowed from the current state."""

    code: str = "INVALID_PAYMENT_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        super().__init__(
            f"Cannot move payment from {from_status} to {to_status}: {reason}"
        )


class ExpenseStateError(ConflictError):
    """Expense lifecycle forbids the requested operation."""

    code: str = "EXPENSE_STATE_ERROR"

    def __init__(self, expense_id: UUID, status: str, operation: str):
        self.expense_id = expense_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} expense {expense_id} in status {status}"
        )


class ConcurrentModificationError(ConflictError):
    """Row was modified by another transaction (optimistic lock lost)."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: UUID | None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} was modified concurrently"
        )


# Store


class StoreUnavailableError(ClubKernelError):
    """
    Transient persistence failure: timeout, lock wait, lost connection.

    Safe to retry with backoff at the boundary layer.
    """

    code: str = "STORE_UNAVAILABLE"
    retryable: bool = True

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store unavailable during {operation}: {detail}")


_HTTP_STATUS: tuple[tuple[type[ClubKernelError], int], ...] = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StoreUnavailableError, 503),
)


def http_status_for(exc: BaseException) -> int:
    """Status code the boundary layer should answer with for ``exc``."""
    for exc_type, status in _HTTP_STATUS:
        if isinstance(exc, exc_type):
            return status
    return 500
