"""
Tests for the typed exception hierarchy and its boundary status mapping.
"""

from uuid import uuid4

import pytest

from club_kernel.exceptions import (
    AlreadyEnrolledError,
    AuthorizationError,
    CancellationWindowClosedError,
    ClubKernelError,
    ConcurrentModificationError,
    ConflictError,
    CourseFullError,
    CourseNotFoundError,
    EnrollmentNotFoundError,
    InvalidPaymentTransitionError,
    NotFoundError,
    RegistrationExistsError,
    StoreUnavailableError,
    ValidationError,
    http_status_for,
)


@pytest.mark.parametrize(
    "exc, status",
    [
        (ValidationError("year", "out of range"), 400),
        (AuthorizationError(uuid4(), "record_expense"), 403),
        (CourseNotFoundError(uuid4()), 404),
        (EnrollmentNotFoundError(uuid4(), uuid4()), 404),
        (CourseFullError(uuid4(), 2), 409),
        (AlreadyEnrolledError(uuid4(), uuid4()), 409),
        (CancellationWindowClosedError(uuid4(), 23.0, 24), 409),
        (RegistrationExistsError(uuid4(), 2024), 409),
        (InvalidPaymentTransitionError("paid", "exempted", "correct to pending first"), 409),
        (ConcurrentModificationError("enrollment", uuid4()), 409),
        (StoreUnavailableError("enroll", "database is locked"), 503),
        (RuntimeError("boom"), 500),
    ],
)
def test_http_status(exc, status):
    assert http_status_for(exc) == status


def test_only_store_errors_are_retryable():
    assert StoreUnavailableError("enroll", "timeout").retryable
    assert not CourseFullError(uuid4(), 1).retryable
    assert not ValidationError("x", "y").retryable


def test_codes_are_distinct():
    classes = [
        ValidationError, AuthorizationError, NotFoundError, CourseNotFoundError,
        EnrollmentNotFoundError, ConflictError, AlreadyEnrolledError, CourseFullError,
        CancellationWindowClosedError, RegistrationExistsError,
        InvalidPaymentTransitionError, ConcurrentModificationError, StoreUnavailableError,
    ]
    codes = [c.code for c in classes]
    assert len(codes) == len(set(codes))


def test_structured_attributes():
    course_id = uuid4()
    exc = CourseFullError(course_id, 12)
    assert exc.course_id == course_id
    assert exc.max_participants == 12
    assert isinstance(exc, ConflictError)
    assert isinstance(exc, ClubKernelError)


def test_cancellation_window_message():
    exc = CancellationWindowClosedError(uuid4(), 23.0, 24)
    assert "Cancellation window closed" in str(exc)
    assert "23.0h" in str(exc)
