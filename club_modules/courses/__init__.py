"""Courses: scheduling, enrollment and attendance."""

from club_modules.courses.models import (
    AttendanceApplied,
    AttendanceBatchResult,
    AttendanceEntry,
    AttendanceSkipped,
    Course,
    CourseDraft,
    CourseStatus,
    Enrollment,
    EnrollmentRequest,
    SkipReason,
)
from club_modules.courses.service import AttendanceService, CourseService, EnrollmentService

__all__ = [
    "AttendanceApplied",
    "AttendanceBatchResult",
    "AttendanceEntry",
    "AttendanceService",
    "AttendanceSkipped",
    "Course",
    "CourseDraft",
    "CourseService",
    "CourseStatus",
    "Enrollment",
    "EnrollmentRequest",
    "EnrollmentService",
    "SkipReason",
]
