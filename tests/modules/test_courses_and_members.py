"""
Tests for course scheduling (``CourseService``) and the member directory
(``MemberService``).
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from club_kernel.domain.identity import Actor, Role
from club_kernel.exceptions import (
    AuthorizationError,
    CourseHasEnrollmentsError,
    CourseNotFoundError,
    MemberNotFoundError,
    ValidationError,
)
from club_modules.courses.models import CourseDraft, CourseStatus
from club_modules.members.models import MemberDraft

INSTRUCTOR_ID = uuid4()


def _draft(clock, **overrides):
    fields = dict(
        title="Evening pilates",
        date=clock.now() + timedelta(days=2),
        duration_minutes=45,
        location="Studio B",
        max_participants=12,
        instructor_id=INSTRUCTOR_ID,
    )
    fields.update(overrides)
    return CourseDraft(**fields)


class TestCreateCourse:
    def test_defaults(self, course_service, admin, clock, config):
        course = course_service.create_course(_draft(clock), admin)

        assert course.status is CourseStatus.PLANNED
        assert course.enrolled_count == 0
        assert course.price == config.default_course_fee
        assert course.spots_left == 12
        assert course.end_date == course.date + timedelta(minutes=45)

    def test_explicit_price(self, course_service, admin, clock):
        assert course_service.create_course(_draft(clock, price=0), admin).price == 0

    def test_must_start_in_the_future(self, course_service, admin, clock):
        with pytest.raises(ValidationError) as exc_info:
            course_service.create_course(_draft(clock, date=clock.now()), admin)
        assert exc_info.value.field == "date"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": "   "},
            {"title": "x" * 101},
            {"location": ""},
            {"duration_minutes": 10},
            {"duration_minutes": 481},
            {"max_participants": 0},
            {"max_participants": 101},
            {"max_participants": True},
            {"price": -1},
        ],
    )
    def test_draft_validation(self, overrides, clock):
        with pytest.raises(ValidationError):
            _draft(clock, **overrides)

    def test_naive_date_rejected(self, clock):
        with pytest.raises(ValidationError):
            _draft(clock, date=clock.now().replace(tzinfo=None))

    def test_admin_only(self, course_service, clock):
        with pytest.raises(AuthorizationError):
            course_service.create_course(_draft(clock), Actor.for_member(uuid4()))


class TestCourseLifecycle:
    def test_set_status(self, create_course, course_service, admin):
        course = create_course()
        updated = course_service.set_status(course.id, "ongoing", admin)
        assert updated.status is CourseStatus.ONGOING

    def test_unknown_status(self, create_course, course_service, admin):
        with pytest.raises(ValidationError):
            course_service.set_status(create_course().id, "postponed", admin)

    def test_unknown_course(self, course_service, admin):
        with pytest.raises(CourseNotFoundError):
            course_service.set_status(uuid4(), CourseStatus.CANCELLED, admin)

    def test_delete_empty_course(self, create_course, course_service, admin):
        course = create_course()
        course_service.delete_course(course.id, admin)
        with pytest.raises(CourseNotFoundError):
            course_service.get_course(course.id)

    def test_delete_with_enrollments_refused(self, create_course, create_member, enroll,
                                             course_service, admin):
        course = create_course()
        enroll(course, create_member())

        with pytest.raises(CourseHasEnrollmentsError) as exc_info:
            course_service.delete_course(course.id, admin)
        assert exc_info.value.enrollment_count == 1
        assert course_service.get_course(course.id).enrolled_count == 1

    def test_list_courses(self, create_course, course_service, admin, clock):
        later = create_course("Later", starts_in=timedelta(days=10))
        sooner = create_course("Sooner", starts_in=timedelta(days=1))
        course_service.set_status(later.id, CourseStatus.CANCELLED, admin)

        assert [c.id for c in course_service.list_courses()] == [sooner.id, later.id]
        assert [c.id for c in course_service.list_courses(status=CourseStatus.CANCELLED)] == [later.id]
        window = course_service.list_courses(start=clock.now(), end=clock.now() + timedelta(days=5))
        assert [c.id for c in window] == [sooner.id]


class TestMembers:
    def test_create_normalises_email(self, member_service, admin):
        member = member_service.create_member(
            MemberDraft(" Awa ", "Ndiaye", "Awa.Ndiaye@Example.org"), admin
        )
        assert member.email == "awa.ndiaye@example.org"
        assert member.full_name == "Awa Ndiaye"
        assert member.role is Role.MEMBER

    def test_duplicate_email(self, member_service, admin):
        member_service.create_member(MemberDraft("Awa", "Ndiaye", "awa@example.org"), admin)
        with pytest.raises(ValidationError) as exc_info:
            member_service.create_member(MemberDraft("Awa", "Diop", "AWA@example.org"), admin)
        assert exc_info.value.field == "email"
        assert member_service.count_active() == 1

    @pytest.mark.parametrize("email", ["", "no-at-sign", "a@nodot", "@example.org"])
    def test_invalid_email(self, email):
        with pytest.raises(ValidationError):
            MemberDraft("Awa", "Ndiaye", email)

    def test_unknown_role(self):
        with pytest.raises(ValidationError):
            MemberDraft("Awa", "Ndiaye", "awa@example.org", role="treasurer")

    def test_deactivate(self, create_member, member_service, admin):
        awa = create_member("Awa")
        binta = create_member("Binta", last_name="Ba")
        member_service.deactivate_member(awa.id, admin)

        assert member_service.get_member(awa.id).is_active is False
        assert [m.id for m in member_service.list_members()] == [binta.id]
        assert len(member_service.list_members(active_only=False)) == 2
        assert member_service.count_active() == 1

    def test_unknown_member(self, member_service, admin):
        with pytest.raises(MemberNotFoundError):
            member_service.deactivate_member(uuid4(), admin)
