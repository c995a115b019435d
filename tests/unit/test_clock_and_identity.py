"""
Tests for the injectable clock and caller identity.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from club_kernel.domain.clock import DeterministicClock, SystemClock
from club_kernel.domain.identity import Actor, Role
from club_kernel.exceptions import AuthorizationError


class TestDeterministicClock:
    def test_default_time(self):
        assert DeterministicClock().now() == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_stable_until_advanced(self):
        clock = DeterministicClock()
        first = clock.now()
        assert clock.now() == first
        clock.advance(90)
        assert clock.now() == first + timedelta(seconds=90)
        clock.advance_hours(2)
        assert clock.now() == first + timedelta(hours=2, seconds=90)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(10)
        target = datetime(2025, 6, 1, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target

    def test_naive_datetimes_rejected(self):
        with pytest.raises(ValueError):
            DeterministicClock(datetime(2024, 1, 1))
        with pytest.raises(ValueError):
            DeterministicClock().set_time(datetime(2024, 1, 1))

    def test_always_utc(self):
        plus_two = timezone(timedelta(hours=2))
        clock = DeterministicClock(datetime(2024, 1, 1, 14, tzinfo=plus_two))
        assert clock.now().utcoffset() == timedelta(0)
        assert clock.now().hour == 12


def test_system_clock_is_aware():
    assert SystemClock().now().tzinfo is not None


class TestActor:
    def test_admin_passes_every_check(self):
        actor = Actor.admin(uuid4())
        actor.require_admin("anything")
        actor.require_self_or_admin(uuid4(), "enroll")
        assert actor.is_admin

    def test_member_acts_for_self_only(self):
        member_id = uuid4()
        actor = Actor.for_member(member_id)
        assert actor.role is Role.MEMBER
        actor.require_self_or_admin(member_id, "enroll")
        with pytest.raises(AuthorizationError) as exc_info:
            actor.require_self_or_admin(uuid4(), "enroll")
        assert exc_info.value.operation == "enroll"

    def test_member_is_not_admin(self):
        with pytest.raises(AuthorizationError):
            Actor.for_member(uuid4()).require_admin("record_expense")

    def test_member_without_member_id(self):
        actor = Actor(actor_id=uuid4(), role=Role.MEMBER)
        with pytest.raises(AuthorizationError):
            actor.require_self_or_admin(uuid4(), "cancel_enrollment")
