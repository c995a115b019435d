"""
Tests for the Payment State Tracker and annual registrations
(``PaymentService``).
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from club_kernel.domain.identity import Actor
from club_kernel.domain.money import PaymentMethod, PaymentStatus
from club_kernel.exceptions import (
    AuthorizationError,
    EnrollmentNotFoundError,
    InvalidPaymentTransitionError,
    RegistrationExistsError,
    RegistrationNotFoundError,
    ValidationError,
)
from club_kernel.utils.references import is_generated_reference
from club_modules.payments.models import PaymentUpdate

PAID_CASH = PaymentUpdate(PaymentStatus.PAID, PaymentMethod.CASH)


class TestEnrollmentPayments:
    def test_pending_to_paid(self, create_course, create_member, enroll, payment_service, admin, clock):
        course = create_course()
        member = create_member()
        enroll(course, member)

        enrollment = payment_service.record_enrollment_payment(course.id, member.id, PAID_CASH, admin)

        assert enrollment.payment_status is PaymentStatus.PAID
        assert enrollment.payment_method is PaymentMethod.CASH
        assert enrollment.payment_date == clock.now()
        assert enrollment.payment_reference.startswith("CRS-")

    def test_paid_twice_is_idempotent(self, create_course, create_member, enroll, payment_service,
                                      admin, clock):
        course = create_course()
        member = create_member()
        enroll(course, member)
        first = payment_service.record_enrollment_payment(course.id, member.id, PAID_CASH, admin)
        clock.advance_hours(5)

        second = payment_service.record_enrollment_payment(course.id, member.id, PAID_CASH, admin)

        assert second.payment_date == first.payment_date
        assert second.payment_reference == first.payment_reference

    def test_correction_requires_flag(self, create_course, create_member, enroll, payment_service, admin):
        course = create_course()
        member = create_member()
        enroll(course, member)
        paid = payment_service.record_enrollment_payment(course.id, member.id, PAID_CASH, admin)

        with pytest.raises(InvalidPaymentTransitionError):
            payment_service.record_enrollment_payment(
                course.id, member.id, PaymentUpdate(PaymentStatus.PENDING), admin
            )

        corrected = payment_service.record_enrollment_payment(
            course.id, member.id, PaymentUpdate(PaymentStatus.PENDING, admin_correction=True), admin
        )
        assert corrected.payment_status is PaymentStatus.PENDING
        assert corrected.payment_date is None
        assert corrected.payment_reference == paid.payment_reference

    def test_rejected_transition_leaves_record_unchanged(self, create_course, create_member, enroll,
                                                         payment_service, enrollment_service, admin):
        course = create_course()
        member = create_member()
        enroll(course, member)
        payment_service.record_enrollment_payment(course.id, member.id, PAID_CASH, admin)

        with pytest.raises(InvalidPaymentTransitionError):
            payment_service.record_enrollment_payment(
                course.id, member.id, PaymentUpdate(PaymentStatus.EXEMPTED), admin
            )
        assert enrollment_service.get_enrollment(course.id, member.id).payment_status is PaymentStatus.PAID

    def test_unknown_enrollment(self, create_course, payment_service, admin):
        with pytest.raises(EnrollmentNotFoundError):
            payment_service.record_enrollment_payment(create_course().id, uuid4(), PAID_CASH, admin)

    def test_admin_only(self, create_course, create_member, enroll, payment_service):
        course = create_course()
        member = create_member()
        enroll(course, member)
        with pytest.raises(AuthorizationError):
            payment_service.record_enrollment_payment(
                course.id, member.id, PAID_CASH, Actor.for_member(member.id)
            )

    def test_logs_transition(self, create_course, create_member, enroll, payment_service, admin,
                             captured_logs):
        course = create_course()
        member = create_member()
        enroll(course, member)
        payment_service.record_enrollment_payment(course.id, member.id, PAID_CASH, admin)

        (record,) = [r for r in captured_logs() if r["message"] == "enrollment_payment_recorded"]
        assert record["from_status"] == "pending"
        assert record["to_status"] == "paid"
        assert record["changed"] is True


class TestAnnualRegistrations:
    def test_register_with_default_fee(self, create_member, payment_service, admin):
        member = create_member()
        registration = payment_service.register_annual(member.id, 2024, admin)

        assert registration.amount == 10000
        assert registration.status is PaymentStatus.PENDING
        assert registration.year == 2024

    def test_one_per_member_per_year(self, create_member, payment_service, admin):
        member = create_member()
        payment_service.register_annual(member.id, 2024, admin)

        with pytest.raises(RegistrationExistsError):
            payment_service.register_annual(member.id, 2024, admin)
        payment_service.register_annual(member.id, 2025, admin)
        assert payment_service.count_registrations(2024) == 1

    @pytest.mark.parametrize("year", [2019, 2051, "2024", True])
    def test_year_bounds(self, year, create_member, payment_service, admin):
        with pytest.raises(ValidationError):
            payment_service.register_annual(create_member().id, year, admin)

    def test_negative_amount(self, create_member, payment_service, admin):
        with pytest.raises(ValidationError):
            payment_service.register_annual(create_member().id, 2024, admin, amount=-1)

    def test_paid_without_reference_gets_one(self, create_member, payment_service, admin):
        """A paid registration receives a unique generated reference."""
        references = set()
        for name in ("Awa", "Binta", "Coumba"):
            reg = payment_service.register_annual(create_member(name).id, 2024, admin)
            paid = payment_service.record_registration_payment(reg.id, PAID_CASH, admin)
            assert paid.status is PaymentStatus.PAID
            assert is_generated_reference(paid.payment_reference)
            assert paid.payment_reference.startswith("REG-")
            references.add(paid.payment_reference)
        assert len(references) == 3

    def test_exemption_needs_reason(self, create_member, payment_service, admin):
        reg = payment_service.register_annual(create_member().id, 2024, admin)

        with pytest.raises(ValidationError):
            payment_service.record_registration_payment(
                reg.id, PaymentUpdate(PaymentStatus.EXEMPTED), admin
            )
        exempted = payment_service.record_registration_payment(
            reg.id, PaymentUpdate(PaymentStatus.EXEMPTED, exemption_reason="honorary member"), admin
        )
        assert exempted.status is PaymentStatus.EXEMPTED
        assert exempted.exemption_reason == "honorary member"

    def test_unknown_registration(self, payment_service, admin):
        with pytest.raises(RegistrationNotFoundError):
            payment_service.record_registration_payment(uuid4(), PAID_CASH, admin)

    def test_delete(self, create_member, payment_service, admin):
        reg = payment_service.register_annual(create_member().id, 2024, admin)
        payment_service.delete_registration(reg.id, admin)
        with pytest.raises(RegistrationNotFoundError):
            payment_service.get_registration(reg.id)

    def test_stats(self, create_member, payment_service, admin):
        paid = payment_service.register_annual(create_member("Awa").id, 2024, admin)
        payment_service.record_registration_payment(paid.id, PAID_CASH, admin)
        payment_service.register_annual(create_member("Binta").id, 2024, admin, amount=5000)
        exempt = payment_service.register_annual(create_member("Coumba").id, 2024, admin)
        payment_service.record_registration_payment(
            exempt.id, PaymentUpdate(PaymentStatus.EXEMPTED, exemption_reason="staff"), admin
        )

        stats = payment_service.registration_stats(2024)
        assert (stats.total, stats.paid, stats.pending, stats.exempted) == (3, 1, 1, 1)
        assert stats.revenue == 10000
        assert stats.average_amount == Decimal("8333.33")

    def test_stats_empty_year(self, payment_service):
        stats = payment_service.registration_stats(2030)
        assert stats.total == 0
        assert stats.average_amount == Decimal("0")

    def test_members_without_registration(self, create_member, payment_service, member_service, admin):
        registered = create_member("Awa")
        missing = create_member("Binta")
        gone = create_member("Coumba")
        member_service.deactivate_member(gone.id, admin)
        payment_service.register_annual(registered.id, 2024, admin)

        assert [m.id for m in payment_service.members_without_registration(2024)] == [missing.id]

    def test_list_by_status(self, create_member, payment_service, admin, clock):
        first = payment_service.register_annual(create_member("Awa").id, 2024, admin)
        clock.advance(60)
        payment_service.register_annual(create_member("Binta").id, 2024, admin)
        payment_service.record_registration_payment(first.id, PAID_CASH, admin)

        assert [r.id for r in payment_service.list_registrations(2024, PaymentStatus.PAID)] == [first.id]
        assert len(payment_service.list_registrations(2024)) == 2

    def test_registration_date_fallback(self, create_member, payment_service, admin, clock):
        reg = payment_service.register_annual(create_member().id, 2024, admin)
        assert reg.effective_payment_date() == reg.created_at
        clock.advance(timedelta(days=2).total_seconds())
        paid = payment_service.record_registration_payment(reg.id, PAID_CASH, admin)
        assert paid.effective_payment_date() == paid.payment_date
        assert paid.payment_date > reg.created_at
