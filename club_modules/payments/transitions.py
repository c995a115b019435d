"""
Payment status transitions.

Pure functions, no I/O.  The same rules apply to enrollment payments and
annual registrations:

    from \\ to   pending            paid           exempted
    pending     no-op              allowed        allowed
    paid        admin correction   idempotent     rejected
    exempted    admin correction   rejected       idempotent

Moving to paid never overwrites an existing payment date or reference.
Correcting back to pending clears date, method and exemption reason but
keeps the reference, so the audit trail still ties the record to the
receipt that was issued.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from club_kernel.domain.money import PaymentMethod, PaymentStatus
from club_kernel.exceptions import InvalidPaymentTransitionError, ValidationError
from club_kernel.utils.references import ReferenceKind, generate_payment_reference
from club_modules.payments.models import PaymentState, PaymentUpdate

_REJECTED = {
    (PaymentStatus.PAID, PaymentStatus.EXEMPTED),
    (PaymentStatus.EXEMPTED, PaymentStatus.PAID),
}


@dataclass(frozen=True)
class TransitionOutcome:
    state: PaymentState
    changed: bool


def apply_transition(
    current: PaymentState,
    update: PaymentUpdate,
    *,
    now: datetime,
    kind: ReferenceKind,
    requires_exemption_reason: bool = False,
) -> TransitionOutcome:
    """
    Compute the state after applying ``update`` to ``current``.

    Raises:
        InvalidPaymentTransitionError: rejected pair, or a correction to
            pending without ``admin_correction``.
        ValidationError: paid without a payment method, or exempted without
            a reason where one is required.
    """
    source, target = current.status, update.status

    if (source, target) in _REJECTED:
        raise InvalidPaymentTransitionError(
            source.value, target.value, "correct to pending first"
        )

    if target is PaymentStatus.PENDING:
        new = _to_pending(current, update)
    elif target is PaymentStatus.PAID:
        new = _to_paid(current, update, now, kind)
    else:
        new = _to_exempted(current, update, requires_exemption_reason)

    return TransitionOutcome(state=new, changed=new != current)


def _to_pending(current: PaymentState, update: PaymentUpdate) -> PaymentState:
    if current.status is PaymentStatus.PENDING:
        return current
    if not update.admin_correction:
        raise InvalidPaymentTransitionError(
            current.status.value,
            PaymentStatus.PENDING.value,
            "requires an administrative correction",
        )
    return PaymentState(
        status=PaymentStatus.PENDING,
        payment_reference=current.payment_reference,
    )


def _to_paid(
    current: PaymentState,
    update: PaymentUpdate,
    now: datetime,
    kind: ReferenceKind,
) -> PaymentState:
    method = update.payment_method or current.payment_method
    if method is None:
        raise ValidationError("payment_method", "required to record a payment")
    if method is PaymentMethod.EXEMPTED:
        raise ValidationError("payment_method", "use the exempted status instead")

    if current.status is PaymentStatus.PAID:
        # Re-submission: only the method may be amended
        return replace(current, payment_method=method)

    return PaymentState(
        status=PaymentStatus.PAID,
        payment_date=current.payment_date or update.payment_date or now,
        payment_method=method,
        payment_reference=(
            current.payment_reference
            or update.payment_reference
            or generate_payment_reference(kind, now)
        ),
    )


def _to_exempted(
    current: PaymentState,
    update: PaymentUpdate,
    requires_exemption_reason: bool,
) -> PaymentState:
    reason = update.exemption_reason or current.exemption_reason
    if requires_exemption_reason and not reason:
        raise ValidationError("exemption_reason", "required to exempt a registration")

    if current.status is PaymentStatus.EXEMPTED:
        return replace(current, exemption_reason=reason)

    return PaymentState(
        status=PaymentStatus.EXEMPTED,
        payment_reference=current.payment_reference,
        exemption_reason=reason,
    )
