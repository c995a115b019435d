"""
Payment State Tracker and annual registrations.

``PaymentService`` lives in ``club_modules.payments.service``; it is not
re-exported here because the courses module imports the payment models.
"""

from club_modules.payments.models import (
    AnnualRegistration,
    PaymentFact,
    PaymentSourceType,
    PaymentState,
    PaymentUpdate,
    RegistrationStats,
)
from club_modules.payments.transitions import TransitionOutcome, apply_transition

__all__ = [
    "AnnualRegistration",
    "PaymentFact",
    "PaymentSourceType",
    "PaymentState",
    "PaymentUpdate",
    "RegistrationStats",
    "TransitionOutcome",
    "apply_transition",
]
