"""Pure domain values: clock, identity, money."""

from club_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from club_kernel.domain.identity import Actor, Role
from club_kernel.domain.money import (
    DEFAULT_AMOUNTS,
    PaymentMethod,
    PaymentStatus,
    format_amount,
    parse_amount,
)

__all__ = [
    "Actor",
    "Clock",
    "DEFAULT_AMOUNTS",
    "DeterministicClock",
    "PaymentMethod",
    "PaymentStatus",
    "Role",
    "SystemClock",
    "format_amount",
    "parse_amount",
]
