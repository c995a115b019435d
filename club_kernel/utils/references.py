"""
Payment reference generation.

Format: ``<PREFIX>-YYYYMMDDHHMMSS-XXXXXX``.  The timestamp is the injected
clock time in UTC; the suffix is six symbols drawn with ``secrets`` from a
32-symbol alphabet (no 0/O/1/I), roughly 30 bits per second of issue.
"""

import re
import secrets
from datetime import datetime, timezone
from enum import Enum

REFERENCE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
SUFFIX_LENGTH = 6
MAX_REFERENCE_LENGTH = 100


class ReferenceKind(str, Enum):
    COURSE = "course"
    ANNUAL_REGISTRATION = "annual_registration"

    @property
    def prefix(self) -> str:
        return _PREFIXES[self]


_PREFIXES = {
    ReferenceKind.COURSE: "CRS",
    ReferenceKind.ANNUAL_REGISTRATION: "REG",
}

REFERENCE_PATTERN = re.compile(
    r"^(CRS|REG)-\d{14}-[" + REFERENCE_ALPHABET + r"]{" + str(SUFFIX_LENGTH) + r"}$"
)


def generate_payment_reference(kind: ReferenceKind, now: datetime) -> str:
    """Build a fresh reference for a payment recorded at ``now``."""
    stamp = now.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S")
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{kind.prefix}-{stamp}-{suffix}"


def is_generated_reference(value: str) -> bool:
    return bool(REFERENCE_PATTERN.match(value))
