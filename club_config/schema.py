"""
ClubConfig schema.

The organisation-level settings every service reads: currency, default
fees, the self-service cancellation window, store timeouts and the
timezone reporting periods are cut in.
"""

from __future__ import annotations

from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class ClubConfig:
    """Frozen runtime configuration."""

    currency_code: str = "XAF"
    currency_symbol: str = "FCFA"
    default_course_fee: int = 1000
    default_annual_fee: int = 10000
    cancellation_window_hours: int = 24
    store_timeout_seconds: float = 5.0
    reporting_timezone: str = "UTC"
    database_url: str = "sqlite:///club.db"

    def __post_init__(self) -> None:
        for name in ("default_course_fee", "default_annual_fee", "cancellation_window_hours"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        if self.store_timeout_seconds <= 0:
            raise ValueError("store_timeout_seconds must be positive")
        if not self.currency_code:
            raise ValueError("currency_code is required")
        try:
            ZoneInfo(self.reporting_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"Unknown reporting_timezone: {self.reporting_timezone!r}"
            ) from exc

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.reporting_timezone)
