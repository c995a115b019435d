"""
Reporting Configuration Schema.

Timezone periods are cut in, currency shown on reports, sentinel labels for
records whose joined course or member is gone, and CSV section titles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self
from zoneinfo import ZoneInfo

from club_config import ClubConfig
from club_kernel.domain.money import format_amount
from club_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass(frozen=True)
class ReportingConfig:
    """
    Configuration schema for the reporting module.
    """

    reporting_timezone: str = "UTC"
    currency_code: str = "XAF"
    currency_symbol: str = "FCFA"

    # Joined-record sentinels
    deleted_course_label: str = "deleted course"
    unknown_member_label: str = "unknown member"

    # Decimal places for ratios (profit margin, rates)
    ratio_places: int = 4

    # KPI: how many recent courses feed the attendance chart
    recent_courses_limit: int = 6

    # CSV section titles
    summary_section: str = "SUMMARY"
    registrations_section: str = "ANNUAL REGISTRATIONS"
    course_payments_section: str = "COURSE PAYMENTS"
    expenses_section: str = "EXPENSES"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.reporting_timezone)

    def format_amount(self, amount: int) -> str:
        return format_amount(amount, symbol=self.currency_symbol)

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_club_config(cls, config: ClubConfig) -> Self:
        instance = cls(
            reporting_timezone=config.reporting_timezone,
            currency_code=config.currency_code,
            currency_symbol=config.currency_symbol,
        )
        logger.debug(
            "reporting_config_loaded",
            extra={"reporting_timezone": instance.reporting_timezone},
        )
        return instance
