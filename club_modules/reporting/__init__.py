"""Reporting: financial aggregation and report export."""

from club_modules.reporting.config import ReportingConfig
from club_modules.reporting.export import export_filename, render
from club_modules.reporting.models import (
    Dashboard,
    DetailedReport,
    ExportFormat,
    FinancialSummary,
    KPIs,
    MemberLedger,
    MonthlySeries,
    PaymentFilter,
    PaymentHistory,
    PendingOverview,
    ReportKind,
    ReportPeriod,
)
from club_modules.reporting.service import ReportingService

__all__ = [
    "Dashboard",
    "DetailedReport",
    "ExportFormat",
    "FinancialSummary",
    "KPIs",
    "MemberLedger",
    "MonthlySeries",
    "PaymentFilter",
    "PaymentHistory",
    "PendingOverview",
    "ReportKind",
    "ReportPeriod",
    "ReportingConfig",
    "ReportingService",
    "export_filename",
    "render",
]
