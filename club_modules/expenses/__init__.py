"""Expenses: recording, payment, recurrence and overdue derivation."""

from club_modules.expenses.models import (
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    ExpenseFilter,
    ExpensePaymentMethod,
    ExpenseStatus,
    ExpenseType,
    PaidExpenseResult,
    RecurrenceFrequency,
    RecurringSchedule,
)
from club_modules.expenses.service import ExpenseService

__all__ = [
    "Expense",
    "ExpenseCategory",
    "ExpenseDraft",
    "ExpenseFilter",
    "ExpensePaymentMethod",
    "ExpenseService",
    "ExpenseStatus",
    "ExpenseType",
    "PaidExpenseResult",
    "RecurrenceFrequency",
    "RecurringSchedule",
]
