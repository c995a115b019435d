"""
SQLAlchemy ORM persistence model for expenses.

Invariants enforced
-------------------
* ``status`` stores only pending / paid / cancelled (``ck_expense_status``);
  overdue is derived at read time.
* ``amount`` is a positive whole amount (``ck_expense_amount``).
* Recurring expenses keep their schedule inline; the next occurrence links
  back through ``parent_id``.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from club_kernel.db.base import TrackedBase


class ExpenseModel(TrackedBase):
    """Maps to the ``Expense`` DTO in ``club_modules.expenses.models``."""

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount"),
        CheckConstraint(
            "status IN ('pending', 'paid', 'cancelled')", name="ck_expense_status"
        ),
        Index("idx_expense_status_date", "status", "date"),
        Index("idx_expense_category_date", "category", "date"),
        Index("idx_expense_due_status", "due_date", "status"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[int] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    expense_type: Mapped[str] = mapped_column(String(20), nullable=False, default="one_time")
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    payment_reference: Mapped[str | None] = mapped_column(String(100))
    vendor: Mapped[str | None] = mapped_column(String(200))
    date: Mapped[datetime] = mapped_column(nullable=False)
    due_date: Mapped[datetime | None]
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    paid_date: Mapped[datetime | None]
    recurrence_frequency: Mapped[str | None] = mapped_column(String(20))
    recurrence_interval: Mapped[int | None] = mapped_column(Integer)
    recurrence_end_date: Mapped[datetime | None]
    parent_id: Mapped[UUID | None]
    notes: Mapped[str | None] = mapped_column(Text)

    def to_dto(self):
        from club_modules.expenses.models import (
            Expense,
            ExpenseCategory,
            ExpensePaymentMethod,
            ExpenseStatus,
            ExpenseType,
            RecurrenceFrequency,
            RecurringSchedule,
        )

        schedule = None
        if self.recurrence_frequency:
            schedule = RecurringSchedule(
                frequency=RecurrenceFrequency(self.recurrence_frequency),
                interval=self.recurrence_interval or 1,
                end_date=self.recurrence_end_date,
            )
        return Expense(
            id=self.id,
            title=self.title,
            description=self.description,
            amount=self.amount,
            category=ExpenseCategory(self.category),
            expense_type=ExpenseType(self.expense_type),
            payment_method=ExpensePaymentMethod(self.payment_method),
            payment_reference=self.payment_reference,
            vendor=self.vendor,
            date=self.date,
            due_date=self.due_date,
            status=ExpenseStatus(self.status),
            paid_date=self.paid_date,
            schedule=schedule,
            parent_id=self.parent_id,
            notes=self.notes,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<ExpenseModel {self.title!r} [{self.status}] {self.amount}>"
