"""
Expenses Module Service (``club_modules.expenses.service``).

Responsibility
--------------
Records expenses, marks them paid (spawning the next occurrence of a
recurring expense in the same transaction) and cancels them.  Overdue is
derived from the injected clock on every read.

Failure modes
-------------
* ``ExpenseNotFoundError`` for unknown ids.
* ``ExpenseStateError`` when paying or cancelling a non-pending expense.
* ``ValidationError`` from ``ExpenseDraft`` or a future ``paid_date``.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from club_kernel.domain.clock import Clock
from club_kernel.domain.identity import Actor
from club_kernel.exceptions import ExpenseNotFoundError, ExpenseStateError, ValidationError
from club_kernel.logging_config import get_logger
from club_kernel.services.base import BaseService
from club_modules.expenses.helpers import next_occurrence_date
from club_modules.expenses.models import (
    Expense,
    ExpenseDraft,
    ExpenseFilter,
    ExpenseStatus,
    ExpenseType,
    PaidExpenseResult,
)
from club_modules.expenses.orm import ExpenseModel

logger = get_logger("modules.expenses.service")


class ExpenseService(BaseService):
    """Admin-only expense bookkeeping."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def record_expense(self, draft: ExpenseDraft, actor: Actor) -> Expense:
        actor.require_admin("record_expense")
        now = self.clock.now()
        with self._unit_of_work("record_expense", "expense"):
            model = ExpenseModel(
                title=draft.title,
                description=draft.description or "",
                amount=draft.amount,
                category=draft.category.value,
                expense_type=draft.expense_type.value,
                payment_method=draft.payment_method.value,
                payment_reference=draft.payment_reference,
                vendor=draft.vendor,
                date=draft.date,
                due_date=draft.due_date,
                status=ExpenseStatus.PENDING.value,
                notes=draft.notes,
                created_at=now,
                updated_at=now,
                created_by_id=actor.actor_id,
            )
            if draft.schedule is not None:
                model.recurrence_frequency = draft.schedule.frequency.value
                model.recurrence_interval = draft.schedule.interval
                model.recurrence_end_date = draft.schedule.end_date
            self.session.add(model)
            self.session.flush()
            expense = model.to_dto()

        logger.info(
            "expense_recorded",
            extra={
                "expense_id": str(expense.id),
                "category": expense.category.value,
                "amount": expense.amount,
                "recurring": expense.schedule is not None,
            },
        )
        return expense

    def mark_paid(
        self,
        expense_id: UUID,
        actor: Actor,
        paid_date: datetime | None = None,
        payment_reference: str | None = None,
    ) -> PaidExpenseResult:
        """
        Mark a pending (or overdue) expense paid.

        A recurring expense spawns its next pending occurrence unless that
        would fall after the schedule's end date.
        """
        actor.require_admin("pay_expense")
        now = self.clock.now()
        if paid_date is not None and paid_date.tzinfo is None:
            raise ValidationError("paid_date", "must be timezone-aware")
        if paid_date is not None and paid_date > now:
            raise ValidationError("paid_date", "cannot be in the future")

        with self._unit_of_work("pay_expense", "expense", expense_id):
            model = self._get_for_update(expense_id)
            if model.status != ExpenseStatus.PENDING.value:
                raise ExpenseStateError(expense_id, model.status, "pay")

            model.status = ExpenseStatus.PAID.value
            model.paid_date = paid_date or now
            if payment_reference:
                model.payment_reference = payment_reference
            model.updated_by_id = actor.actor_id

            next_model = None
            if model.expense_type == ExpenseType.RECURRING.value and model.recurrence_frequency:
                next_model = self._spawn_next(model, actor, now)
            self.session.flush()
            result = PaidExpenseResult(
                expense=model.to_dto(),
                next_occurrence=next_model.to_dto() if next_model is not None else None,
            )

        logger.info(
            "expense_paid",
            extra={
                "expense_id": str(expense_id),
                "amount": result.expense.amount,
                "next_occurrence_id": str(result.next_occurrence.id) if result.next_occurrence else None,
            },
        )
        return result

    def cancel_expense(self, expense_id: UUID, actor: Actor) -> Expense:
        actor.require_admin("cancel_expense")
        with self._unit_of_work("cancel_expense", "expense", expense_id):
            model = self._get_for_update(expense_id)
            if model.status != ExpenseStatus.PENDING.value:
                raise ExpenseStateError(expense_id, model.status, "cancel")
            model.status = ExpenseStatus.CANCELLED.value
            model.updated_by_id = actor.actor_id
            self.session.flush()
            expense = model.to_dto()

        logger.info("expense_cancelled", extra={"expense_id": str(expense_id)})
        return expense

    def get_expense(self, expense_id: UUID) -> Expense:
        with self._read("get_expense"):
            model = self.session.get(ExpenseModel, expense_id)
            if model is None:
                raise ExpenseNotFoundError(expense_id)
            return model.to_dto()

    def list_expenses(self, filters: ExpenseFilter | None = None) -> list[Expense]:
        """
        Expenses ordered by date, newest first.  Filtering on OVERDUE
        selects pending expenses whose due date has passed.
        """
        with self._read("list_expenses"):
            filters = filters or ExpenseFilter()
            now = self.clock.now()
            stmt = select(ExpenseModel).order_by(ExpenseModel.date.desc())
            if filters.category is not None:
                stmt = stmt.where(ExpenseModel.category == filters.category.value)
            if filters.start is not None:
                stmt = stmt.where(ExpenseModel.date >= filters.start)
            if filters.end is not None:
                stmt = stmt.where(ExpenseModel.date < filters.end)
            if filters.status is ExpenseStatus.OVERDUE:
                stmt = stmt.where(
                    ExpenseModel.status == ExpenseStatus.PENDING.value,
                    ExpenseModel.due_date.is_not(None),
                    ExpenseModel.due_date < now,
                )
            elif filters.status is not None:
                stmt = stmt.where(ExpenseModel.status == filters.status.value)

            expenses = [m.to_dto() for m in self.session.scalars(stmt)]
            if filters.status is ExpenseStatus.PENDING:
                expenses = [e for e in expenses if e.effective_status(now) is ExpenseStatus.PENDING]
            return expenses

    def overdue_expenses(self) -> list[Expense]:
        return self.list_expenses(ExpenseFilter(status=ExpenseStatus.OVERDUE))

    def _get_for_update(self, expense_id: UUID) -> ExpenseModel:
        model = self.session.scalar(
            select(ExpenseModel).where(ExpenseModel.id == expense_id).with_for_update()
        )
        if model is None:
            raise ExpenseNotFoundError(expense_id)
        return model

    def _spawn_next(self, model: ExpenseModel, actor: Actor, now: datetime) -> ExpenseModel | None:
        expense = model.to_dto()
        nxt = next_occurrence_date(expense.due_date or expense.date, expense.schedule)
        if nxt is None:
            logger.info("expense_recurrence_ended", extra={"expense_id": str(model.id)})
            return None
        next_model = ExpenseModel(
            title=model.title,
            description=model.description,
            amount=model.amount,
            category=model.category,
            expense_type=model.expense_type,
            payment_method=model.payment_method,
            vendor=model.vendor,
            date=nxt,
            due_date=nxt,
            status=ExpenseStatus.PENDING.value,
            recurrence_frequency=model.recurrence_frequency,
            recurrence_interval=model.recurrence_interval,
            recurrence_end_date=model.recurrence_end_date,
            parent_id=model.id,
            created_at=now,
            updated_at=now,
            created_by_id=actor.actor_id,
        )
        self.session.add(next_model)
        return next_model
