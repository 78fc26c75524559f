from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Expense
from ..validation import NotFoundError, ValidationError
from backoffice.time_utils import utcnow
from .unit_of_work import unit_of_work

EXPENSE_MUTABLE_FIELDS = {"description", "category", "amount", "date", "is_recurring", "notes"}


def _get_expense(expense_id: int) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense not found", details={"expense_id": expense_id})
    return expense


def _newest_first(query):
    return query.order_by(Expense.date.desc(), Expense.id.desc())


def list_expenses() -> list[Expense]:
    return _newest_first(db.session.query(Expense)).all()


def get_expense(expense_id: int) -> Expense:
    return _get_expense(expense_id)


def list_expenses_by_category(category) -> list[Expense]:
    return _newest_first(db.session.query(Expense).filter(Expense.category == category)).all()


def list_expenses_between(start: datetime, end: datetime) -> list[Expense]:
    """Inclusive on both ends."""
    if start > end:
        raise ValidationError("start_date must be before end_date")
    return _newest_first(
        db.session.query(Expense).filter(Expense.date >= start, Expense.date <= end)
    ).all()


def list_recurring_expenses() -> list[Expense]:
    return _newest_first(db.session.query(Expense).filter(Expense.is_recurring.is_(True))).all()


def create_expense(*, patch: dict) -> Expense:
    with unit_of_work() as session:
        expense = Expense(is_recurring=False)
        for key, value in patch.items():
            if key in EXPENSE_MUTABLE_FIELDS:
                setattr(expense, key, value)
        if expense.date is None:
            expense.date = utcnow()
        session.add(expense)
    return expense


def update_expense(*, expense_id: int, patch: dict) -> Expense:
    with unit_of_work(stale_check=(Expense, expense_id)):
        expense = _get_expense(expense_id)
        for key, value in patch.items():
            if key in EXPENSE_MUTABLE_FIELDS:
                setattr(expense, key, value)
    return expense


def delete_expense(*, expense_id: int) -> None:
    with unit_of_work(stale_check=(Expense, expense_id)) as session:
        session.delete(_get_expense(expense_id))
