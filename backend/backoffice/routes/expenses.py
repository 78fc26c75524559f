# Overview: Flask API routes for expenses.

from flask import Blueprint, request

from ..decorators import handle_service_errors
from ..enums import ExpenseCategory, normalize_enum
from ..models import Expense
from ..services import expenses_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload, enforce_non_negative
from backoffice.time_utils import parse_iso_datetime

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"description", "category", "amount", "date", "is_recurring", "notes"},
    required_on_create={"description", "category", "amount"},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


def _list_response(expenses) -> dict:
    items = [e.to_dict() for e in expenses]
    return {"items": items, "count": len(items)}


def _query_datetime(name: str):
    raw = request.args.get(name)
    try:
        value = parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime")
    if value is None:
        raise ValidationError(f"{name} is required")
    return value


@expenses_bp.get("")
@handle_service_errors("list expenses")
def list_expenses():
    return _list_response(expenses_service.list_expenses())


@expenses_bp.get("/category/<string:category>")
@handle_service_errors("list expenses by category")
def list_by_category(category: str):
    return _list_response(expenses_service.list_expenses_by_category(normalize_enum(ExpenseCategory, category)))


@expenses_bp.get("/date-range")
@handle_service_errors("list expenses by date range")
def list_by_date_range():
    """
    Query params: start_date, end_date (ISO-8601, inclusive).
    A bare end date ("2024-12-31") covers the whole day.
    """
    start = _query_datetime("start_date")
    end = _query_datetime("end_date")
    if len(request.args.get("end_date", "").strip()) == 10:
        end = end.replace(hour=23, minute=59, second=59, microsecond=999999)
    return _list_response(expenses_service.list_expenses_between(start, end))


@expenses_bp.get("/recurring")
@handle_service_errors("list recurring expenses")
def list_recurring():
    return _list_response(expenses_service.list_recurring_expenses())


@expenses_bp.get("/<int:expense_id>")
@handle_service_errors("get expense")
def get_expense(expense_id: int):
    return expenses_service.get_expense(expense_id).to_dict()


@expenses_bp.post("")
@handle_service_errors("create expense")
def create_expense_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_non_negative(patch, {"amount"})

    created = expenses_service.create_expense(patch=patch)
    return created.to_dict(), 201


@expenses_bp.put("/<int:expense_id>")
@handle_service_errors("update expense")
def update_expense_route(expense_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
    enforce_non_negative(patch, {"amount"})

    updated = expenses_service.update_expense(expense_id=expense_id, patch=patch)
    return updated.to_dict()


@expenses_bp.delete("/<int:expense_id>")
@handle_service_errors("delete expense")
def delete_expense_route(expense_id: int):
    expenses_service.delete_expense(expense_id=expense_id)
    return {"ok": True}, 200
