# Overview: Flask API routes for customers and jar credits.

from flask import Blueprint, request

from ..decorators import handle_service_errors
from ..models import Customer
from ..services import customers_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_non_negative,
    require_int,
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "city", "state", "birth_date", "jar_credits"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _list_response(customers) -> dict:
    items = [c.to_dict() for c in customers]
    return {"items": items, "count": len(items)}


@customers_bp.get("")
@handle_service_errors("list customers")
def list_customers():
    return _list_response(customers_service.list_customers())


@customers_bp.get("/birthday-month")
@handle_service_errors("list birthday customers")
def list_birthday_month():
    """Query params: month (1-12, optional; defaults to the current month)."""
    month = request.args.get("month", type=int)
    if month is not None and not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    return _list_response(customers_service.list_birthday_customers(month))


@customers_bp.get("/with-jar-credits")
@handle_service_errors("list customers with jar credits")
def list_with_jar_credits():
    return _list_response(customers_service.list_customers_with_jar_credits())


@customers_bp.get("/<int:customer_id>")
@handle_service_errors("get customer")
def get_customer(customer_id: int):
    return customers_service.get_customer(customer_id).to_dict()


@customers_bp.post("")
@handle_service_errors("create customer")
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_non_negative(patch, {"jar_credits"})

    created = customers_service.create_customer(patch=patch)
    return created.to_dict(), 201


@customers_bp.put("/<int:customer_id>")
@handle_service_errors("update customer")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_non_negative(patch, {"jar_credits"})

    updated = customers_service.update_customer(customer_id=customer_id, patch=patch)
    return updated.to_dict()


@customers_bp.post("/<int:customer_id>/jar-credits")
@handle_service_errors("update jar credits")
def update_jar_credits_route(customer_id: int):
    """Body: ``{"credits": 2}`` (or a bare number). Negative redeems."""
    payload = request.get_json(silent=True)
    raw = payload.get("credits") if isinstance(payload, dict) else payload
    credits = require_int("credits", raw)

    customer = customers_service.adjust_jar_credits(customer_id=customer_id, credits=credits)
    return {"id": customer.id, "name": customer.name, "jar_credits": customer.jar_credits}


@customers_bp.delete("/<int:customer_id>")
@handle_service_errors("delete customer")
def delete_customer_route(customer_id: int):
    customers_service.delete_customer(customer_id=customer_id)
    return {"ok": True}, 200
