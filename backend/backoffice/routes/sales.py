# Overview: Flask API routes for sales; stock-consistent create/update/delete and status changes.

from flask import Blueprint, request

from ..decorators import handle_service_errors
from ..models import Sale
from ..services import sales_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    validate_line_items,
    enforce_non_negative,
    enforce_rules_percentage,
)

SALE_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id", "sale_date", "status", "payment_method", "notes",
        "discount_percentage", "discount_amount",
    },
    required_on_create={"customer_id", "items"},
    ignored_fields={"items"},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _validated_patch(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=partial)
    enforce_non_negative(patch, {"discount_amount"})
    enforce_rules_percentage(patch)
    return patch


@sales_bp.get("")
@handle_service_errors("list sales")
def list_sales():
    return sales_service.serialize_sales(sales_service.list_sales())


@sales_bp.get("/today")
@handle_service_errors("list today's sales")
def list_today():
    return sales_service.serialize_sales(sales_service.list_today_sales())


@sales_bp.get("/pending")
@handle_service_errors("list pending sales")
def list_pending():
    return sales_service.serialize_sales(sales_service.list_pending_sales())


@sales_bp.get("/customer/<int:customer_id>")
@handle_service_errors("list customer sales")
def list_by_customer(customer_id: int):
    return sales_service.serialize_sales(sales_service.list_sales_by_customer(customer_id))


@sales_bp.get("/<int:sale_id>")
@handle_service_errors("get sale")
def get_sale(sale_id: int):
    return sales_service.serialize_sale(sales_service.get_sale(sale_id))


@sales_bp.post("")
@handle_service_errors("create sale")
def create_sale_route():
    """
    Create a sale and decrement stock.

    Body: customer_id, items [{product_id, quantity, unit_price?}], optional
    status, payment_method, sale_date, notes, discount_percentage or
    discount_amount. Money totals are derived from the items.
    """
    payload = request.get_json(silent=True) or {}

    patch = _validated_patch(payload, partial=False)
    items = validate_line_items(payload.get("items"), required=True)

    created = sales_service.create_sale(patch=patch, items=items)
    return sales_service.serialize_sale(created), 201


@sales_bp.put("/<int:sale_id>")
@handle_service_errors("update sale")
def update_sale_route(sale_id: int):
    """
    Edit a non-paid sale. When ``items`` is sent the item set is replaced and
    stock moves by the per-product difference.
    """
    payload = request.get_json(silent=True) or {}

    patch = _validated_patch(payload, partial=True)
    items = validate_line_items(payload.get("items"), required=False)

    updated = sales_service.update_sale(sale_id=sale_id, patch=patch, items=items)
    return sales_service.serialize_sale(updated)


@sales_bp.patch("/<int:sale_id>/status")
@handle_service_errors("update sale status")
def update_status_route(sale_id: int):
    """Body: ``{"status": "awaiting_payment"}`` (or a bare string)."""
    payload = request.get_json(silent=True)
    status = payload.get("status") if isinstance(payload, dict) else payload

    sale = sales_service.change_sale_status(sale_id=sale_id, status=status)
    return sales_service.serialize_sale(sale)


@sales_bp.delete("/<int:sale_id>")
@handle_service_errors("delete sale")
def delete_sale_route(sale_id: int):
    sales_service.delete_sale(sale_id=sale_id)
    return {"ok": True}, 200
