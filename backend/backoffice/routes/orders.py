# Overview: Flask API routes for customer orders and the delivery transition.

from flask import Blueprint, request

from ..decorators import handle_service_errors
from ..models import Order
from ..services import orders_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    validate_line_items,
    enforce_non_negative,
    enforce_rules_percentage,
)

ORDER_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id", "order_date", "expected_delivery_date", "status", "payment_method",
        "notes", "discount_percentage", "discount_amount",
    },
    required_on_create={"customer_id", "items"},
    ignored_fields={"items"},
)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _validated_patch(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=partial)
    enforce_non_negative(patch, {"discount_amount"})
    enforce_rules_percentage(patch)
    return patch


@orders_bp.get("")
@handle_service_errors("list orders")
def list_orders():
    return orders_service.serialize_orders(orders_service.list_orders())


@orders_bp.get("/pending")
@handle_service_errors("list pending orders")
def list_pending():
    """Open orders, earliest expected delivery first."""
    return orders_service.serialize_orders(orders_service.list_pending_orders())


@orders_bp.get("/customer/<int:customer_id>")
@handle_service_errors("list customer orders")
def list_by_customer(customer_id: int):
    return orders_service.serialize_orders(orders_service.list_orders_by_customer(customer_id))


@orders_bp.get("/<int:order_id>")
@handle_service_errors("get order")
def get_order(order_id: int):
    return orders_service.serialize_order(orders_service.get_order(order_id))


@orders_bp.post("")
@handle_service_errors("create order")
def create_order_route():
    """Create an order. No stock is reserved until delivery."""
    payload = request.get_json(silent=True) or {}

    patch = _validated_patch(payload, partial=False)
    items = validate_line_items(payload.get("items"), required=True)

    created = orders_service.create_order(patch=patch, items=items)
    return orders_service.serialize_order(created), 201


@orders_bp.put("/<int:order_id>")
@handle_service_errors("update order")
def update_order_route(order_id: int):
    payload = request.get_json(silent=True) or {}

    patch = _validated_patch(payload, partial=True)
    items = validate_line_items(payload.get("items"), required=False)

    updated = orders_service.update_order(order_id=order_id, patch=patch, items=items)
    return orders_service.serialize_order(updated)


@orders_bp.put("/<int:order_id>/status")
@handle_service_errors("update order status")
def update_status_route(order_id: int):
    """
    Body: ``{"status": "delivered", "payment_method": "cash"}``.

    Delivering decrements stock for every item and creates a paid sale; the
    response carries its id as ``generated_sale_id``.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        payload = {"status": payload}

    order, sale = orders_service.change_order_status(
        order_id=order_id,
        status=payload.get("status"),
        payment_method=payload.get("payment_method"),
    )
    body = orders_service.serialize_order(order)
    body["generated_sale_id"] = sale.id if sale is not None else None
    return body


@orders_bp.delete("/<int:order_id>")
@handle_service_errors("delete order")
def delete_order_route(order_id: int):
    orders_service.delete_order(order_id=order_id)
    return {"ok": True}, 200
