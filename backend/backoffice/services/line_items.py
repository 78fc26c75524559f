# Overview: Shared line-item and totals arithmetic for sales and orders.

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from ..extensions import db
from ..models import Customer, Product
from ..money import ZERO, percentage_of, q_money
from ..validation import NotFoundError, ValidationError


def require_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def price_line_items(items: list[dict]) -> tuple[list[dict], Decimal]:
    """
    Resolve each validated item against its product.

    Snapshots product_name, defaults unit_price to the product's current
    price and derives total_price. Returns (rows, subtotal).
    Raises NotFoundError for an unknown product before anything is written.
    """
    rows: list[dict] = []
    subtotal = ZERO
    for item in items:
        product = db.session.get(Product, item["product_id"])
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": item["product_id"]})

        unit_price = q_money(item.get("unit_price", product.price))
        total_price = q_money(unit_price * item["quantity"])
        rows.append({
            "product_id": product.id,
            "product_name": product.name,
            "quantity": item["quantity"],
            "unit_price": unit_price,
            "total_price": total_price,
        })
        subtotal += total_price
    return rows, q_money(subtotal)


def quantities_by_product(items) -> dict[int, int]:
    """{product_id: total quantity}; duplicate lines for one product are summed."""
    totals: dict[int, int] = defaultdict(int)
    for item in items:
        if isinstance(item, dict):
            totals[item["product_id"]] += item["quantity"]
        else:
            totals[item.product_id] += item.quantity
    return dict(totals)


def compute_totals(
    subtotal: Decimal,
    *,
    discount_percentage: Decimal | None = None,
    discount_amount: Decimal | None = None,
) -> dict:
    """
    Derive the money columns of a sale/order from its subtotal.

    An explicit discount_amount wins; otherwise it is taken from
    discount_percentage. The discount may not exceed the subtotal.
    """
    subtotal = q_money(subtotal)
    pct = discount_percentage if discount_percentage is not None else ZERO
    if discount_amount is None:
        discount_amount = percentage_of(subtotal, pct)
    discount_amount = q_money(discount_amount)
    if discount_amount > subtotal:
        raise ValidationError(
            "discount_amount cannot exceed subtotal",
            details={"subtotal": str(subtotal), "discount_amount": str(discount_amount)},
        )
    return {
        "subtotal": subtotal,
        "discount_percentage": q_money(pct),
        "discount_amount": discount_amount,
        "total_amount": subtotal - discount_amount,
    }


def recompute_totals(entity, patch: dict, subtotal: Decimal) -> dict:
    """
    Totals for an edited sale/order. Discount fields missing from ``patch``
    keep their stored values; a stored percentage is re-applied to the new
    subtotal, a stored flat amount is kept as is.
    """
    pct = patch.get("discount_percentage", entity.discount_percentage)
    if patch.get("discount_amount") is not None:
        amount = patch["discount_amount"]
    elif "discount_percentage" in patch or (pct or ZERO) > 0:
        amount = None
    else:
        amount = entity.discount_amount
    return compute_totals(subtotal, discount_percentage=pct, discount_amount=amount)
