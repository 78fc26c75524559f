# Overview: Sale aggregate operations; stock-consistent create/update/delete and status transitions.

"""
Sales service

Sale lifecycle:
    pending -> awaiting_payment -> paid
    pending | awaiting_payment -> cancelled
Forward skips (pending -> paid) are allowed. Nothing leaves paid or cancelled.

Stock rules:
- Creating a sale takes every item's quantity off the shelf, all or nothing.
- Editing items moves only the per-product difference.
- Deleting a non-paid sale gives every item's quantity back.
- Cancelling does not give stock back; deleting the cancelled sale does.
- A paid sale is frozen: edit and delete are rejected before any stock math.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import timedelta

from ..extensions import db
from ..enums import SaleStatus, normalize_enum
from ..models import Sale, SaleItem
from ..validation import InvalidTransitionError, NotFoundError, SaleLockedError, ValidationError
from backoffice.time_utils import utcnow
from .line_items import (
    compute_totals,
    price_line_items,
    quantities_by_product,
    recompute_totals,
    require_customer,
)
from .stock_service import apply_item_changes, decrement_stock, restore_stock
from .unit_of_work import unit_of_work


SALE_TRANSITIONS: dict[SaleStatus, set[SaleStatus]] = {
    SaleStatus.PENDING: {SaleStatus.AWAITING_PAYMENT, SaleStatus.PAID, SaleStatus.CANCELLED},
    SaleStatus.AWAITING_PAYMENT: {SaleStatus.PAID, SaleStatus.CANCELLED},
    SaleStatus.PAID: set(),
    SaleStatus.CANCELLED: set(),
}

TERMINAL_SALE_STATUSES = {SaleStatus.PAID, SaleStatus.CANCELLED}

# Header fields a client may set directly; money columns are derived.
SALE_HEADER_FIELDS = {"customer_id", "sale_date", "status", "payment_method", "notes"}


def check_sale_transition(current: SaleStatus, target: SaleStatus) -> bool:
    """
    Validate current -> target. Returns False when the change is a no-op
    (same non-terminal status), True when it is a real transition.
    """
    if current == target and current not in TERMINAL_SALE_STATUSES:
        return False
    if target not in SALE_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot change sale status from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    return True


def _get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def _require_unlocked(sale: Sale) -> None:
    if sale.status == SaleStatus.PAID:
        raise SaleLockedError(
            "Paid sales cannot be modified or deleted",
            details={"sale_id": sale.id, "status": sale.status.value},
        )


def _add_items(session, sale_id: int, rows: list[dict]) -> None:
    for row in rows:
        session.add(SaleItem(sale_id=sale_id, **row))


def list_sale_items(sale_id: int) -> list[SaleItem]:
    return (
        db.session.query(SaleItem)
        .filter(SaleItem.sale_id == sale_id)
        .order_by(SaleItem.id.asc())
        .all()
    )


def serialize_sale(sale: Sale) -> dict:
    return sale.to_dict(items=list_sale_items(sale.id))


def serialize_sales(sales: list[Sale]) -> dict:
    """List payload with each sale's items loaded in one query."""
    items_by_sale: dict[int, list[SaleItem]] = defaultdict(list)
    sale_ids = [s.id for s in sales]
    if sale_ids:
        rows = (
            db.session.query(SaleItem)
            .filter(SaleItem.sale_id.in_(sale_ids))
            .order_by(SaleItem.id.asc())
            .all()
        )
        for item in rows:
            items_by_sale[item.sale_id].append(item)
    items = [s.to_dict(items=items_by_sale[s.id]) for s in sales]
    return {"items": items, "count": len(items)}


def create_sale(*, patch: dict, items: list[dict]) -> Sale:
    """
    Create a sale and take its items off the shelf in one transaction.

    Every product is checked (duplicate lines summed) before the first
    decrement; one shortfall aborts the whole sale.
    """
    if not items:
        raise ValidationError("A sale needs at least one item")

    with unit_of_work() as session:
        customer = require_customer(patch["customer_id"])
        rows, subtotal = price_line_items(items)
        totals = compute_totals(
            subtotal,
            discount_percentage=patch.get("discount_percentage"),
            discount_amount=patch.get("discount_amount"),
        )

        decrement_stock(quantities_by_product(rows))

        sale = Sale(
            customer_id=customer.id,
            customer_name=customer.name,
            sale_date=patch.get("sale_date") or utcnow(),
            status=patch.get("status") or SaleStatus.PENDING,
            payment_method=patch.get("payment_method"),
            notes=patch.get("notes"),
            from_order=False,
            **totals,
        )
        session.add(sale)
        session.flush()
        _add_items(session, sale.id, rows)

    return sale


def update_sale(*, sale_id: int, patch: dict, items: list[dict] | None = None) -> Sale:
    """
    Edit a non-paid sale.

    When ``items`` is given the item set is replaced and stock moves by the
    per-product difference between old and new quantities.
    """
    with unit_of_work(stale_check=(Sale, sale_id)) as session:
        sale = _get_sale(sale_id)
        _require_unlocked(sale)

        if "status" in patch:
            check_sale_transition(sale.status, patch["status"])

        if "customer_id" in patch and patch["customer_id"] != sale.customer_id:
            customer = require_customer(patch["customer_id"])
            sale.customer_name = customer.name

        subtotal = sale.subtotal
        if items is not None:
            if not items:
                raise ValidationError("A sale needs at least one item")
            rows, subtotal = price_line_items(items)
            old_items = list_sale_items(sale.id)

            apply_item_changes(quantities_by_product(old_items), quantities_by_product(rows))

            for old in old_items:
                session.delete(old)
            _add_items(session, sale.id, rows)
            sale.updated_at = utcnow()

        for key in SALE_HEADER_FIELDS & patch.keys():
            setattr(sale, key, patch[key])

        for key, value in recompute_totals(sale, patch, subtotal).items():
            setattr(sale, key, value)

    return sale


def change_sale_status(*, sale_id: int, status) -> Sale:
    """Move a sale along its lifecycle. Unknown tokens fail before any write."""
    target = normalize_enum(SaleStatus, status)

    with unit_of_work(stale_check=(Sale, sale_id)):
        sale = _get_sale(sale_id)
        if check_sale_transition(sale.status, target):
            sale.status = target

    return sale


def delete_sale(*, sale_id: int) -> None:
    """Remove a non-paid sale and put its quantities back on the shelf."""
    with unit_of_work(stale_check=(Sale, sale_id)) as session:
        sale = _get_sale(sale_id)
        _require_unlocked(sale)

        old_items = list_sale_items(sale.id)
        restore_stock(quantities_by_product(old_items))

        for item in old_items:
            session.delete(item)
        session.flush()
        session.delete(sale)


def get_sale(sale_id: int) -> Sale:
    return _get_sale(sale_id)


def list_sales() -> list[Sale]:
    return (
        db.session.query(Sale)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )


def list_sales_by_customer(customer_id: int) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )


def list_today_sales() -> list[Sale]:
    """Sales dated today (UTC day boundaries)."""
    start = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return (
        db.session.query(Sale)
        .filter(Sale.sale_date >= start, Sale.sale_date < end)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )


def list_pending_sales() -> list[Sale]:
    """Sales still waiting on payment, oldest first."""
    return (
        db.session.query(Sale)
        .filter(Sale.status.in_([SaleStatus.PENDING, SaleStatus.AWAITING_PAYMENT]))
        .order_by(Sale.sale_date.asc(), Sale.id.asc())
        .all()
    )
