# Overview: Order aggregate operations; delivery turns an order into a paid sale and takes stock.

"""
Orders service

Order lifecycle:
    pending -> in_production -> ready_for_delivery -> delivered
    any non-terminal status -> cancelled
Forward skips are allowed. delivered and cancelled are terminal.

No stock moves while an order is open: creating, editing or deleting an
order never checks or touches product quantities. The transition to
delivered does, inside the same transaction as the status change:

1. stamp delivered_date (if unset)
2. check and decrement stock for every order item
3. create a paid Sale (from_order=True) mirroring the order

If any item is short, the status change is rolled back with everything else.
"""

from __future__ import annotations

from collections import defaultdict

from flask import current_app

from ..extensions import db
from ..enums import OrderStatus, PaymentMethod, SaleStatus, normalize_enum
from ..models import Order, OrderItem, Sale, SaleItem
from ..validation import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from backoffice.time_utils import utcnow
from .line_items import (
    compute_totals,
    price_line_items,
    quantities_by_product,
    recompute_totals,
    require_customer,
)
from .stock_service import decrement_stock
from .unit_of_work import unit_of_work


ORDER_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.IN_PRODUCTION,
    OrderStatus.READY_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

TERMINAL_ORDER_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

ORDER_HEADER_FIELDS = {
    "customer_id", "order_date", "expected_delivery_date", "status", "payment_method", "notes",
}


def check_order_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """
    Validate current -> target. Returns False for a no-op (same non-terminal
    status), True for a real transition.
    """
    if current in TERMINAL_ORDER_STATUSES:
        raise InvalidTransitionError(
            f"Order is already {current.value}",
            details={"from": current.value, "to": target.value},
        )
    if current == target:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    if ORDER_FLOW.index(target) < ORDER_FLOW.index(current):
        raise InvalidTransitionError(
            f"Cannot move order back from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    return True


def _get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def _add_items(session, order_id: int, rows: list[dict]) -> None:
    for row in rows:
        session.add(OrderItem(order_id=order_id, **row))


def list_order_items(order_id: int) -> list[OrderItem]:
    return (
        db.session.query(OrderItem)
        .filter(OrderItem.order_id == order_id)
        .order_by(OrderItem.id.asc())
        .all()
    )


def serialize_order(order: Order) -> dict:
    return order.to_dict(items=list_order_items(order.id))


def serialize_orders(orders: list[Order]) -> dict:
    items_by_order: dict[int, list[OrderItem]] = defaultdict(list)
    order_ids = [o.id for o in orders]
    if order_ids:
        rows = (
            db.session.query(OrderItem)
            .filter(OrderItem.order_id.in_(order_ids))
            .order_by(OrderItem.id.asc())
            .all()
        )
        for item in rows:
            items_by_order[item.order_id].append(item)
    items = [o.to_dict(items=items_by_order[o.id]) for o in orders]
    return {"items": items, "count": len(items)}


def _default_payment_method() -> PaymentMethod:
    return normalize_enum(PaymentMethod, current_app.config.get("DEFAULT_PAYMENT_METHOD", "pix"))


def _deliver(session, order: Order) -> Sale:
    """Delivery side effects. Runs inside the caller's unit of work."""
    if order.delivered_date is None:
        order.delivered_date = utcnow()

    order_items = list_order_items(order.id)
    decrement_stock(quantities_by_product(order_items))

    sale = Sale(
        customer_id=order.customer_id,
        customer_name=order.customer_name,
        subtotal=order.subtotal,
        discount_percentage=order.discount_percentage,
        discount_amount=order.discount_amount,
        total_amount=order.total_amount,
        sale_date=utcnow(),
        status=SaleStatus.PAID,
        payment_method=order.payment_method or _default_payment_method(),
        notes=f"Automatic sale from order #{order.id}",
        from_order=True,
    )
    session.add(sale)
    session.flush()

    for item in order_items:
        session.add(SaleItem(
            sale_id=sale.id,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
        ))

    current_app.logger.info("Order %s delivered; generated sale %s", order.id, sale.id)
    return sale


def create_order(*, patch: dict, items: list[dict]) -> Order:
    """Create an order. Products must exist; stock is not checked."""
    if not items:
        raise ValidationError("An order needs at least one item")

    with unit_of_work() as session:
        customer = require_customer(patch["customer_id"])
        rows, subtotal = price_line_items(items)
        totals = compute_totals(
            subtotal,
            discount_percentage=patch.get("discount_percentage"),
            discount_amount=patch.get("discount_amount"),
        )

        status = patch.get("status") or OrderStatus.PENDING
        order = Order(
            customer_id=customer.id,
            customer_name=customer.name,
            order_date=patch.get("order_date") or utcnow(),
            expected_delivery_date=patch.get("expected_delivery_date"),
            status=status,
            payment_method=patch.get("payment_method"),
            notes=patch.get("notes"),
            **totals,
        )
        session.add(order)
        session.flush()
        _add_items(session, order.id, rows)

        if status == OrderStatus.DELIVERED:
            _deliver(session, order)

    return order


def update_order(*, order_id: int, patch: dict, items: list[dict] | None = None) -> Order:
    """
    Edit an open order. Delivered or cancelled orders are rejected.

    Moving the order to delivered through this call runs the delivery step.
    """
    with unit_of_work(stale_check=(Order, order_id)) as session:
        order = _get_order(order_id)
        if order.status in TERMINAL_ORDER_STATUSES:
            raise ConflictError(
                f"A {order.status.value} order cannot be modified",
                details={"order_id": order.id, "status": order.status.value},
            )

        delivering = False
        if "status" in patch:
            moved = check_order_transition(order.status, patch["status"])
            delivering = moved and patch["status"] == OrderStatus.DELIVERED

        if "customer_id" in patch and patch["customer_id"] != order.customer_id:
            customer = require_customer(patch["customer_id"])
            order.customer_name = customer.name

        subtotal = order.subtotal
        if items is not None:
            if not items:
                raise ValidationError("An order needs at least one item")
            rows, subtotal = price_line_items(items)
            for old in list_order_items(order.id):
                session.delete(old)
            _add_items(session, order.id, rows)
            order.updated_at = utcnow()

        for key in ORDER_HEADER_FIELDS & patch.keys():
            setattr(order, key, patch[key])

        for key, value in recompute_totals(order, patch, subtotal).items():
            setattr(order, key, value)

        if delivering:
            _deliver(session, order)

    return order


def change_order_status(*, order_id: int, status, payment_method=None) -> tuple[Order, Sale | None]:
    """
    Move an order along its lifecycle.

    Returns (order, generated_sale); generated_sale is set only when this call
    delivered the order. Both tokens are normalized before anything is read
    or written.
    """
    target = normalize_enum(OrderStatus, status)
    method = normalize_enum(PaymentMethod, payment_method) if payment_method else None

    sale = None
    with unit_of_work(stale_check=(Order, order_id)) as session:
        order = _get_order(order_id)
        if check_order_transition(order.status, target):
            order.status = target
            if target == OrderStatus.DELIVERED:
                if method is not None:
                    order.payment_method = method
                sale = _deliver(session, order)

    return order, sale


def delete_order(*, order_id: int) -> None:
    """Remove an order and its items. Stock is left alone."""
    with unit_of_work(stale_check=(Order, order_id)) as session:
        order = _get_order(order_id)
        for item in list_order_items(order.id):
            session.delete(item)
        session.flush()
        session.delete(order)


def get_order(order_id: int) -> Order:
    return _get_order(order_id)


def list_orders() -> list[Order]:
    return (
        db.session.query(Order)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )


def list_orders_by_customer(customer_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.customer_id == customer_id)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )


def list_pending_orders() -> list[Order]:
    """Open orders, earliest expected delivery first (undated last)."""
    return (
        db.session.query(Order)
        .filter(Order.status.notin_([OrderStatus.DELIVERED, OrderStatus.CANCELLED]))
        .order_by(
            Order.expected_delivery_date.is_(None),
            Order.expected_delivery_date.asc(),
            Order.order_date.asc(),
        )
        .all()
    )
