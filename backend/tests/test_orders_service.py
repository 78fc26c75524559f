from datetime import datetime
from decimal import Decimal

import pytest

from backoffice.enums import OrderStatus, PaymentMethod, SaleStatus
from backoffice.models import Order, OrderItem, Sale, SaleItem
from backoffice.services import orders_service, sales_service
from backoffice.validation import (
    ConflictError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
)


def _order(customer, *items, **patch):
    patch.setdefault("customer_id", customer.id)
    return orders_service.create_order(
        patch=patch,
        items=[{"product_id": pid, "quantity": qty} for pid, qty in items],
    )


class TestCreateOrder:
    def test_does_not_touch_stock(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=1)

        order = _order(customer, (product.id, 10))

        assert order.status == OrderStatus.PENDING
        assert order.subtotal == Decimal("250.00")
        assert stock_of(product.id) == 1
        assert db_session.query(Sale).count() == 0

    def test_unknown_product(self, db_session, customer):
        with pytest.raises(NotFoundError):
            _order(customer, (4242, 1))
        assert db_session.query(Order).count() == 0

    def test_created_as_delivered_runs_delivery(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=10)

        order = _order(customer, (product.id, 3), status=OrderStatus.DELIVERED)

        assert order.delivered_date is not None
        assert stock_of(product.id) == 7
        assert db_session.query(Sale).filter_by(from_order=True).count() == 1


class TestDelivery:
    def test_generates_one_paid_sale_mirroring_the_order(self, db_session, customer, make_product, stock_of):
        candle = make_product(name="Candle", quantity=10)
        soap = make_product(name="Soap", price="8.00", quantity=10)
        order = _order(customer, (candle.id, 2), (soap.id, 3), payment_method=PaymentMethod.CREDIT)

        order, sale = orders_service.change_order_status(order_id=order.id, status="delivered")

        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_date is not None
        assert stock_of(candle.id) == 8
        assert stock_of(soap.id) == 7

        sales = db_session.query(Sale).all()
        assert [s.id for s in sales] == [sale.id]
        assert sale.status == SaleStatus.PAID
        assert sale.from_order is True
        assert sale.payment_method == PaymentMethod.CREDIT
        assert sale.total_amount == order.total_amount
        assert sale.notes == f"Automatic sale from order #{order.id}"

        mirrored = sorted((i.product_id, i.quantity, i.unit_price) for i in sales_service.list_sale_items(sale.id))
        original = sorted((i.product_id, i.quantity, i.unit_price) for i in orders_service.list_order_items(order.id))
        assert mirrored == original

    def test_payment_method_defaults_from_config(self, app, db_session, customer, make_product):
        product = make_product(quantity=10)
        order = _order(customer, (product.id, 1))

        _, sale = orders_service.change_order_status(order_id=order.id, status="delivered")

        assert sale.payment_method == PaymentMethod(app.config["DEFAULT_PAYMENT_METHOD"])

    def test_payment_method_given_with_status(self, db_session, customer, make_product):
        product = make_product(quantity=10)
        order = _order(customer, (product.id, 1))

        order, sale = orders_service.change_order_status(
            order_id=order.id, status="delivered", payment_method="Cash",
        )

        assert order.payment_method == PaymentMethod.CASH
        assert sale.payment_method == PaymentMethod.CASH

    def test_shortfall_rolls_back_the_status_change(self, db_session, customer, make_product, stock_of):
        plenty = make_product(name="Plenty", quantity=10)
        scarce = make_product(name="Scarce", quantity=1)
        order = _order(customer, (plenty.id, 2), (scarce.id, 2), status=OrderStatus.READY_FOR_DELIVERY)

        with pytest.raises(InsufficientStockError):
            orders_service.change_order_status(order_id=order.id, status="delivered")

        reloaded = db_session.get(Order, order.id)
        assert reloaded.status == OrderStatus.READY_FOR_DELIVERY
        assert reloaded.delivered_date is None
        assert stock_of(plenty.id) == 10
        assert stock_of(scarce.id) == 1
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0

    def test_update_to_delivered_runs_delivery(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=10)
        order = _order(customer, (product.id, 2))

        orders_service.update_order(order_id=order.id, patch={"status": OrderStatus.DELIVERED})

        assert stock_of(product.id) == 8
        assert db_session.query(Sale).filter_by(from_order=True).count() == 1


class TestOrderStatus:
    def test_forward_skip(self, db_session, customer, make_product):
        order = _order(customer, (make_product().id, 1))
        order, sale = orders_service.change_order_status(order_id=order.id, status="ready_for_delivery")
        assert order.status == OrderStatus.READY_FOR_DELIVERY
        assert sale is None

    def test_backwards_is_rejected(self, db_session, customer, make_product):
        order = _order(customer, (make_product().id, 1), status=OrderStatus.IN_PRODUCTION)
        with pytest.raises(InvalidTransitionError):
            orders_service.change_order_status(order_id=order.id, status="pending")

    def test_cancel_from_open_status(self, db_session, customer, make_product):
        order = _order(customer, (make_product().id, 1), status=OrderStatus.IN_PRODUCTION)
        order, _ = orders_service.change_order_status(order_id=order.id, status="Cancelled")
        assert order.status == OrderStatus.CANCELLED

    @pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_terminal_orders_do_not_move(self, db_session, customer, make_product, terminal):
        order = _order(customer, (make_product(quantity=50).id, 1), status=terminal)
        with pytest.raises(InvalidTransitionError):
            orders_service.change_order_status(order_id=order.id, status="pending")

    def test_second_delivery_is_rejected(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=10)
        order = _order(customer, (product.id, 2))
        orders_service.change_order_status(order_id=order.id, status="delivered")

        with pytest.raises(InvalidTransitionError):
            orders_service.change_order_status(order_id=order.id, status="delivered")

        assert stock_of(product.id) == 8
        assert db_session.query(Sale).count() == 1


class TestUpdateAndDelete:
    def test_replacing_items_recomputes_totals(self, db_session, customer, make_product):
        a = make_product(name="A", price="10.00")
        b = make_product(name="B", price="4.00")
        order = _order(customer, (a.id, 1), discount_percentage=Decimal("50"))

        order = orders_service.update_order(
            order_id=order.id, patch={}, items=[{"product_id": b.id, "quantity": 5}],
        )

        assert order.subtotal == Decimal("20.00")
        assert order.discount_amount == Decimal("10.00")
        assert order.total_amount == Decimal("10.00")
        assert [i.product_id for i in orders_service.list_order_items(order.id)] == [b.id]

    def test_terminal_order_cannot_be_edited(self, db_session, customer, make_product):
        order = _order(customer, (make_product().id, 1), status=OrderStatus.CANCELLED)
        with pytest.raises(ConflictError):
            orders_service.update_order(order_id=order.id, patch={"notes": "late"})

    def test_delete_leaves_stock_alone(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=10)
        order = _order(customer, (product.id, 2))
        orders_service.change_order_status(order_id=order.id, status="delivered")

        orders_service.delete_order(order_id=order.id)

        assert stock_of(product.id) == 8
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        # the generated sale is a record of its own
        assert db_session.query(Sale).count() == 1


def test_pending_orders_sorted_by_expected_delivery(db_session, customer, make_product):
    product = make_product()
    undated = _order(customer, (product.id, 1))
    later = _order(customer, (product.id, 1), expected_delivery_date=datetime(2030, 3, 1))
    sooner = _order(customer, (product.id, 1), expected_delivery_date=datetime(2030, 1, 1))
    _order(customer, (product.id, 1), status=OrderStatus.CANCELLED)

    ids = [o.id for o in orders_service.list_pending_orders()]

    assert ids == [sooner.id, later.id, undated.id]
