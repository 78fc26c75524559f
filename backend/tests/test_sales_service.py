from decimal import Decimal

import pytest

from backoffice.enums import PaymentMethod, SaleStatus
from backoffice.models import Sale, SaleItem
from backoffice.services import sales_service
from backoffice.validation import (
    InsufficientStockError,
    InvalidStatusError,
    InvalidTransitionError,
    NotFoundError,
    SaleLockedError,
)


def _sale(customer, *items, **patch):
    patch.setdefault("customer_id", customer.id)
    return sales_service.create_sale(
        patch=patch,
        items=[{"product_id": pid, "quantity": qty} for pid, qty in items],
    )


def _items(sale_id):
    return sales_service.list_sale_items(sale_id)


class TestCreateSale:
    def test_decrements_each_product(self, db_session, customer, make_product, stock_of):
        candle = make_product(name="Candle", quantity=20)
        soap = make_product(name="Soap", quantity=5, price="8.50")

        sale = _sale(customer, (candle.id, 3), (soap.id, 2))

        assert stock_of(candle.id) == 17
        assert stock_of(soap.id) == 3
        assert sale.status == SaleStatus.PENDING
        assert sale.from_order is False
        assert len(_items(sale.id)) == 2

    def test_totals_are_derived_from_items(self, db_session, customer, make_product):
        candle = make_product(price="25.00", quantity=20)

        sale = _sale(customer, (candle.id, 3), discount_percentage=Decimal("10"))

        assert sale.subtotal == Decimal("75.00")
        assert sale.discount_amount == Decimal("7.50")
        assert sale.total_amount == Decimal("67.50")
        item = _items(sale.id)[0]
        assert item.unit_price == Decimal("25.00")
        assert item.total_price == Decimal("75.00")
        assert item.product_name == candle.name
        assert sale.customer_name == customer.name

    def test_explicit_unit_price_wins(self, db_session, customer, make_product):
        candle = make_product(price="25.00")

        sale = sales_service.create_sale(
            patch={"customer_id": customer.id},
            items=[{"product_id": candle.id, "quantity": 2, "unit_price": Decimal("20.00")}],
        )

        assert sale.subtotal == Decimal("40.00")

    def test_insufficient_stock_changes_nothing(self, db_session, customer, make_product, stock_of):
        plenty = make_product(name="Plenty", quantity=50)
        scarce = make_product(name="Scarce", quantity=2)

        with pytest.raises(InsufficientStockError) as exc:
            _sale(customer, (plenty.id, 10), (scarce.id, 3))

        assert exc.value.details == {
            "product_id": scarce.id,
            "requested_quantity": 3,
            "available_quantity": 2,
        }
        assert stock_of(plenty.id) == 50
        assert stock_of(scarce.id) == 2
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0

    def test_duplicate_lines_are_checked_together(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=5)

        with pytest.raises(InsufficientStockError):
            _sale(customer, (product.id, 3), (product.id, 3))

        assert stock_of(product.id) == 5

    def test_unknown_customer(self, db_session, make_product):
        product = make_product()
        with pytest.raises(NotFoundError):
            sales_service.create_sale(patch={"customer_id": 404}, items=[{"product_id": product.id, "quantity": 1}])

    def test_unknown_product(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=5)
        with pytest.raises(NotFoundError):
            _sale(customer, (product.id, 1), (9999, 1))
        assert stock_of(product.id) == 5


class TestUpdateSale:
    def test_quantity_up_takes_only_the_difference(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=20)
        sale = _sale(customer, (product.id, 5))
        assert stock_of(product.id) == 15

        sales_service.update_sale(sale_id=sale.id, patch={}, items=[{"product_id": product.id, "quantity": 8}])

        assert stock_of(product.id) == 12

    def test_quantity_down_gives_back_the_difference(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=20)
        sale = _sale(customer, (product.id, 5))

        sales_service.update_sale(sale_id=sale.id, patch={}, items=[{"product_id": product.id, "quantity": 2}])

        assert stock_of(product.id) == 18

    def test_removed_and_added_products(self, db_session, customer, make_product, stock_of):
        old = make_product(name="Old", quantity=10)
        new = make_product(name="New", quantity=10)
        sale = _sale(customer, (old.id, 4))

        updated = sales_service.update_sale(
            sale_id=sale.id, patch={}, items=[{"product_id": new.id, "quantity": 6}],
        )

        assert stock_of(old.id) == 10
        assert stock_of(new.id) == 4
        assert [i.product_id for i in _items(updated.id)] == [new.id]
        assert updated.subtotal == Decimal("150.00")

    def test_failed_check_rolls_back_everything(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=6)
        sale = _sale(customer, (product.id, 5))

        with pytest.raises(InsufficientStockError):
            sales_service.update_sale(
                sale_id=sale.id,
                patch={"notes": "bigger order"},
                items=[{"product_id": product.id, "quantity": 7}],
            )

        assert stock_of(product.id) == 1
        reloaded = db_session.get(Sale, sale.id)
        assert reloaded.notes is None
        assert [i.quantity for i in _items(sale.id)] == [5]

    def test_paid_sale_is_locked(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=20)
        sale = _sale(customer, (product.id, 5), status=SaleStatus.PAID)
        before = db_session.get(Sale, sale.id).to_dict()

        with pytest.raises(SaleLockedError) as exc:
            sales_service.update_sale(
                sale_id=sale.id, patch={}, items=[{"product_id": product.id, "quantity": 50}],
            )

        assert exc.value.status_code == 400
        assert stock_of(product.id) == 15
        assert db_session.get(Sale, sale.id).to_dict() == before

    def test_backward_status_rejects_whole_update(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=20)
        sale = _sale(customer, (product.id, 5), status=SaleStatus.AWAITING_PAYMENT)

        with pytest.raises(InvalidTransitionError):
            sales_service.update_sale(
                sale_id=sale.id,
                patch={"status": SaleStatus.PENDING},
                items=[{"product_id": product.id, "quantity": 1}],
            )

        assert stock_of(product.id) == 15

    def test_header_fields_and_discount(self, db_session, customer, make_customer, make_product):
        product = make_product(price="10.00", quantity=20)
        other = make_customer(name="Ana")
        sale = _sale(customer, (product.id, 4))

        updated = sales_service.update_sale(
            sale_id=sale.id,
            patch={
                "customer_id": other.id,
                "payment_method": PaymentMethod.CASH,
                "discount_amount": Decimal("5.00"),
            },
        )

        assert updated.customer_name == "Ana"
        assert updated.payment_method == PaymentMethod.CASH
        assert updated.total_amount == Decimal("35.00")
        assert updated.version_id == 2


class TestSaleStatus:
    def test_forward_transitions(self, db_session, customer, make_product):
        sale = _sale(customer, (make_product().id, 1))

        sale = sales_service.change_sale_status(sale_id=sale.id, status="AwaitingPayment")
        assert sale.status == SaleStatus.AWAITING_PAYMENT
        sale = sales_service.change_sale_status(sale_id=sale.id, status="paid")
        assert sale.status == SaleStatus.PAID

    def test_pending_can_skip_to_paid(self, db_session, customer, make_product):
        sale = _sale(customer, (make_product().id, 1))
        assert sales_service.change_sale_status(sale_id=sale.id, status="PAID").status == SaleStatus.PAID

    def test_nothing_leaves_paid(self, db_session, customer, make_product):
        sale = _sale(customer, (make_product().id, 1), status=SaleStatus.PAID)
        for target in ("pending", "cancelled", "paid"):
            with pytest.raises(InvalidTransitionError):
                sales_service.change_sale_status(sale_id=sale.id, status=target)

    def test_backwards_is_rejected(self, db_session, customer, make_product):
        sale = _sale(customer, (make_product().id, 1), status=SaleStatus.AWAITING_PAYMENT)
        with pytest.raises(InvalidTransitionError):
            sales_service.change_sale_status(sale_id=sale.id, status="pending")

    def test_same_status_is_a_no_op(self, db_session, customer, make_product):
        sale = _sale(customer, (make_product().id, 1))
        version = sale.version_id
        sale = sales_service.change_sale_status(sale_id=sale.id, status="pending")
        assert sale.version_id == version

    def test_cancel_keeps_stock_taken(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=10)
        sale = _sale(customer, (product.id, 4))

        sales_service.change_sale_status(sale_id=sale.id, status="cancelled")

        assert stock_of(product.id) == 6

    def test_unknown_token(self, db_session, customer, make_product):
        sale = _sale(customer, (make_product().id, 1))
        with pytest.raises(InvalidStatusError):
            sales_service.change_sale_status(sale_id=sale.id, status="refunded")
        assert db_session.get(Sale, sale.id).status == SaleStatus.PENDING


class TestDeleteSale:
    def test_restores_stock(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=10)
        sale = _sale(customer, (product.id, 4))
        assert stock_of(product.id) == 6

        sales_service.delete_sale(sale_id=sale.id)

        assert stock_of(product.id) == 10
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0

    def test_paid_sale_cannot_be_deleted(self, db_session, customer, make_product, stock_of):
        product = make_product(quantity=10)
        sale = _sale(customer, (product.id, 4), status=SaleStatus.PAID)

        with pytest.raises(SaleLockedError):
            sales_service.delete_sale(sale_id=sale.id)

        assert stock_of(product.id) == 6
        assert db_session.query(SaleItem).count() == 1

    def test_missing_sale(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.delete_sale(sale_id=12345)


def test_pending_listing(db_session, customer, make_product):
    product = make_product(quantity=50)
    pending = _sale(customer, (product.id, 1))
    awaiting = _sale(customer, (product.id, 1), status=SaleStatus.AWAITING_PAYMENT)
    _sale(customer, (product.id, 1), status=SaleStatus.PAID)

    ids = {s.id for s in sales_service.list_pending_sales()}

    assert ids == {pending.id, awaiting.id}


def test_today_listing_excludes_older_sales(db_session, customer, make_product):
    from datetime import datetime

    product = make_product(quantity=50)
    today = _sale(customer, (product.id, 1))
    _sale(customer, (product.id, 1), sale_date=datetime(2020, 1, 1))

    assert [s.id for s in sales_service.list_today_sales()] == [today.id]


def test_shortfall_names_the_first_short_item_in_request_order(db_session, customer, make_product):
    a = make_product(name="A", quantity=1)
    b = make_product(name="B", quantity=1)

    with pytest.raises(InsufficientStockError) as exc:
        _sale(customer, (b.id, 5), (a.id, 5))

    assert exc.value.product_id == b.id
