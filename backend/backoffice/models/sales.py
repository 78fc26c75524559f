from __future__ import annotations

from ..extensions import db
from ..enums import OrderStatus, PaymentMethod, SaleStatus, enum_values
from ..money import decimal_str
from backoffice.time_utils import to_utc_z
from .base import TimestampMixin


def _enum_column(enum_cls, name: str, **kwargs):
    return db.Column(
        db.Enum(enum_cls, name=name, native_enum=False, length=32, values_callable=enum_values),
        **kwargs,
    )


def _enum_value(member):
    return member.value if member is not None else None


class Sale(TimestampMixin, db.Model):
    """
    Sale aggregate root. Owns SaleItem rows (loaded by explicit query).

    Once status is PAID the sale is frozen: no edits, no deletes, no status
    changes. Stock was decremented when the sale was created (or when the
    originating order was delivered).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_date", "status", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    customer_name = db.Column(db.String(255), nullable=False)

    subtotal = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    discount_percentage = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    status = _enum_column(SaleStatus, "sale_status", nullable=False, default=SaleStatus.PENDING)
    payment_method = _enum_column(PaymentMethod, "payment_method", nullable=True)
    notes = db.Column(db.Text, nullable=True)
    from_order = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} status={_enum_value(self.status)} total={self.total_amount}>"

    def to_dict(self, items: list["SaleItem"] | None = None) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "subtotal": decimal_str(self.subtotal),
            "discount_percentage": decimal_str(self.discount_percentage),
            "discount_amount": decimal_str(self.discount_amount),
            "total_amount": decimal_str(self.total_amount),
            "sale_date": to_utc_z(self.sale_date),
            "status": _enum_value(self.status),
            "payment_method": _enum_value(self.payment_method),
            "notes": self.notes,
            "from_order": self.from_order,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if items is not None:
            data["items"] = [item.to_dict() for item in items]
        return data


class SaleItem(TimestampMixin, db.Model):
    """Line item on a sale; the unit of stock decrement."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(
        db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(18, 2), nullable=False)
    total_price = db.Column(db.Numeric(18, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": decimal_str(self.unit_price),
            "total_price": decimal_str(self.total_price),
            "created_at": to_utc_z(self.created_at),
        }


class Order(TimestampMixin, db.Model):
    """
    Customer order (made to order / scheduled delivery).

    No stock moves while an order is open. Delivering it decrements stock and
    generates a paid Sale with from_order=True in the same transaction.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_expected", "status", "expected_delivery_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    customer_name = db.Column(db.String(255), nullable=False)

    subtotal = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    discount_percentage = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    expected_delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_date = db.Column(db.DateTime(timezone=True), nullable=True)

    status = _enum_column(OrderStatus, "order_status", nullable=False, default=OrderStatus.PENDING)
    payment_method = _enum_column(PaymentMethod, "payment_method", nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={_enum_value(self.status)} total={self.total_amount}>"

    def to_dict(self, items: list["OrderItem"] | None = None) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "subtotal": decimal_str(self.subtotal),
            "discount_percentage": decimal_str(self.discount_percentage),
            "discount_amount": decimal_str(self.discount_amount),
            "total_amount": decimal_str(self.total_amount),
            "order_date": to_utc_z(self.order_date),
            "expected_delivery_date": to_utc_z(self.expected_delivery_date),
            "delivered_date": to_utc_z(self.delivered_date),
            "status": _enum_value(self.status),
            "payment_method": _enum_value(self.payment_method),
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if items is not None:
            data["items"] = [item.to_dict() for item in items]
        return data


class OrderItem(TimestampMixin, db.Model):
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(18, 2), nullable=False)
    total_price = db.Column(db.Numeric(18, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": decimal_str(self.unit_price),
            "total_price": decimal_str(self.total_price),
            "created_at": to_utc_z(self.created_at),
        }
