from __future__ import annotations

from ..extensions import db
from ..money import decimal_str
from backoffice.time_utils import to_utc_z
from .base import TimestampMixin


class Product(TimestampMixin, db.Model):
    """
    Finished good held in stock.

    quantity is the authoritative stock-on-hand counter. It is only ever
    changed through relative updates in services/stock_service.py so that
    concurrent edits add up instead of overwriting each other.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_category", "category"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(18, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    category = db.Column(db.String(100), nullable=True)
    fragrance = db.Column(db.String(100), nullable=True)
    weight = db.Column(db.String(50), nullable=True)

    production_cost = db.Column(db.Numeric(18, 2), nullable=True)
    profit_margin = db.Column(db.Numeric(18, 2), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(
        self,
        production_materials: list["ProductionMaterial"] | None = None,
        price_history: list["PriceHistory"] | None = None,
    ) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": decimal_str(self.price),
            "quantity": self.quantity,
            "category": self.category,
            "fragrance": self.fragrance,
            "weight": self.weight,
            "production_cost": decimal_str(self.production_cost),
            "profit_margin": decimal_str(self.profit_margin),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if production_materials is not None:
            data["production_materials"] = [pm.to_dict() for pm in production_materials]
        if price_history is not None:
            data["price_history"] = [ph.to_dict() for ph in price_history]
        return data


class Material(TimestampMixin, db.Model):
    """
    Raw material (ingredient, packaging...).

    current_stock is tracked loosely: manual adjustments may take it below
    zero, unlike Product.quantity.
    """
    __tablename__ = "materials"
    __table_args__ = (
        db.Index("ix_materials_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(50), nullable=False)

    total_quantity_purchased = db.Column(db.Numeric(10, 3), nullable=False, default=0)
    current_stock = db.Column(db.Numeric(10, 3), nullable=False, default=0)
    low_stock_alert = db.Column(db.Numeric(10, 3), nullable=False, default=0)
    total_cost_paid = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    # Derived: total_cost_paid / total_quantity_purchased
    cost_per_unit = db.Column(db.Numeric(10, 4), nullable=False, default=0)

    category = db.Column(db.String(100), nullable=True)
    supplier = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Material id={self.id} name={self.name!r} current_stock={self.current_stock}>"

    def to_dict(self, production_materials: list["ProductionMaterial"] | None = None) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "total_quantity_purchased": decimal_str(self.total_quantity_purchased),
            "current_stock": decimal_str(self.current_stock),
            "low_stock_alert": decimal_str(self.low_stock_alert),
            "total_cost_paid": decimal_str(self.total_cost_paid),
            "cost_per_unit": decimal_str(self.cost_per_unit),
            "category": self.category,
            "supplier": self.supplier,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if production_materials is not None:
            data["production_materials"] = [pm.to_dict() for pm in production_materials]
        return data


class ProductionMaterial(TimestampMixin, db.Model):
    """Bill-of-materials line: a snapshot of the material at recipe time."""
    __tablename__ = "production_materials"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    material_id = db.Column(
        db.Integer, db.ForeignKey("materials.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    material_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(10, 3), nullable=False)
    unit = db.Column(db.String(50), nullable=False)
    cost_per_unit = db.Column(db.Numeric(10, 4), nullable=False)
    total_cost = db.Column(db.Numeric(18, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "material_id": self.material_id,
            "material_name": self.material_name,
            "quantity": decimal_str(self.quantity),
            "unit": self.unit,
            "cost_per_unit": decimal_str(self.cost_per_unit),
            "total_cost": decimal_str(self.total_cost),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PriceHistory(TimestampMixin, db.Model):
    """Append-only log of product price changes."""
    __tablename__ = "price_history"
    __table_args__ = (
        db.Index("ix_price_history_product_date", "product_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    price = db.Column(db.Numeric(18, 2), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    reason = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "price": decimal_str(self.price),
            "date": to_utc_z(self.date),
            "reason": self.reason,
        }


class CategoryPrice(TimestampMixin, db.Model):
    """Reference price for a product category; applied to products on demand."""
    __tablename__ = "category_prices"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_category_prices_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_name = db.Column(db.String(100), nullable=False)
    price = db.Column(db.Numeric(18, 2), nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_name": self.category_name,
            "price": decimal_str(self.price),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


# Category names are unique regardless of case
db.Index(
    "uq_category_prices_name_lower",
    db.func.lower(CategoryPrice.category_name),
    unique=True,
)
