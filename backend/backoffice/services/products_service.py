# backend/backoffice/services/products_service.py
"""
Products service

- A product's recipe (ProductionMaterial rows) is a snapshot of each
  material's name, unit and cost_per_unit at the time the recipe was saved.
  Sending ``production_materials`` on update replaces the whole recipe.
- Every price change appends a PriceHistory row.
- Stock on hand is never written here; see stock_service.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Material, OrderItem, PriceHistory, Product, ProductionMaterial, SaleItem, Setting
from ..money import q_money
from ..validation import ConflictError, NotFoundError
from backoffice.time_utils import utcnow
from .stock_service import adjust_product_stock, list_low_stock_products
from .unit_of_work import unit_of_work

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "price", "category", "fragrance", "weight",
    "production_cost", "profit_margin",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def _write_recipe(session, product_id: int, recipe: list[dict]) -> None:
    for entry in recipe:
        material = db.session.get(Material, entry["material_id"])
        if material is None:
            raise NotFoundError("Material not found", details={"material_id": entry["material_id"]})
        session.add(ProductionMaterial(
            product_id=product_id,
            material_id=material.id,
            material_name=material.name,
            quantity=entry["quantity"],
            unit=material.unit,
            cost_per_unit=material.cost_per_unit,
            total_cost=q_money(entry["quantity"] * material.cost_per_unit),
        ))


def list_production_materials(product_id: int) -> list[ProductionMaterial]:
    return (
        db.session.query(ProductionMaterial)
        .filter(ProductionMaterial.product_id == product_id)
        .order_by(ProductionMaterial.id.asc())
        .all()
    )


def list_price_history(product_id: int) -> list[PriceHistory]:
    return (
        db.session.query(PriceHistory)
        .filter(PriceHistory.product_id == product_id)
        .order_by(PriceHistory.date.desc(), PriceHistory.id.desc())
        .all()
    )


def serialize_product(product: Product) -> dict:
    return product.to_dict(
        production_materials=list_production_materials(product.id),
        price_history=list_price_history(product.id),
    )


def list_products() -> dict:
    products = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()
    items = [p.to_dict() for p in products]
    return {"items": items, "count": len(items)}


def list_products_by_category(category: str) -> dict:
    products = (
        db.session.query(Product)
        .filter(func.lower(Product.category) == category.strip().lower())
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    items = [p.to_dict() for p in products]
    return {"items": items, "count": len(items)}


def low_stock_threshold() -> int:
    """Settings threshold, or the configured default before `system init`."""
    threshold = db.session.query(Setting.low_stock_threshold).order_by(Setting.id.asc()).scalar()
    if threshold is None:
        threshold = current_app.config.get("DEFAULT_LOW_STOCK_THRESHOLD", 10)
    return threshold


def list_low_stock() -> dict:
    threshold = low_stock_threshold()
    items = [p.to_dict() for p in list_low_stock_products(threshold)]
    return {"items": items, "count": len(items), "threshold": threshold}


def get_product(product_id: int) -> Product:
    return _get_product(product_id)


def create_product(*, patch: dict, recipe: list[dict] | None = None) -> Product:
    with unit_of_work() as session:
        product = Product(quantity=patch.get("quantity") or 0)
        apply_product_patch(product, patch)
        session.add(product)
        session.flush()

        if recipe:
            _write_recipe(session, product.id, recipe)

    return product


def update_product(*, product_id: int, patch: dict, recipe: list[dict] | None = None) -> Product:
    """
    Update product fields. quantity is not writable here (use update-stock).
    """
    with unit_of_work(stale_check=(Product, product_id)) as session:
        product = _get_product(product_id)

        old_price = product.price
        apply_product_patch(product, patch)
        if "price" in patch and patch["price"] != old_price:
            session.add(PriceHistory(
                product_id=product.id,
                price=patch["price"],
                date=utcnow(),
                reason="Price updated",
            ))

        if recipe is not None:
            for row in list_production_materials(product.id):
                session.delete(row)
            _write_recipe(session, product.id, recipe)
            product.updated_at = utcnow()

    return product


def update_stock(*, product_id: int, delta: int) -> Product:
    """Manual stock adjustment; refuses to go below zero."""
    with unit_of_work():
        adjust_product_stock(product_id, delta, enforce_floor=True)
    return _get_product(product_id)


def delete_product(*, product_id: int) -> None:
    """
    Delete a product with its recipe and price history. Products that appear
    on any sale or order are kept (those rows reference them).
    """
    with unit_of_work(stale_check=(Product, product_id)) as session:
        product = _get_product(product_id)

        sale_refs = session.query(func.count(SaleItem.id)).filter(SaleItem.product_id == product.id).scalar()
        order_refs = session.query(func.count(OrderItem.id)).filter(OrderItem.product_id == product.id).scalar()
        if sale_refs or order_refs:
            raise ConflictError(
                "Product is referenced by sales or orders and cannot be deleted",
                details={"sale_items": sale_refs, "order_items": order_refs},
            )

        for row in list_production_materials(product.id):
            session.delete(row)
        for row in list_price_history(product.id):
            session.delete(row)
        session.flush()
        session.delete(product)
