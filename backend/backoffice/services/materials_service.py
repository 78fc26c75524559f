# Overview: Raw material CRUD; cost per unit is derived from what was paid for what was bought.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Material, ProductionMaterial
from ..money import ZERO, q_unit_cost
from ..validation import ConflictError, NotFoundError
from .stock_service import adjust_material_stock
from .unit_of_work import unit_of_work

MATERIAL_MUTABLE_FIELDS = {
    "name", "unit", "total_quantity_purchased", "current_stock", "low_stock_alert",
    "total_cost_paid", "category", "supplier", "notes",
}


def derive_cost_per_unit(total_cost_paid: Decimal | None, total_quantity_purchased: Decimal | None) -> Decimal:
    if not total_quantity_purchased or total_quantity_purchased <= 0:
        return ZERO
    return q_unit_cost((total_cost_paid or ZERO) / total_quantity_purchased)


def _get_material(material_id: int) -> Material:
    material = db.session.get(Material, material_id)
    if material is None:
        raise NotFoundError("Material not found", details={"material_id": material_id})
    return material


def list_materials() -> list[Material]:
    return db.session.query(Material).order_by(Material.name.asc(), Material.id.asc()).all()


def list_low_stock_materials() -> list[Material]:
    """Materials at or below their own low_stock_alert level."""
    return (
        db.session.query(Material)
        .filter(Material.current_stock <= Material.low_stock_alert)
        .order_by(Material.current_stock.asc(), Material.name.asc())
        .all()
    )


def list_materials_by_category(category: str) -> list[Material]:
    return (
        db.session.query(Material)
        .filter(func.lower(Material.category) == category.strip().lower())
        .order_by(Material.name.asc(), Material.id.asc())
        .all()
    )


def get_material(material_id: int) -> Material:
    return _get_material(material_id)


def list_material_usage(material_id: int) -> list[ProductionMaterial]:
    return (
        db.session.query(ProductionMaterial)
        .filter(ProductionMaterial.material_id == material_id)
        .order_by(ProductionMaterial.id.asc())
        .all()
    )


def create_material(*, patch: dict) -> Material:
    """current_stock starts at the purchased quantity unless given."""
    with unit_of_work() as session:
        material = Material()
        for key, value in patch.items():
            if key in MATERIAL_MUTABLE_FIELDS:
                setattr(material, key, value)
        if patch.get("current_stock") is None:
            material.current_stock = material.total_quantity_purchased or ZERO
        material.cost_per_unit = derive_cost_per_unit(
            material.total_cost_paid, material.total_quantity_purchased
        )
        session.add(material)
    return material


def update_material(*, material_id: int, patch: dict) -> Material:
    with unit_of_work(stale_check=(Material, material_id)):
        material = _get_material(material_id)
        for key, value in patch.items():
            if key in MATERIAL_MUTABLE_FIELDS:
                setattr(material, key, value)
        material.cost_per_unit = derive_cost_per_unit(
            material.total_cost_paid, material.total_quantity_purchased
        )
    return material


def update_stock(*, material_id: int, delta) -> Material:
    """Manual adjustment; raw material stock may go negative."""
    with unit_of_work():
        adjust_material_stock(material_id, delta)
    return _get_material(material_id)


def delete_material(*, material_id: int) -> None:
    with unit_of_work(stale_check=(Material, material_id)) as session:
        material = _get_material(material_id)
        products_count = (
            session.query(func.count(func.distinct(ProductionMaterial.product_id)))
            .filter(ProductionMaterial.material_id == material.id)
            .scalar()
        )
        if products_count:
            raise ConflictError(
                f"Material is used by {products_count} product(s) and cannot be deleted",
                details={"material_id": material.id, "products_count": products_count},
            )
        session.delete(material)
