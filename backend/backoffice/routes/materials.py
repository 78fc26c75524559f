# Overview: Flask API routes for raw materials.

from flask import Blueprint, request

from ..decorators import handle_service_errors
from ..models import Material
from ..money import decimal_str
from ..services import materials_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_non_negative,
    require_decimal,
)

MATERIAL_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "unit", "total_quantity_purchased", "current_stock", "low_stock_alert",
        "total_cost_paid", "category", "supplier", "notes",
    },
    required_on_create={"name", "unit"},
)

NON_NEGATIVE_FIELDS = {"total_quantity_purchased", "low_stock_alert", "total_cost_paid"}

materials_bp = Blueprint("materials", __name__, url_prefix="/api/materials")


def _list_response(materials) -> dict:
    items = [m.to_dict() for m in materials]
    return {"items": items, "count": len(items)}


@materials_bp.get("")
@handle_service_errors("list materials")
def list_materials():
    return _list_response(materials_service.list_materials())


@materials_bp.get("/low-stock")
@handle_service_errors("list low-stock materials")
def list_low_stock():
    return _list_response(materials_service.list_low_stock_materials())


@materials_bp.get("/category/<string:category>")
@handle_service_errors("list materials by category")
def list_by_category(category: str):
    return _list_response(materials_service.list_materials_by_category(category))


@materials_bp.get("/<int:material_id>")
@handle_service_errors("get material")
def get_material(material_id: int):
    material = materials_service.get_material(material_id)
    return material.to_dict(production_materials=materials_service.list_material_usage(material.id))


@materials_bp.post("")
@handle_service_errors("create material")
def create_material_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Material, payload=payload, policy=MATERIAL_POLICY, partial=False)
    enforce_non_negative(patch, NON_NEGATIVE_FIELDS)

    created = materials_service.create_material(patch=patch)
    return created.to_dict(), 201


@materials_bp.put("/<int:material_id>")
@handle_service_errors("update material")
def update_material_route(material_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Material, payload=payload, policy=MATERIAL_POLICY, partial=True)
    enforce_non_negative(patch, NON_NEGATIVE_FIELDS)

    updated = materials_service.update_material(material_id=material_id, patch=patch)
    return updated.to_dict()


@materials_bp.post("/<int:material_id>/update-stock")
@handle_service_errors("update material stock")
def update_stock_route(material_id: int):
    """Body: ``{"quantity": "-1.5"}``. Material stock may go negative."""
    payload = request.get_json(silent=True)
    raw = payload.get("quantity") if isinstance(payload, dict) else payload
    delta = require_decimal("quantity", raw, 3)

    material = materials_service.update_stock(material_id=material_id, delta=delta)
    return {"id": material.id, "name": material.name, "current_stock": decimal_str(material.current_stock)}


@materials_bp.delete("/<int:material_id>")
@handle_service_errors("delete material")
def delete_material_route(material_id: int):
    materials_service.delete_material(material_id=material_id)
    return {"ok": True}, 200
