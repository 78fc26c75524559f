# Overview: Flask API routes for category reference prices.

from flask import Blueprint, request

from ..decorators import handle_service_errors
from ..models import CategoryPrice
from ..money import decimal_str
from ..services import category_prices_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_non_negative

CATEGORY_PRICE_POLICY = ModelValidationPolicy(
    writable_fields={"category_name", "price"},
    required_on_create={"category_name", "price"},
)

category_prices_bp = Blueprint("category_prices", __name__, url_prefix="/api/category-prices")


@category_prices_bp.get("")
@handle_service_errors("list category prices")
def list_category_prices():
    items = [c.to_dict() for c in category_prices_service.list_category_prices()]
    return {"items": items, "count": len(items)}


@category_prices_bp.get("/<int:category_price_id>")
@handle_service_errors("get category price")
def get_category_price(category_price_id: int):
    return category_prices_service.get_category_price(category_price_id).to_dict()


@category_prices_bp.get("/by-name/<string:name>")
@handle_service_errors("get category price by name")
def get_by_name(name: str):
    return category_prices_service.get_category_price_by_name(name).to_dict()


@category_prices_bp.post("")
@handle_service_errors("create category price")
def create_category_price_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=CategoryPrice, payload=payload, policy=CATEGORY_PRICE_POLICY, partial=False)
    enforce_non_negative(patch, {"price"})

    created = category_prices_service.create_category_price(patch=patch)
    return created.to_dict(), 201


@category_prices_bp.put("/<int:category_price_id>")
@handle_service_errors("update category price")
def update_category_price_route(category_price_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=CategoryPrice, payload=payload, policy=CATEGORY_PRICE_POLICY, partial=True)
    enforce_non_negative(patch, {"price"})

    updated = category_prices_service.update_category_price(category_price_id=category_price_id, patch=patch)
    return updated.to_dict()


@category_prices_bp.post("/<int:category_price_id>/apply-to-products")
@handle_service_errors("apply category price")
def apply_to_products_route(category_price_id: int):
    """Set every product in the category to this price; returns how many matched."""
    count = category_prices_service.apply_to_products(category_price_id=category_price_id)
    category_price = category_prices_service.get_category_price(category_price_id)
    return {
        "category_name": category_price.category_name,
        "price": decimal_str(category_price.price),
        "updated_count": count,
    }


@category_prices_bp.delete("/<int:category_price_id>")
@handle_service_errors("delete category price")
def delete_category_price_route(category_price_id: int):
    category_prices_service.delete_category_price(category_price_id=category_price_id)
    return {"ok": True}, 200
