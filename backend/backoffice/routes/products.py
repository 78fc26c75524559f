# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/backoffice/routes/products.py
from flask import Blueprint, request

from ..decorators import handle_service_errors
from ..models import Product
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    validate_recipe_items,
    enforce_non_negative,
    require_int,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "price", "quantity", "category", "fragrance", "weight",
        "production_cost", "profit_margin",
    },
    required_on_create={"name", "price"},
    ignored_fields={"production_materials"},
)

# quantity only moves through update-stock once the product exists
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_POLICY.writable_fields - {"quantity"},
    ignored_fields={"production_materials"},
)

MONEY_FIELDS = {"price", "production_cost", "profit_margin"}

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@handle_service_errors("list products")
def list_products():
    return products_service.list_products()


@products_bp.get("/low-stock")
@handle_service_errors("list low-stock products")
def list_low_stock():
    """Products with quantity at or below the settings threshold."""
    return products_service.list_low_stock()


@products_bp.get("/category/<string:category>")
@handle_service_errors("list products by category")
def list_by_category(category: str):
    return products_service.list_products_by_category(category)


@products_bp.get("/<int:product_id>")
@handle_service_errors("get product")
def get_product(product_id: int):
    product = products_service.get_product(product_id)
    return products_service.serialize_product(product)


@products_bp.post("")
@handle_service_errors("create product")
def create_product_route():
    """
    Create a product. Optional ``production_materials`` array sets the recipe.
    """
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_non_negative(patch, MONEY_FIELDS | {"quantity"})
    recipe = validate_recipe_items(payload.get("production_materials"))

    created = products_service.create_product(patch=patch, recipe=recipe)
    return products_service.serialize_product(created), 201


@products_bp.put("/<int:product_id>")
@handle_service_errors("update product")
def update_product_route(product_id: int):
    """
    Update a product. ``production_materials`` (when present) replaces the
    recipe; a price change is recorded in price history.
    """
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_non_negative(patch, MONEY_FIELDS)
    recipe = validate_recipe_items(payload.get("production_materials"))

    updated = products_service.update_product(product_id=product_id, patch=patch, recipe=recipe)
    return products_service.serialize_product(updated)


@products_bp.post("/<int:product_id>/update-stock")
@handle_service_errors("update product stock")
def update_stock_route(product_id: int):
    """
    Relative stock adjustment. Body: ``{"quantity": 5}`` (or a bare number).
    Negative values take stock out; the result may not drop below zero.
    """
    payload = request.get_json(silent=True)
    raw = payload.get("quantity") if isinstance(payload, dict) else payload
    delta = require_int("quantity", raw)

    product = products_service.update_stock(product_id=product_id, delta=delta)
    return {"id": product.id, "name": product.name, "quantity": product.quantity}


@products_bp.delete("/<int:product_id>")
@handle_service_errors("delete product")
def delete_product_route(product_id: int):
    products_service.delete_product(product_id=product_id)
    return {"ok": True}, 200
