# Overview: Category reference prices and the bulk apply onto matching products.

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CategoryPrice, PriceHistory, Product
from ..validation import ConflictError, NotFoundError
from backoffice.time_utils import utcnow
from .unit_of_work import unit_of_work


def _get_category_price(category_price_id: int) -> CategoryPrice:
    category_price = db.session.get(CategoryPrice, category_price_id)
    if category_price is None:
        raise NotFoundError("Category price not found", details={"category_price_id": category_price_id})
    return category_price


def _ensure_name_available(name: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(CategoryPrice.id).filter(
        func.lower(CategoryPrice.category_name) == name.lower()
    )
    if exclude_id is not None:
        query = query.filter(CategoryPrice.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(
            f"Category price already exists: {name}",
            details={"category_name": name},
        )


def _flush_unique_name(session, name: str) -> None:
    # Two requests can both pass _ensure_name_available; the unique index decides.
    try:
        session.flush()
    except IntegrityError:
        raise ConflictError(
            f"Category price already exists: {name}",
            details={"category_name": name},
        )


def list_category_prices() -> list[CategoryPrice]:
    return db.session.query(CategoryPrice).order_by(CategoryPrice.category_name.asc()).all()


def get_category_price(category_price_id: int) -> CategoryPrice:
    return _get_category_price(category_price_id)


def get_category_price_by_name(name: str) -> CategoryPrice:
    category_price = (
        db.session.query(CategoryPrice)
        .filter(func.lower(CategoryPrice.category_name) == name.strip().lower())
        .one_or_none()
    )
    if category_price is None:
        raise NotFoundError("Category price not found", details={"category_name": name})
    return category_price


def create_category_price(*, patch: dict) -> CategoryPrice:
    """Names are unique regardless of case ("Candles" clashes with "candles")."""
    with unit_of_work() as session:
        _ensure_name_available(patch["category_name"])
        category_price = CategoryPrice(
            category_name=patch["category_name"],
            price=patch["price"],
        )
        session.add(category_price)
        _flush_unique_name(session, category_price.category_name)
    return category_price


def update_category_price(*, category_price_id: int, patch: dict) -> CategoryPrice:
    with unit_of_work(stale_check=(CategoryPrice, category_price_id)) as session:
        category_price = _get_category_price(category_price_id)
        if "category_name" in patch:
            _ensure_name_available(patch["category_name"], exclude_id=category_price.id)
            category_price.category_name = patch["category_name"]
        if "price" in patch:
            category_price.price = patch["price"]
        _flush_unique_name(session, category_price.category_name)
    return category_price


def delete_category_price(*, category_price_id: int) -> None:
    with unit_of_work(stale_check=(CategoryPrice, category_price_id)) as session:
        session.delete(_get_category_price(category_price_id))


def apply_to_products(*, category_price_id: int) -> int:
    """
    Set the price of every product in this category (case-insensitive match)
    to the category's price. Point in time: products added to the category
    later keep their own price.

    Returns the number of matching products. A PriceHistory row is appended
    for each product whose price actually changed.
    """
    with unit_of_work() as session:
        category_price = _get_category_price(category_price_id)
        products = (
            session.query(Product)
            .filter(func.lower(Product.category) == category_price.category_name.lower())
            .all()
        )

        now = utcnow()
        for product in products:
            if product.price != category_price.price:
                session.add(PriceHistory(
                    product_id=product.id,
                    price=category_price.price,
                    date=now,
                    reason=f"Category price applied: {category_price.category_name}",
                ))
            product.price = category_price.price
            product.updated_at = now

        count = len(products)

    return count
