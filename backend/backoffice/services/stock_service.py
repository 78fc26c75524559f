# Overview: Stock ledger; relative quantity adjustments for products and raw materials.

"""
Stock invariants (authoritative)

- Product.quantity and Material.current_stock are only changed by relative
  SQL updates (``quantity = quantity + delta``), never by overwriting a value
  read earlier. Concurrent edits therefore add up.
- Product stock never goes below zero as a consequence of a sale: every
  decrement is checked against the stored quantity before anything is
  written. When several products are involved, all of them are checked first.
- Material stock has no floor. Manual adjustments may leave it negative.
- Every adjustment stamps updated_at on the touched row.
- Adjustments do not bump version_id and take no row locks; two concurrent
  sales of the same product can both pass the availability check.

None of these functions commit. Callers run them inside unit_of_work().
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from sqlalchemy import update

from ..extensions import db
from ..models import Material, Product
from ..money import q_material_qty
from ..validation import InsufficientStockError, NotFoundError
from backoffice.time_utils import utcnow


def _product_stock_row(product_id: int):
    row = (
        db.session.query(Product.id, Product.name, Product.quantity)
        .filter(Product.id == product_id)
        .one_or_none()
    )
    if row is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return row


def _apply_product_delta(product_id: int, delta: int) -> None:
    db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity + delta, updated_at=utcnow())
    )


def adjust_product_stock(product_id: int, delta: int, *, enforce_floor: bool = True) -> int:
    """
    Apply ``delta`` to a product's stock and return the resulting quantity.

    With enforce_floor, a delta that would take the product below zero raises
    InsufficientStockError and nothing is written.
    """
    row = _product_stock_row(product_id)
    resulting = row.quantity + delta
    if enforce_floor and resulting < 0:
        raise InsufficientStockError(
            product_id=product_id,
            requested=-delta,
            available=row.quantity,
            product_name=row.name,
        )
    if delta:
        _apply_product_delta(product_id, delta)
    return resulting


def adjust_material_stock(material_id: int, delta) -> Decimal:
    """Apply ``delta`` to a material's current_stock. No floor check."""
    current = (
        db.session.query(Material.current_stock)
        .filter(Material.id == material_id)
        .scalar()
    )
    if current is None:
        raise NotFoundError("Material not found", details={"material_id": material_id})

    delta = q_material_qty(delta)
    db.session.execute(
        update(Material)
        .where(Material.id == material_id)
        .values(current_stock=Material.current_stock + delta, updated_at=utcnow())
    )
    return q_material_qty(current + delta)


def require_available(requested: Mapping[int, int]) -> None:
    """
    Check that every product in ``requested`` ({product_id: qty}) has enough
    stock. Raises on the first shortfall in the order the lines were given;
    writes nothing.
    """
    for product_id in requested:
        qty = requested[product_id]
        if qty <= 0:
            continue
        row = _product_stock_row(product_id)
        if row.quantity < qty:
            raise InsufficientStockError(
                product_id=product_id,
                requested=qty,
                available=row.quantity,
                product_name=row.name,
            )


def decrement_stock(requested: Mapping[int, int]) -> None:
    """All-or-nothing decrement of several products."""
    require_available(requested)
    for product_id in sorted(requested):
        if requested[product_id]:
            _apply_product_delta(product_id, -requested[product_id])


def restore_stock(quantities: Mapping[int, int]) -> None:
    """Credit quantities back (sale deleted, line removed)."""
    for product_id in sorted(quantities):
        if quantities[product_id]:
            adjust_product_stock(product_id, quantities[product_id], enforce_floor=False)


def item_quantity_deltas(old: Mapping[int, int], new: Mapping[int, int]) -> dict[int, int]:
    """
    Per-product stock movement needed to go from ``old`` line quantities to
    ``new`` ones. Negative means stock leaves the shelf.

    Removed product: +old. Added product: -new. Present in both: old - new.
    """
    deltas: dict[int, int] = {}
    # new lines first, in their given order
    for product_id in [*new, *(pid for pid in old if pid not in new)]:
        delta = old.get(product_id, 0) - new.get(product_id, 0)
        if delta:
            deltas[product_id] = delta
    return deltas


def apply_item_changes(old: Mapping[int, int], new: Mapping[int, int]) -> dict[int, int]:
    """
    Reconcile stock for an edited set of line items.

    Only the difference per product moves: 5 -> 8 takes 3 more units (and
    checks that 3 are available), 5 -> 2 gives 3 back. Every availability
    check runs before the first write. Returns the applied deltas.
    """
    deltas = item_quantity_deltas(old, new)
    require_available({pid: -d for pid, d in deltas.items() if d < 0})
    for product_id in sorted(deltas):
        _apply_product_delta(product_id, deltas[product_id])
    return deltas


def list_low_stock_products(threshold: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.quantity <= threshold)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )
