from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from backoffice.time_utils import parse_iso_datetime, parse_iso_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum money value accepted on any amount field: 9,999,999,999.99
MAX_AMOUNT = Decimal("9999999999.99")

# Upper bound on installments per agreement; one status row is written for each
MAX_INSTALLMENTS = 120


class DomainError(Exception):
    """Base for every error the service layer raises on purpose."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(DomainError, ValueError):
    """400-level input problem."""


class InvalidStatusError(ValidationError):
    """Unparseable status / enum token."""


class InsufficientStockError(ValidationError):
    """A decrement would take a product below zero."""

    def __init__(self, product_id: int, requested: int, available: int, product_name: str | None = None):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, requested: {requested}",
            details={
                "product_id": product_id,
                "requested_quantity": requested,
                "available_quantity": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class NotFoundError(DomainError, LookupError):
    """404-level missing entity."""
    status_code = 404


class ConflictError(DomainError, ValueError):
    """409-level business rule conflict (e.g., duplicate category name)."""
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Requested status change is not allowed from the current status."""


class SaleLockedError(ConflictError):
    """Paid sales cannot be edited or deleted."""
    status_code = 400


class ConcurrencyConflictError(ConflictError):
    """Row version changed underneath an update."""


class TransactionFailedError(DomainError, RuntimeError):
    """Unexpected store-level failure; the transaction was rolled back."""
    status_code = 500

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message, details={"cause": type(cause).__name__} if cause else None)
        self.cause = cause


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - ignored_fields: accepted in the payload but dropped (e.g. nested "items",
      which are validated separately)
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    ignored_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_integer(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_decimal(key: str, value: Any, scale: int | None) -> Decimal:
    from .money import to_decimal

    try:
        d = to_decimal(value)
    except ValueError:
        raise ValidationError(f"{key} must be a decimal number")
    if scale is not None:
        d = d.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)
    return d


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Enums go first: sqlalchemy.Enum is a String subclass
    if isinstance(coltype, Enum) and coltype.enum_class is not None:
        from .enums import normalize_enum
        return normalize_enum(coltype.enum_class, value)

    if isinstance(coltype, Integer):
        return _coerce_integer(col.key, value)

    # Fixed-point decimals, quantized to the column scale
    if isinstance(coltype, Numeric):
        return _coerce_decimal(col.key, value, coltype.scale)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Plain dates ("YYYY-MM-DD")
    if isinstance(coltype, Date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            if d is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return d
        raise ValidationError(f"{col.key} must be a date")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def require_int(key: str, value: Any) -> int:
    if value is None:
        raise ValidationError(f"{key} is required")
    return _coerce_integer(key, value)


def require_decimal(key: str, value: Any, scale: int | None = None) -> Decimal:
    if value is None:
        raise ValidationError(f"{key} is required")
    return _coerce_decimal(key, value, scale)


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length, Numeric scale)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    ignored = policy.ignored_fields or set()
    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k in ignored:
            continue
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in ignored:
            continue
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not isinstance(col.type, Enum) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and not isinstance(col.type, Enum) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def validate_line_items(raw_items: Any, *, required: bool = True) -> list[dict] | None:
    """
    Validate the nested ``items`` array of a sale or order payload.

    Each entry needs product_id and a positive integer quantity; unit_price is
    optional (the product's current price is used when omitted).
    Returns None when items were omitted and not required.
    """
    if raw_items is None:
        if required:
            raise ValidationError("items is required")
        return None
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    items: list[dict] = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        if "product_id" not in raw or raw["product_id"] is None:
            raise ValidationError(f"items[{idx}].product_id is required")
        if "quantity" not in raw or raw["quantity"] is None:
            raise ValidationError(f"items[{idx}].quantity is required")

        product_id = _coerce_integer(f"items[{idx}].product_id", raw["product_id"])
        quantity = _coerce_integer(f"items[{idx}].quantity", raw["quantity"])
        if quantity <= 0:
            raise ValidationError(f"items[{idx}].quantity must be > 0")

        item = {"product_id": product_id, "quantity": quantity}
        if raw.get("unit_price") is not None:
            unit_price = _coerce_decimal(f"items[{idx}].unit_price", raw["unit_price"], 2)
            if unit_price < 0:
                raise ValidationError(f"items[{idx}].unit_price must be >= 0")
            item["unit_price"] = unit_price
        items.append(item)

    return items


def validate_recipe_items(raw_items: Any) -> list[dict] | None:
    """
    Validate a product recipe: [{"material_id": 1, "quantity": "0.250"}, ...].
    Returns None when omitted (recipe left untouched).
    """
    if raw_items is None:
        return None
    if not isinstance(raw_items, list):
        raise ValidationError("production_materials must be a list")

    recipe: list[dict] = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"production_materials[{idx}] must be an object")
        if raw.get("material_id") is None or raw.get("quantity") is None:
            raise ValidationError(f"production_materials[{idx}] needs material_id and quantity")
        quantity = _coerce_decimal(f"production_materials[{idx}].quantity", raw["quantity"], 3)
        if quantity <= 0:
            raise ValidationError(f"production_materials[{idx}].quantity must be > 0")
        recipe.append({
            "material_id": _coerce_integer(f"production_materials[{idx}].material_id", raw["material_id"]),
            "quantity": quantity,
        })
    return recipe


def enforce_non_negative(patch: dict, fields: set[str]) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for field in sorted(fields):
        value = patch.get(field)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{field} must be >= 0")
        if isinstance(value, Decimal) and value > MAX_AMOUNT:
            raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")


def enforce_rules_percentage(patch: dict, field: str = "discount_percentage") -> None:
    value = patch.get(field)
    if value is None:
        return
    if value < 0 or value > 100:
        raise ValidationError(f"{field} must be between 0 and 100")


def enforce_rules_installment(patch: dict) -> None:
    if "installments" in patch and patch["installments"] is not None:
        if patch["installments"] < 1:
            raise ValidationError("installments must be >= 1")
        if patch["installments"] > MAX_INSTALLMENTS:
            raise ValidationError(
                f"installments cannot exceed {MAX_INSTALLMENTS}",
                details={"installments": patch["installments"], "max": MAX_INSTALLMENTS},
            )
    if "current_installment" in patch and patch["current_installment"] is not None:
        if patch["current_installment"] < 1:
            raise ValidationError("current_installment must be >= 1")
