# Overview: Fixed-point decimal helpers for money, unit costs and material quantities.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

MONEY_Q = Decimal("0.01")
UNIT_COST_Q = Decimal("0.0001")
MATERIAL_QTY_Q = Decimal("0.001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """
    Convert an incoming JSON value to Decimal without going through float
    arithmetic. Floats are routed through str() so 0.1 stays 0.1.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, float):
        value = str(value)
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"invalid decimal: {value!r}")
    if not d.is_finite():
        raise ValueError(f"invalid decimal: {value!r}")
    return d


def q_money(v) -> Decimal:
    return to_decimal(v).quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def q_unit_cost(v) -> Decimal:
    return to_decimal(v).quantize(UNIT_COST_Q, rounding=ROUND_HALF_UP)


def q_material_qty(v) -> Decimal:
    return to_decimal(v).quantize(MATERIAL_QTY_Q, rounding=ROUND_HALF_UP)


def percentage_of(amount, percentage) -> Decimal:
    return q_money(to_decimal(amount) * to_decimal(percentage) / HUNDRED)


def decimal_str(v: Decimal | None) -> str | None:
    """JSON representation for Numeric columns (string keeps exact digits)."""
    if v is None:
        return None
    return str(v)
