# Overview: Closed status/category enums and the loose-token normalizer shared by every status field.

from __future__ import annotations

import enum

from .validation import InvalidStatusError


class SaleStatus(str, enum.Enum):
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    CANCELLED = "cancelled"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PRODUCTION = "in_production"
    READY_FOR_DELIVERY = "ready_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    PIX = "pix"
    DEBIT = "debit"
    CREDIT = "credit"


class ExpenseCategory(str, enum.Enum):
    PRODUCTION = "production"
    INVESTMENT = "investment"
    FIXED_COST = "fixed_cost"
    VARIABLE_COST = "variable_cost"
    OTHER = "other"


class InstallmentCategory(str, enum.Enum):
    PRODUCTION = "production"
    INVESTMENT = "investment"
    EQUIPMENT = "equipment"
    OTHER = "other"


_SEPARATORS = str.maketrans("", "", "_- ")


def _squash(token: str) -> str:
    return token.translate(_SEPARATORS).lower()


def normalize_enum(enum_cls: type[enum.Enum], token) -> enum.Enum:
    """
    Map a loosely formatted token onto a member of ``enum_cls``.

    "in_production", "InProduction", "IN-PRODUCTION" and "inproduction" all
    resolve to OrderStatus.IN_PRODUCTION. Members pass through unchanged.
    Anything else raises InvalidStatusError before the caller mutates state.
    """
    if isinstance(token, enum_cls):
        return token
    if not isinstance(token, str) or not token.strip():
        raise InvalidStatusError(
            f"invalid status: {token!r}",
            details={"field_type": enum_cls.__name__, "value": token},
        )

    wanted = _squash(token.strip())
    for member in enum_cls:
        if _squash(member.name) == wanted:
            return member

    raise InvalidStatusError(
        f"invalid status: {token!r}",
        details={
            "field_type": enum_cls.__name__,
            "value": token,
            "allowed": [m.value for m in enum_cls],
        },
    )


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """values_callable for db.Enum so the database stores the snake_case value."""
    return [member.value for member in enum_cls]
