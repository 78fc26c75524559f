# Overview: Customer CRUD, birthday listing and returnable-jar credits.

from __future__ import annotations

from sqlalchemy import extract, func

from ..extensions import db
from ..models import Customer, Order, Sale
from ..validation import ConflictError, NotFoundError
from backoffice.time_utils import utcnow
from .unit_of_work import unit_of_work

CUSTOMER_MUTABLE_FIELDS = {
    "name", "email", "phone", "address", "city", "state", "birth_date", "jar_credits",
}


def _get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer(customer_id: int) -> Customer:
    return _get_customer(customer_id)


def list_birthday_customers(month: int | None = None) -> list[Customer]:
    """Customers born in ``month`` (defaults to the current month)."""
    month = month or utcnow().month
    return (
        db.session.query(Customer)
        .filter(Customer.birth_date.isnot(None))
        .filter(extract("month", Customer.birth_date) == month)
        .order_by(extract("day", Customer.birth_date).asc(), Customer.name.asc())
        .all()
    )


def list_customers_with_jar_credits() -> list[Customer]:
    return (
        db.session.query(Customer)
        .filter(Customer.jar_credits > 0)
        .order_by(Customer.jar_credits.desc(), Customer.name.asc())
        .all()
    )


def create_customer(*, patch: dict) -> Customer:
    with unit_of_work() as session:
        customer = Customer(jar_credits=0)
        for key, value in patch.items():
            if key in CUSTOMER_MUTABLE_FIELDS:
                setattr(customer, key, value)
        session.add(customer)
    return customer


def update_customer(*, customer_id: int, patch: dict) -> Customer:
    with unit_of_work(stale_check=(Customer, customer_id)):
        customer = _get_customer(customer_id)
        for key, value in patch.items():
            if key in CUSTOMER_MUTABLE_FIELDS:
                setattr(customer, key, value)
    return customer


def adjust_jar_credits(*, customer_id: int, credits: int) -> Customer:
    """Add (or, with a negative value, redeem) jar credits. Never below zero."""
    with unit_of_work(stale_check=(Customer, customer_id)):
        customer = _get_customer(customer_id)
        customer.jar_credits = max(0, (customer.jar_credits or 0) + credits)
    return customer


def delete_customer(*, customer_id: int) -> None:
    with unit_of_work(stale_check=(Customer, customer_id)) as session:
        customer = _get_customer(customer_id)
        sales_count = session.query(func.count(Sale.id)).filter(Sale.customer_id == customer.id).scalar()
        orders_count = session.query(func.count(Order.id)).filter(Order.customer_id == customer.id).scalar()
        if sales_count or orders_count:
            raise ConflictError(
                "Customer has sales or orders and cannot be deleted",
                details={"sales_count": sales_count, "orders_count": orders_count},
            )
        session.delete(customer)
