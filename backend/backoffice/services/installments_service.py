# Overview: Installment agreements and their per-installment payment status rows.

from __future__ import annotations

from collections import defaultdict

from sqlalchemy import exists

from ..extensions import db
from ..models import InstallmentPayment, InstallmentPaymentStatus
from ..money import q_money
from ..validation import MAX_INSTALLMENTS, NotFoundError, ValidationError
from backoffice.time_utils import utcnow
from .unit_of_work import unit_of_work


INSTALLMENT_MUTABLE_FIELDS = {
    "description", "total_amount", "installments", "current_installment",
    "installment_amount", "start_date", "category", "notes",
}


def _get_agreement(installment_id: int) -> InstallmentPayment:
    agreement = db.session.get(InstallmentPayment, installment_id)
    if agreement is None:
        raise NotFoundError("Installment payment not found", details={"installment_id": installment_id})
    return agreement


def list_payment_status(installment_id: int) -> list[InstallmentPaymentStatus]:
    return (
        db.session.query(InstallmentPaymentStatus)
        .filter(InstallmentPaymentStatus.installment_payment_id == installment_id)
        .order_by(InstallmentPaymentStatus.installment_number.asc())
        .all()
    )


def serialize_installment(agreement: InstallmentPayment) -> dict:
    return agreement.to_dict(payment_status=list_payment_status(agreement.id))


def serialize_installments(agreements: list[InstallmentPayment]) -> dict:
    by_agreement: dict[int, list[InstallmentPaymentStatus]] = defaultdict(list)
    ids = [a.id for a in agreements]
    if ids:
        rows = (
            db.session.query(InstallmentPaymentStatus)
            .filter(InstallmentPaymentStatus.installment_payment_id.in_(ids))
            .order_by(InstallmentPaymentStatus.installment_number.asc())
            .all()
        )
        for row in rows:
            by_agreement[row.installment_payment_id].append(row)
    items = [a.to_dict(payment_status=by_agreement[a.id]) for a in agreements]
    return {"items": items, "count": len(items)}


def create_installment(*, patch: dict) -> InstallmentPayment:
    """
    Create an agreement plus its status rows 1..N (all unpaid) in one write.

    installment_amount defaults to total_amount / installments, rounded to
    cents.
    """
    count = patch["installments"]
    if not 1 <= count <= MAX_INSTALLMENTS:
        raise ValidationError(
            f"installments must be between 1 and {MAX_INSTALLMENTS}",
            details={"installments": count},
        )

    amount = patch.get("installment_amount")
    if amount is None:
        amount = q_money(patch["total_amount"] / count)

    with unit_of_work() as session:
        agreement = InstallmentPayment(
            description=patch["description"],
            total_amount=patch["total_amount"],
            installments=count,
            current_installment=patch.get("current_installment") or 1,
            installment_amount=amount,
            start_date=patch.get("start_date") or utcnow(),
            category=patch["category"],
            notes=patch.get("notes"),
        )
        session.add(agreement)
        session.flush()

        for number in range(1, count + 1):
            session.add(InstallmentPaymentStatus(
                installment_payment_id=agreement.id,
                installment_number=number,
                is_paid=False,
            ))

    return agreement


def update_installment(*, installment_id: int, patch: dict) -> InstallmentPayment:
    """
    Update agreement fields only. The status rows created with the agreement
    are left as they are, even when ``installments`` changes.
    """
    with unit_of_work(stale_check=(InstallmentPayment, installment_id)):
        agreement = _get_agreement(installment_id)
        for key, value in patch.items():
            if key in INSTALLMENT_MUTABLE_FIELDS:
                setattr(agreement, key, value)
    return agreement


def toggle_payment(*, installment_id: int, installment_number: int) -> InstallmentPaymentStatus:
    """Flip is_paid for one installment; paid_date follows (set or cleared)."""
    with unit_of_work():
        _get_agreement(installment_id)
        row = (
            db.session.query(InstallmentPaymentStatus)
            .filter_by(installment_payment_id=installment_id, installment_number=installment_number)
            .one_or_none()
        )
        if row is None:
            raise NotFoundError(
                "Installment number not found",
                details={"installment_id": installment_id, "installment_number": installment_number},
            )

        row.is_paid = not row.is_paid
        row.paid_date = utcnow() if row.is_paid else None

    return row


def delete_installment(*, installment_id: int) -> None:
    with unit_of_work(stale_check=(InstallmentPayment, installment_id)) as session:
        agreement = _get_agreement(installment_id)
        for row in list_payment_status(agreement.id):
            session.delete(row)
        session.flush()
        session.delete(agreement)


def get_installment(installment_id: int) -> InstallmentPayment:
    return _get_agreement(installment_id)


def list_installments() -> list[InstallmentPayment]:
    return (
        db.session.query(InstallmentPayment)
        .order_by(InstallmentPayment.start_date.desc(), InstallmentPayment.id.desc())
        .all()
    )


def list_installments_by_category(category) -> list[InstallmentPayment]:
    return (
        db.session.query(InstallmentPayment)
        .filter(InstallmentPayment.category == category)
        .order_by(InstallmentPayment.start_date.desc(), InstallmentPayment.id.desc())
        .all()
    )


def list_pending_installments() -> list[InstallmentPayment]:
    """Agreements with at least one unpaid installment."""
    unpaid = exists().where(
        InstallmentPaymentStatus.installment_payment_id == InstallmentPayment.id,
        InstallmentPaymentStatus.is_paid.is_(False),
    )
    return (
        db.session.query(InstallmentPayment)
        .filter(unpaid)
        .order_by(InstallmentPayment.start_date.asc(), InstallmentPayment.id.asc())
        .all()
    )
