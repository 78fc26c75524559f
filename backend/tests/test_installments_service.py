from decimal import Decimal

import pytest

from backoffice.enums import InstallmentCategory
from backoffice.models import InstallmentPayment, InstallmentPaymentStatus
from backoffice.services import installments_service
from backoffice.validation import MAX_INSTALLMENTS, NotFoundError, ValidationError


def _agreement(**overrides):
    patch = {
        "description": "Wax melter",
        "total_amount": Decimal("600.00"),
        "installments": 6,
        "category": InstallmentCategory.EQUIPMENT,
    }
    patch.update(overrides)
    return installments_service.create_installment(patch=patch)


def test_create_generates_one_unpaid_row_per_installment(db_session):
    agreement = _agreement()

    rows = installments_service.list_payment_status(agreement.id)

    assert [r.installment_number for r in rows] == [1, 2, 3, 4, 5, 6]
    assert all(r.is_paid is False and r.paid_date is None for r in rows)
    assert agreement.installment_amount == Decimal("100.00")
    assert agreement.current_installment == 1


def test_installment_amount_rounds_to_cents(db_session):
    agreement = _agreement(total_amount=Decimal("100.00"), installments=3)
    assert agreement.installment_amount == Decimal("33.33")


def test_toggle_flips_paid_and_back(db_session):
    agreement = _agreement()

    row = installments_service.toggle_payment(installment_id=agreement.id, installment_number=2)
    assert row.is_paid is True
    assert row.paid_date is not None

    row = installments_service.toggle_payment(installment_id=agreement.id, installment_number=2)
    assert row.is_paid is False
    assert row.paid_date is None


def test_toggle_touches_only_the_named_installment(db_session):
    agreement = _agreement(installments=3)

    installments_service.toggle_payment(installment_id=agreement.id, installment_number=3)

    paid = [r.installment_number for r in installments_service.list_payment_status(agreement.id) if r.is_paid]
    assert paid == [3]


def test_toggle_unknown_agreement_or_number(db_session):
    agreement = _agreement(installments=2)

    with pytest.raises(NotFoundError):
        installments_service.toggle_payment(installment_id=agreement.id + 100, installment_number=1)
    with pytest.raises(NotFoundError):
        installments_service.toggle_payment(installment_id=agreement.id, installment_number=3)


def test_changing_the_count_keeps_existing_rows(db_session):
    agreement = _agreement(installments=6)

    installments_service.update_installment(installment_id=agreement.id, patch={"installments": 10})

    assert db_session.get(InstallmentPayment, agreement.id).installments == 10
    assert len(installments_service.list_payment_status(agreement.id)) == 6


def test_pending_lists_agreements_with_unpaid_rows(db_session):
    open_one = _agreement(description="Molds", installments=2)
    settled = _agreement(description="Oven", installments=1)
    installments_service.toggle_payment(installment_id=settled.id, installment_number=1)

    pending = installments_service.list_pending_installments()

    assert [a.id for a in pending] == [open_one.id]


def test_delete_removes_status_rows(db_session):
    agreement = _agreement()

    installments_service.delete_installment(installment_id=agreement.id)

    assert db_session.query(InstallmentPayment).count() == 0
    assert db_session.query(InstallmentPaymentStatus).count() == 0


def test_serialized_agreement_carries_its_rows(db_session):
    agreement = _agreement(installments=2)

    data = installments_service.serialize_installment(agreement)

    assert data["category"] == "equipment"
    assert [r["installment_number"] for r in data["payment_status"]] == [1, 2]


def test_installment_count_has_an_upper_bound(db_session):
    with pytest.raises(ValidationError):
        _agreement(installments=MAX_INSTALLMENTS + 1)

    assert db_session.query(InstallmentPayment).count() == 0
    assert db_session.query(InstallmentPaymentStatus).count() == 0
