# Overview: Flask API routes for installment agreements and payment toggling.

from flask import Blueprint, request

from ..decorators import handle_service_errors
from ..enums import InstallmentCategory, normalize_enum
from ..models import InstallmentPayment
from ..services import installments_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_non_negative,
    enforce_rules_installment,
)

INSTALLMENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "description", "total_amount", "installments", "current_installment",
        "installment_amount", "start_date", "category", "notes",
    },
    required_on_create={"description", "total_amount", "installments", "category"},
)

installments_bp = Blueprint("installments", __name__, url_prefix="/api/installments")


def _validated_patch(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=InstallmentPayment, payload=payload, policy=INSTALLMENT_POLICY, partial=partial)
    enforce_non_negative(patch, {"total_amount", "installment_amount"})
    enforce_rules_installment(patch)
    return patch


@installments_bp.get("")
@handle_service_errors("list installments")
def list_installments():
    return installments_service.serialize_installments(installments_service.list_installments())


@installments_bp.get("/pending")
@handle_service_errors("list pending installments")
def list_pending():
    """Agreements with at least one unpaid installment."""
    return installments_service.serialize_installments(installments_service.list_pending_installments())


@installments_bp.get("/category/<string:category>")
@handle_service_errors("list installments by category")
def list_by_category(category: str):
    agreements = installments_service.list_installments_by_category(
        normalize_enum(InstallmentCategory, category)
    )
    return installments_service.serialize_installments(agreements)


@installments_bp.get("/<int:installment_id>")
@handle_service_errors("get installment")
def get_installment(installment_id: int):
    return installments_service.serialize_installment(installments_service.get_installment(installment_id))


@installments_bp.post("")
@handle_service_errors("create installment")
def create_installment_route():
    """Creates the agreement and one unpaid status row per installment."""
    payload = request.get_json(silent=True) or {}

    patch = _validated_patch(payload, partial=False)

    created = installments_service.create_installment(patch=patch)
    return installments_service.serialize_installment(created), 201


@installments_bp.put("/<int:installment_id>")
@handle_service_errors("update installment")
def update_installment_route(installment_id: int):
    payload = request.get_json(silent=True) or {}

    patch = _validated_patch(payload, partial=True)

    updated = installments_service.update_installment(installment_id=installment_id, patch=patch)
    return installments_service.serialize_installment(updated)


@installments_bp.post("/<int:installment_id>/toggle-payment/<int:installment_number>")
@handle_service_errors("toggle installment payment")
def toggle_payment_route(installment_id: int, installment_number: int):
    row = installments_service.toggle_payment(
        installment_id=installment_id,
        installment_number=installment_number,
    )
    return row.to_dict()


@installments_bp.delete("/<int:installment_id>")
@handle_service_errors("delete installment")
def delete_installment_route(installment_id: int):
    installments_service.delete_installment(installment_id=installment_id)
    return {"ok": True}, 200
