# Overview: Flask API routes for the company settings row.

from flask import Blueprint, request

from ..decorators import handle_service_errors
from ..models import Setting
from ..services import settings_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_non_negative,
    enforce_rules_percentage,
)

SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields={
        "low_stock_threshold", "company_name", "company_phone", "company_email",
        "company_address", "birthday_discount", "jar_discount",
    },
)

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@handle_service_errors("get settings")
def get_settings():
    return settings_service.get_settings().to_dict()


@settings_bp.put("")
@handle_service_errors("update settings")
def update_settings_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Setting, payload=payload, policy=SETTINGS_POLICY, partial=True)
    enforce_non_negative(patch, {"low_stock_threshold"})
    enforce_rules_percentage(patch, "birthday_discount")
    enforce_rules_percentage(patch, "jar_discount")

    updated = settings_service.update_settings(patch=patch)
    return updated.to_dict()
