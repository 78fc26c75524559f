from __future__ import annotations

from ..extensions import db
from ..models import Setting
from ..validation import NotFoundError
from .unit_of_work import unit_of_work


SETTING_MUTABLE_FIELDS = {
    "low_stock_threshold",
    "company_name",
    "company_phone",
    "company_email",
    "company_address",
    "birthday_discount",
    "jar_discount",
}


def _current_settings() -> Setting | None:
    return db.session.query(Setting).order_by(Setting.id.asc()).first()


def get_settings() -> Setting:
    settings = _current_settings()
    if settings is None:
        raise NotFoundError("Settings have not been initialised; run `flask system init`")
    return settings


def update_settings(*, patch: dict) -> Setting:
    with unit_of_work():
        settings = get_settings()
        for key, value in patch.items():
            if key in SETTING_MUTABLE_FIELDS:
                setattr(settings, key, value)
    return settings


def ensure_settings(*, company_name: str, low_stock_threshold: int = 10) -> tuple[Setting, bool]:
    """
    Create the singleton row if it is missing. Returns (settings, created).
    Used by `flask system init`; idempotent.
    """
    settings = _current_settings()
    if settings is not None:
        return settings, False

    with unit_of_work() as session:
        settings = Setting(
            company_name=company_name,
            low_stock_threshold=low_stock_threshold,
            birthday_discount=0,
            jar_discount=0,
        )
        session.add(settings)
    return settings, True
