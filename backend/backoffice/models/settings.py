from __future__ import annotations

from ..extensions import db
from ..money import decimal_str
from backoffice.time_utils import to_utc_z
from .base import TimestampMixin


class Setting(TimestampMixin, db.Model):
    """
    Company-wide settings. Exactly one row, created by `flask system init`.
    """
    __tablename__ = "settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    company_name = db.Column(db.String(255), nullable=False)
    company_phone = db.Column(db.String(20), nullable=True)
    company_email = db.Column(db.String(255), nullable=True)
    company_address = db.Column(db.Text, nullable=True)

    # Percentages applied by the frontend when building a sale
    birthday_discount = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    jar_discount = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "low_stock_threshold": self.low_stock_threshold,
            "company_name": self.company_name,
            "company_phone": self.company_phone,
            "company_email": self.company_email,
            "company_address": self.company_address,
            "birthday_discount": decimal_str(self.birthday_discount),
            "jar_discount": decimal_str(self.jar_discount),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
