from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z, to_iso_date
from .base import TimestampMixin


class Customer(TimestampMixin, db.Model):
    """
    Customer master data.

    jar_credits counts returnable jars the customer has brought back; it is
    redeemed against the jar discount configured in Setting and never drops
    below zero.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.CheckConstraint("jar_credits >= 0", name="ck_customers_jar_credits_non_negative"),
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(2), nullable=True)
    birth_date = db.Column(db.Date, nullable=True)

    jar_credits = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "birth_date": to_iso_date(self.birth_date),
            "jar_credits": self.jar_credits,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
