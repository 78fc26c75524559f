from __future__ import annotations

from ..extensions import db
from ..enums import ExpenseCategory, InstallmentCategory, enum_values
from ..money import decimal_str
from backoffice.time_utils import to_utc_z

from .base import TimestampMixin


class Expense(TimestampMixin, db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_expenses_amount_non_negative"),
        db.Index("ix_expenses_category_date", "category", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    category = db.Column(
        db.Enum(ExpenseCategory, name="expense_category", native_enum=False, length=32,
                values_callable=enum_values),
        nullable=False,
    )
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "category": self.category.value if self.category else None,
            "amount": decimal_str(self.amount),
            "date": to_utc_z(self.date),
            "is_recurring": self.is_recurring,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InstallmentPayment(TimestampMixin, db.Model):
    """
    Installment agreement (a purchase paid over N installments).

    The N InstallmentPaymentStatus rows are generated once, at creation.
    Editing `installments` later does not add or remove status rows.
    """
    __tablename__ = "installment_payments"
    __table_args__ = (
        db.CheckConstraint("installments >= 1", name="ck_installment_payments_count_positive"),
        db.CheckConstraint("total_amount >= 0", name="ck_installment_payments_total_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    total_amount = db.Column(db.Numeric(18, 2), nullable=False)
    installments = db.Column(db.Integer, nullable=False)
    current_installment = db.Column(db.Integer, nullable=False, default=1)
    installment_amount = db.Column(db.Numeric(18, 2), nullable=False)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    category = db.Column(
        db.Enum(InstallmentCategory, name="installment_category", native_enum=False, length=32,
                values_callable=enum_values),
        nullable=False,
    )
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, payment_status: list["InstallmentPaymentStatus"] | None = None) -> dict:
        data = {
            "id": self.id,
            "description": self.description,
            "total_amount": decimal_str(self.total_amount),
            "installments": self.installments,
            "current_installment": self.current_installment,
            "installment_amount": decimal_str(self.installment_amount),
            "start_date": to_utc_z(self.start_date),
            "category": self.category.value if self.category else None,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if payment_status is not None:
            data["payment_status"] = [s.to_dict() for s in payment_status]
        return data


class InstallmentPaymentStatus(TimestampMixin, db.Model):
    __tablename__ = "installment_payment_status"
    __table_args__ = (
        db.UniqueConstraint(
            "installment_payment_id", "installment_number",
            name="uq_installment_payment_status_number",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    installment_payment_id = db.Column(
        db.Integer,
        db.ForeignKey("installment_payments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    installment_number = db.Column(db.Integer, nullable=False)
    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_date = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "installment_payment_id": self.installment_payment_id,
            "installment_number": self.installment_number,
            "is_paid": self.is_paid,
            "paid_date": to_utc_z(self.paid_date),
        }
