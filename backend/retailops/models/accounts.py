from __future__ import annotations

from ..extensions import db
from retailops.time_utils import to_utc_z, utcnow
from .common import Money, money_str, new_id


class AccountEntry(db.Model):
    """
    Append-only profit/loss ledger row.

    profit is signed (negative = loss). fiscal_* are derived from
    transaction_date at insert time and never recomputed.
    """
    __tablename__ = "accounts"
    __table_args__ = (
        db.Index("ix_accounts_type_period", "transaction_type", "fiscal_year", "fiscal_month"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    transaction_type = db.Column(db.String(50), nullable=False)
    reference_id = db.Column(db.String(36), nullable=True)
    reference_number = db.Column(db.String(50), nullable=True)

    revenue = Money(nullable=False, default=0)
    cost = Money(nullable=False, default=0)
    profit = Money(nullable=False, default=0)

    tax_amount = Money(nullable=True, default=0)
    discount_amount = Money(nullable=True, default=0)
    shipping_cost = Money(nullable=True, default=0)

    product_id = db.Column(db.String(36), nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(100), nullable=True)
    quantity = db.Column(db.Integer, nullable=True, default=0)

    customer_name = db.Column(db.String(100), nullable=True)
    customer_email = db.Column(db.String(150), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    fiscal_year = db.Column(db.Integer, nullable=True)
    fiscal_month = db.Column(db.Integer, nullable=True)
    fiscal_quarter = db.Column(db.Integer, nullable=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now()
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_type": self.transaction_type,
            "reference_id": self.reference_id,
            "reference_number": self.reference_number,
            "revenue": money_str(self.revenue),
            "cost": money_str(self.cost),
            "profit": money_str(self.profit),
            "tax_amount": money_str(self.tax_amount),
            "discount_amount": money_str(self.discount_amount),
            "shipping_cost": money_str(self.shipping_cost),
            "product_id": self.product_id,
            "product_name": self.product_name,
            "category": self.category,
            "quantity": self.quantity,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "notes": self.notes,
            "fiscal_year": self.fiscal_year,
            "fiscal_month": self.fiscal_month,
            "fiscal_quarter": self.fiscal_quarter,
            "transaction_date": to_utc_z(self.transaction_date),
            "created_at": to_utc_z(self.created_at),
        }
