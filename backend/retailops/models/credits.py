from __future__ import annotations

from ..extensions import db
from retailops.time_utils import to_utc_z, utcnow
from .common import Money, money_str, new_id


class DiscountCode(db.Model):
    """
    Store-credit code with a decreasing balance.

    A code that is redeemed down to (within one cent of) zero is deleted, so
    there is no persisted "fully used" state; is_used stays False for every
    row that still exists.
    """
    __tablename__ = "discount_codes"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_discount_codes_code"),
        db.Index("ix_discount_codes_customer_email", "customer_email"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    code = db.Column(db.String(50), nullable=False)
    customer_email = db.Column(db.String(150), nullable=False)
    amount = Money(nullable=False)

    is_used = db.Column(db.Boolean, nullable=False, default=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now()
    )

    def __repr__(self) -> str:
        return f"<DiscountCode {self.code} balance={self.amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "customer_email": self.customer_email,
            "amount": money_str(self.amount),
            "is_used": self.is_used,
            "used_at": to_utc_z(self.used_at),
            "expires_at": to_utc_z(self.expires_at),
            "created_at": to_utc_z(self.created_at),
        }
