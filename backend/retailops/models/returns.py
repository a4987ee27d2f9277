from __future__ import annotations

from ..extensions import db
from retailops.time_utils import to_utc_z, utcnow
from .common import Money, money_str, new_id


class Return(db.Model):
    """
    Return / exchange document against an original order.

    FINANCIAL SNAPSHOT:
    return_value, exchange_value and exactly one of refund_amount,
    credit_amount, additional_payment are computed when the return is
    created and stored here. They are never recomputed, even if product
    prices change or the document is edited later.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.UniqueConstraint("return_number", name="uq_returns_return_number"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    return_number = db.Column(db.String(50), nullable=False)

    # No FK: deleting an order keeps its returns
    order_id = db.Column(db.String(36), nullable=False, index=True)
    order_number = db.Column(db.String(50), nullable=False)

    customer_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(150), nullable=True)

    status = db.Column(db.String(50), nullable=False, default="pending")
    reason = db.Column(db.String(255), nullable=False)
    payment_method = db.Column(db.String(50), nullable=False, default="cash")
    notes = db.Column(db.Text, nullable=True)

    return_value = Money(nullable=False)
    refund_amount = Money(nullable=True)
    credit_amount = Money(nullable=True)
    exchange_value = Money(nullable=True)
    additional_payment = Money(nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True
    )

    items = db.relationship(
        "ReturnItem",
        backref="return_doc",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ReturnItem.position",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "return_number": self.return_number,
            "order_id": self.order_id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "status": self.status,
            "reason": self.reason,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "return_value": money_str(self.return_value),
            "refund_amount": money_str(self.refund_amount),
            "credit_amount": money_str(self.credit_amount),
            "exchange_value": money_str(self.exchange_value),
            "additional_payment": money_str(self.additional_payment),
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class ReturnItem(db.Model):
    __tablename__ = "return_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    return_id = db.Column(db.String(36), db.ForeignKey("returns.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.String(36), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(100), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = Money(nullable=False)
    subtotal = Money(nullable=False)

    exchange_product_id = db.Column(db.String(36), nullable=True)
    exchange_product_name = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "subtotal": money_str(self.subtotal),
            "exchange_product_id": self.exchange_product_id,
            "exchange_product_name": self.exchange_product_name,
        }
