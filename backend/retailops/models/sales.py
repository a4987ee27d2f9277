from __future__ import annotations

from ..extensions import db
from retailops.time_utils import to_utc_z, utcnow
from .common import Money, money_str, new_id


class Order(db.Model):
    """
    Customer order.

    Items are snapshots of the product at sale time (name, sku, unit price),
    not live references. Stock effects are applied once, when the order is
    created; later metadata edits never re-apply them.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_customer_email", "customer_email"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    order_number = db.Column(db.String(50), nullable=False)

    customer_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(150), nullable=True)
    customer_phone = db.Column(db.String(20), nullable=True)

    status = db.Column(db.String(50), nullable=False, default="pending")
    payment_method = db.Column(db.String(50), nullable=False, default="cash")
    notes = db.Column(db.Text, nullable=True)

    total_amount = Money(nullable=False)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True
    )

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "status": self.status,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "total_amount": money_str(self.total_amount),
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # Snapshot of the product at sale time; product_id is not a FK
    product_id = db.Column(db.String(36), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(100), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = Money(nullable=False)
    subtotal = Money(nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "subtotal": money_str(self.subtotal),
        }
