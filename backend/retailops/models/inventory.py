from __future__ import annotations

from ..extensions import db
from retailops.time_utils import to_utc_z, utcnow
from .common import new_id


class StockMovement(db.Model):
    """
    Append-only stock ledger entry.

    quantity is always positive. For type 'in'/'out' it is the delta; for
    'adjustment' it is the target on-hand level recorded verbatim, so replaying
    history must treat adjustment rows as absolute sets.

    product_id carries no FK so product deletion never touches history.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    product_id = db.Column(db.String(36), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(100), nullable=False)

    type = db.Column(db.String(32), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True
    )

    def __repr__(self) -> str:
        return f"<StockMovement {self.type} {self.quantity} reason={self.reason!r} product_id={self.product_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
