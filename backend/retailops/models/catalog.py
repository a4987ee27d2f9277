from __future__ import annotations

from ..extensions import db
from retailops.time_utils import to_utc_z
from .common import Money, money_str, new_id


class Product(db.Model):
    """
    Product master data.

    STOCK OWNERSHIP:
    Product.stock_quantity is the authoritative on-hand count. It is only
    written by the inventory engine (sale, manual movement, return intake);
    product edits never touch it.

    OPTIMISTIC LOCKING:
    version_id is bumped on every flush. Two writers that read the same row
    and both try to write it make the second one fail with StaleDataError,
    which the engine turns into a retry of the whole read-modify-write.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_name", "product_name"),
        db.Index("ix_products_category", "category"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    sku = db.Column(db.String(100), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    brand = db.Column(db.String(100), nullable=True)
    description = db.Column(db.Text, nullable=True)

    price = Money(nullable=False)
    cost_price = Money(nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    warehouse = db.Column(db.String(100), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "product_name": self.product_name,
            "category": self.category,
            "brand": self.brand,
            "description": self.description,
            "price": money_str(self.price),
            "cost_price": money_str(self.cost_price),
            "stock_quantity": self.stock_quantity,
            "warehouse": self.warehouse,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockStats(db.Model):
    """
    Denormalized per-product stock counters.

    Not a source of truth:
    - available mirrors Product.stock_quantity and is force-refreshed on bulk read
    - sold / returned / purchased only ever grow
    - product_name / sku / category are a display snapshot of the product
    """
    __tablename__ = "stock_stats"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_stock_stats_product"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    # No FK: deleting a product drops its stats row explicitly
    product_id = db.Column(db.String(36), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(100), nullable=False)
    category = db.Column(db.String(100), nullable=False)

    available = db.Column(db.Integer, nullable=False, default=0)
    sold = db.Column(db.Integer, nullable=False, default=0)
    returned = db.Column(db.Integer, nullable=False, default=0)
    purchased = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return (
            f"<StockStats product_id={self.product_id} available={self.available} "
            f"sold={self.sold} returned={self.returned} purchased={self.purchased}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "category": self.category,
            "available": self.available,
            "sold": self.sold,
            "returned": self.returned,
            "purchased": self.purchased,
            "updated_at": to_utc_z(self.updated_at),
        }
