# Overview: Stock statistics cache; denormalized per-product counters reconciled on bulk read.

from __future__ import annotations

import logging

from ..models import Product, StockStats
from retailops.time_utils import utcnow

"""
Stock Stats Invariants

- One StockStats row per product (unique product_id).
- available mirrors Product.stock_quantity. Only get_all() actively
  reconciles it; get_by_product() returns the last written value, which can
  be stale if a write to the product succeeded and the stats write did not.
- sold / returned / purchased are accumulators; they never decrease.
"""

logger = logging.getLogger(__name__)

STATS_COUNTER_FIELDS = {"available", "sold", "returned", "purchased"}


class StockStatsService:
    def __init__(self, session):
        self.session = session

    def _snapshot_product(self, stats: StockStats, product: Product) -> None:
        stats.product_name = product.product_name
        stats.sku = product.sku
        stats.category = product.category

    def initialize(self, product: Product) -> StockStats:
        """
        Stats row for a newly created product.

        The opening stock counts as purchased. No StockMovement backs this
        number; the initial quantity is implicit.
        """
        stats = StockStats(
            product_id=product.id,
            product_name=product.product_name,
            sku=product.sku,
            category=product.category,
            available=product.stock_quantity,
            sold=0,
            returned=0,
            purchased=product.stock_quantity,
            updated_at=utcnow(),
        )
        self.session.add(stats)
        self.session.flush()
        return stats

    def ensure_for_product(self, product: Product) -> StockStats:
        """
        Existing stats row, or a fresh one with zeroed counters.

        Fresh rows start with purchased=0: stock that predates the cache has
        unknown provenance.
        """
        stats = self.get_by_product(product.id)
        if stats is not None:
            return stats

        logger.info("Creating missing stock stats row for product %s", product.id)
        stats = StockStats(
            product_id=product.id,
            product_name=product.product_name,
            sku=product.sku,
            category=product.category,
            available=product.stock_quantity,
            sold=0,
            returned=0,
            purchased=0,
            updated_at=utcnow(),
        )
        self.session.add(stats)
        self.session.flush()
        return stats

    def get_all(self) -> list[StockStats]:
        """
        All stats rows, ordered by product name.

        Self-healing: every product gets a row, and available is forced to the
        product's live stock_quantity before returning.
        """
        products = self.session.query(Product).all()
        existing = {s.product_id: s for s in self.session.query(StockStats).all()}
        now = utcnow()

        for product in products:
            stats = existing.get(product.id)
            if stats is None:
                self.ensure_for_product(product)
                continue
            if stats.available != product.stock_quantity:
                logger.info(
                    "Reconciled stock stats for product %s: available %s -> %s",
                    product.id, stats.available, product.stock_quantity,
                )
            stats.available = product.stock_quantity
            self._snapshot_product(stats, product)
            stats.updated_at = now

        self.session.commit()

        return (
            self.session.query(StockStats)
            .order_by(StockStats.product_name.asc(), StockStats.id.asc())
            .all()
        )

    def get_by_product(self, product_id: str) -> StockStats | None:
        return self.session.query(StockStats).filter_by(product_id=product_id).first()

    def update(self, product_id: str, *, commit: bool = True, **fields) -> StockStats | None:
        """Merge counter fields into the row; updated_at is always stamped."""
        unknown = set(fields) - STATS_COUNTER_FIELDS
        if unknown:
            raise ValueError(f"Unknown stock stats fields: {', '.join(sorted(unknown))}")

        stats = self.get_by_product(product_id)
        if stats is None:
            return None

        for key, value in fields.items():
            setattr(stats, key, value)
        stats.updated_at = utcnow()

        if commit:
            self.session.commit()
        else:
            self.session.flush()
        return stats

    def delete_for_product(self, product_id: str) -> None:
        self.session.query(StockStats).filter_by(product_id=product_id).delete()
