# Overview: Inventory mutation engine; the single write path for product stock.

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..models import Product, StockMovement, StockStats
from ..validation import NotFoundError, ValidationError, STOCK_MOVEMENT_TYPES
from retailops.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .stock_stats_service import StockStatsService

"""
Inventory Invariants (authoritative)

Stock model:
- Product.stock_quantity is the authoritative on-hand count.
- stock_quantity is never negative: decreases clamp at zero instead of failing.
- Returns always add stock, uncapped.

Every stock change goes through apply_stock_delta(), which in ONE database
transaction:
  1. locks and reads the product row
  2. computes the new quantity from a tagged delta (Increase / Decrease / SetTo)
  3. writes the product
  4. appends a StockMovement (append-only; never updated or deleted)
  5. read-modify-writes the StockStats row (available = new quantity,
     plus the semantic counter for the event, if any)

Concurrency:
- Product carries an optimistic version_id. A concurrent writer makes the
  flush fail with StaleDataError; the transaction is rolled back and the
  whole sequence above is retried from the read.

Ledger asymmetry (kept on purpose):
- Product creation seeds stats (purchased = available = opening stock) but
  writes NO StockMovement. All other stock events are ledgered.
- For 'adjustment' movements the ledger quantity is the target level, not
  the delta.
"""

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Increase:
    quantity: int

    def apply(self, current: int) -> int:
        return current + self.quantity


@dataclass(frozen=True)
class Decrease:
    quantity: int

    def apply(self, current: int) -> int:
        return max(0, current - self.quantity)


@dataclass(frozen=True)
class SetTo:
    quantity: int

    def apply(self, current: int) -> int:
        return max(0, self.quantity)


StockDelta = Union[Increase, Decrease, SetTo]

_DELTA_BY_MOVEMENT_TYPE = {
    "in": Increase,
    "out": Decrease,
    "adjustment": SetTo,
}


class StatsBucket(str, Enum):
    SOLD = "sold"
    RETURNED = "returned"
    PURCHASED = "purchased"


def delta_for_movement(movement_type: str, quantity: int) -> StockDelta:
    """Translate the ledger's {type, quantity} shape into a tagged delta."""
    try:
        delta_cls = _DELTA_BY_MOVEMENT_TYPE[movement_type]
    except KeyError:
        raise ValidationError(f"type must be one of: {', '.join(STOCK_MOVEMENT_TYPES)}")
    return delta_cls(quantity)


@dataclass
class StockMutation:
    product: Product
    movement: StockMovement
    stats: StockStats
    previous_quantity: int

    @property
    def new_quantity(self) -> int:
        return self.product.stock_quantity


class InventoryEngine:
    def __init__(
        self,
        session,
        stats: StockStatsService,
        *,
        retry_attempts: int = 3,
        retry_backoff: float = 0.1,
    ):
        self.session = session
        self.stats = stats
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff

    def apply_stock_delta(
        self,
        product_id: str,
        delta: StockDelta,
        *,
        movement_type: str,
        reason: str,
        ledger_quantity: int,
        stats_bucket: StatsBucket | None = None,
        notes: str | None = None,
    ) -> StockMutation:
        """
        Atomically apply one stock event to product, ledger and stats.

        Raises NotFoundError (nothing written) when the product is missing.
        stats_bucket, when given, is incremented by ledger_quantity.
        """
        if ledger_quantity < 1:
            raise ValidationError("quantity must be at least 1")

        def _op():
            product = lock_for_update(
                self.session.query(Product).filter_by(id=product_id)
            ).first()
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")

            previous = product.stock_quantity
            product.stock_quantity = delta.apply(previous)

            movement = StockMovement(
                product_id=product.id,
                product_name=product.product_name,
                sku=product.sku,
                type=movement_type,
                quantity=ledger_quantity,
                reason=reason,
                notes=notes,
                created_at=utcnow(),
            )
            self.session.add(movement)

            stats = self.stats.ensure_for_product(product)
            if stats_bucket is not None:
                bucket = stats_bucket.value
                setattr(stats, bucket, getattr(stats, bucket) + ledger_quantity)
            stats.available = product.stock_quantity
            stats.updated_at = utcnow()

            self.session.commit()
            return StockMutation(
                product=product,
                movement=movement,
                stats=stats,
                previous_quantity=previous,
            )

        try:
            mutation = run_with_retry(
                self.session,
                _op,
                attempts=self.retry_attempts,
                backoff_base=self.retry_backoff,
            )
        except Exception:
            self.session.rollback()
            raise

        logger.debug(
            "Stock %s for product %s: %s -> %s (%s)",
            movement_type, product_id, mutation.previous_quantity, mutation.new_quantity, reason,
        )
        return mutation

    # ------------------------------------------------------------------
    # The four mutation paths
    # ------------------------------------------------------------------

    def record_sale(self, product_id: str, quantity: int, *, order_number: str) -> StockMutation:
        """One order item leaving stock. Clamps at zero; sold += quantity."""
        return self.apply_stock_delta(
            product_id,
            Decrease(quantity),
            movement_type="out",
            reason="sale",
            ledger_quantity=quantity,
            stats_bucket=StatsBucket.SOLD,
            notes=f"Order {order_number}",
        )

    def record_return(self, product_id: str, quantity: int, *, return_number: str) -> StockMutation:
        """One return item coming back into stock. Uncapped; returned += quantity."""
        return self.apply_stock_delta(
            product_id,
            Increase(quantity),
            movement_type="in",
            reason="return",
            ledger_quantity=quantity,
            stats_bucket=StatsBucket.RETURNED,
            notes=f"Return {return_number}",
        )

    def record_movement(
        self,
        product_id: str,
        movement_type: str,
        quantity: int,
        reason: str,
        notes: str | None = None,
    ) -> StockMovement:
        """
        Manual stock movement (receiving, physical count, correction, ...).

        The ledger row keeps type/reason/quantity exactly as supplied. Only a
        'purchase' reason touches a counter (purchased += quantity).
        """
        delta = delta_for_movement(movement_type, quantity)
        bucket = StatsBucket.PURCHASED if reason == "purchase" else None
        mutation = self.apply_stock_delta(
            product_id,
            delta,
            movement_type=movement_type,
            reason=reason,
            ledger_quantity=quantity,
            stats_bucket=bucket,
            notes=notes,
        )
        return mutation.movement

    def initialize_stock(self, product: Product) -> StockStats:
        """Opening stock for a new product. Caller owns the transaction."""
        return self.stats.initialize(product)

    # ------------------------------------------------------------------
    # Ledger reads
    # ------------------------------------------------------------------

    def list_movements(self, product_id: str | None = None, limit: int | None = None) -> list[StockMovement]:
        q = self.session.query(StockMovement)
        if product_id:
            q = q.filter(StockMovement.product_id == product_id)
        q = q.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        if limit is not None:
            q = q.limit(limit)
        return q.all()
