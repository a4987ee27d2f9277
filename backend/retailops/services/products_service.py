# Overview: Product repository; catalog CRUD, opening stock and purchase projection.

from __future__ import annotations

import logging

from ..models import Product
from ..validation import ConflictError, NotFoundError, ValidationError
from .accounts_service import AccountService
from .inventory_engine import InventoryEngine
from .stock_stats_service import StockStatsService

logger = logging.getLogger(__name__)

# stock_quantity is only settable at creation; afterwards it moves through the engine
PRODUCT_MUTABLE_FIELDS = {
    "sku", "product_name", "category", "brand", "description",
    "price", "cost_price", "warehouse",
}


def apply_product_patch(p: Product, patch: dict, allowed: set[str] = PRODUCT_MUTABLE_FIELDS) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(p, k, v)


class ProductService:
    """
    Catalog operations.

    DELETION:
    Deleting a product removes the product row and its stats row only.
    Stock movements, order items, return items and account entries keep
    their snapshots (product_id, name, sku) and are never cascaded.
    """

    def __init__(
        self,
        session,
        engine: InventoryEngine,
        stats: StockStatsService,
        accounts: AccountService,
    ):
        self.session = session
        self.engine = engine
        self.stats = stats
        self.accounts = accounts

    def list_products(self) -> list[Product]:
        return (
            self.session.query(Product)
            .order_by(Product.product_name.asc(), Product.id.asc())
            .all()
        )

    def get_product(self, product_id: str) -> Product | None:
        return self.session.get(Product, product_id)

    def require_product(self, product_id: str) -> Product:
        product = self.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def get_product_by_sku(self, sku: str) -> Product | None:
        return self.session.query(Product).filter(Product.sku == sku).first()

    def list_low_stock(self, threshold: int = 10) -> list[Product]:
        """In-stock products running low: 0 < stock_quantity < threshold."""
        return (
            self.session.query(Product)
            .filter(Product.stock_quantity > 0, Product.stock_quantity < threshold)
            .order_by(Product.stock_quantity.asc(), Product.product_name.asc())
            .all()
        )

    def create_product(self, patch: dict) -> Product:
        """
        Create product from a validated patch dict.

        In the same transaction:
        - stats row seeded with the opening stock (purchased = available)
        - 'purchase' account entry projecting margin, when cost_price is set

        Raises:
            ValidationError: missing sku
            ConflictError: SKU already exists
        """
        sku = patch.get("sku")
        if not sku:
            raise ValidationError("sku is required")

        if self.get_product_by_sku(sku) is not None:
            raise ConflictError("Product with this SKU already exists")

        p = Product(stock_quantity=patch.get("stock_quantity") or 0)
        apply_product_patch(p, patch)

        try:
            self.session.add(p)
            self.session.flush()  # ensure p.id exists before stats/accounts

            self.engine.initialize_stock(p)
            self.accounts.record_purchase_projection(p)

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info("Created product %s (sku=%s, stock=%s)", p.id, p.sku, p.stock_quantity)
        return p

    def update_product(self, product_id: str, patch: dict) -> Product | None:
        """
        Update catalog fields. stock_quantity is ignored here.

        Returns None if the product does not exist.
        """
        p = self.get_product(product_id)
        if p is None:
            return None

        if "sku" in patch and patch["sku"] != p.sku:
            existing = self.get_product_by_sku(patch["sku"])
            if existing is not None and existing.id != p.id:
                raise ConflictError("Product with this SKU already exists")

        apply_product_patch(p, patch)

        stats = self.stats.get_by_product(p.id)
        if stats is not None:
            stats.product_name = p.product_name
            stats.sku = p.sku
            stats.category = p.category

        self.session.commit()
        return p

    def delete_product(self, product_id: str) -> bool:
        """Hard delete. Returns False if not found."""
        p = self.get_product(product_id)
        if p is None:
            return False

        sku = p.sku
        self.stats.delete_for_product(p.id)
        self.session.delete(p)
        self.session.commit()

        logger.info("Deleted product %s (sku=%s); history preserved", product_id, sku)
        return True
