# Overview: Order capture; snapshots product data into order items and posts sale stock effects.

from __future__ import annotations

import logging
from decimal import Decimal

from ..models import Order, OrderItem, Product
from ..validation import NotFoundError, ValidationError, to_money
from retailops.time_utils import utcnow
from .document_numbers import next_document_number
from .inventory_engine import InventoryEngine

"""
Order Invariants

- An order has 1..N items. Each item snapshots product_id, product_name, sku
  and unit_price at sale time; subtotal = quantity * unit_price.
- total_amount = sum of item subtotals (computed here, never client-supplied).
- Every item references an existing product; this is checked for ALL items
  before anything is written.

Stock effects:
- After the order is stored, each item is applied to stock one at a time
  (InventoryEngine.record_sale), each in its own transaction. A failure
  partway through leaves the earlier items' stock effects in place.
- Editing order metadata never re-applies stock effects; deleting an order
  never restores stock.
"""

logger = logging.getLogger(__name__)

ORDER_METADATA_FIELDS = {
    "customer_name", "customer_email", "customer_phone",
    "status", "payment_method", "notes",
}


class OrderService:
    def __init__(self, session, engine: InventoryEngine):
        self.session = session
        self.engine = engine

    def list_orders(self) -> list[Order]:
        return self.session.query(Order).order_by(Order.created_at.desc(), Order.id.asc()).all()

    def get_order(self, order_id: str) -> Order | None:
        return self.session.get(Order, order_id)

    def list_orders_by_customer_email(self, email: str) -> list[Order]:
        return (
            self.session.query(Order)
            .filter(Order.customer_email == email)
            .order_by(Order.created_at.desc(), Order.id.asc())
            .all()
        )

    def _build_items(self, items: list[dict]) -> list[OrderItem]:
        if not items:
            raise ValidationError("Order must have at least one item")

        built = []
        for position, item in enumerate(items):
            product_id = item.get("product_id")
            if not product_id:
                raise ValidationError("product_id is required for every item")

            quantity = item.get("quantity")
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise ValidationError("Quantity must be at least 1")

            product = self.session.get(Product, product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")

            raw_price = item.get("unit_price")
            unit_price = product.price if raw_price is None else to_money(raw_price, "unit_price")
            unit_price = Decimal(unit_price)
            if unit_price < 0:
                raise ValidationError("unit_price must be >= 0")

            built.append(OrderItem(
                position=position,
                product_id=product.id,
                product_name=item.get("product_name") or product.product_name,
                sku=item.get("sku") or product.sku,
                quantity=quantity,
                unit_price=unit_price,
                subtotal=(unit_price * quantity).quantize(Decimal("0.01")),
            ))
        return built

    def create_order(self, order_data: dict, items: list[dict]) -> Order:
        """
        Create an order with its items, then post one sale per item.

        Raises:
            ValidationError: no items or malformed item
            NotFoundError: an item references a missing product
        """
        if not order_data.get("customer_name"):
            raise ValidationError("Customer name is required")

        order_items = self._build_items(items)

        order = Order(
            order_number=next_document_number(self.session, Order, "order_number", "ORD"),
            customer_name=order_data["customer_name"],
            customer_email=order_data.get("customer_email"),
            customer_phone=order_data.get("customer_phone"),
            status=order_data.get("status") or "pending",
            payment_method=order_data.get("payment_method") or "cash",
            notes=order_data.get("notes"),
            total_amount=sum((i.subtotal for i in order_items), Decimal("0.00")),
            created_at=utcnow(),
        )
        order.items = order_items

        try:
            self.session.add(order)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        order_id = order.id
        order_number = order.order_number
        sale_lines = [(i.product_id, i.quantity) for i in order.items]

        # Sequential, one transaction per item; no order-wide rollback
        for product_id, quantity in sale_lines:
            self.engine.record_sale(product_id, quantity, order_number=order_number)

        logger.info("Created order %s with %d item(s)", order_number, len(sale_lines))
        return self.session.get(Order, order_id)

    def update_order(self, order_id: str, patch: dict) -> Order | None:
        """Metadata-only edit; items and stock are untouched."""
        order = self.get_order(order_id)
        if order is None:
            return None

        for k, v in patch.items():
            if k in ORDER_METADATA_FIELDS:
                setattr(order, k, v)

        self.session.commit()
        return order

    def delete_order(self, order_id: str) -> bool:
        order = self.get_order(order_id)
        if order is None:
            return False
        self.session.delete(order)
        self.session.commit()
        return True
