"""
Return & Exchange Service

WHY: A return puts goods back on the shelf and settles money with the
customer in exactly one of three ways, decided once at creation time:

- refund:              nothing taken in exchange; give back the return value
- store credit:        exchange worth less than the return; issue a code
- additional payment:  exchange worth more than the return; customer owes

DESIGN PRINCIPLES:
- Returns reference the original order; returned quantity per product can
  never exceed what was ordered (counting earlier returns on the same order)
- Unit prices come from the order's snapshot, not the live catalog
- Exchange items are valued at the exchange product's current price
- The financial outcome is snapshotted on the Return and never recomputed
- Stock is restored item by item through the inventory engine
- Store credit minting and the customer notification are best-effort: their
  failure is logged and the return still stands
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func

from ..models import Order, OrderItem, Product, Return, ReturnItem
from ..validation import NotFoundError, ValidationError
from retailops.time_utils import days_from_now, utcnow
from .discount_service import DiscountCodeService
from .document_numbers import next_document_number
from .inventory_engine import InventoryEngine
from .notifications import Notifier

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

RETURN_METADATA_FIELDS = {"status", "reason", "payment_method", "notes", "customer_name", "customer_email"}


# =============================================================================
# FINANCIAL COMPUTATION
# =============================================================================

@dataclass(frozen=True)
class ReturnLine:
    quantity: int
    unit_price: Decimal
    exchange_price: Decimal | None = None


@dataclass(frozen=True)
class ReturnFinancials:
    return_value: Decimal
    exchange_value: Decimal
    refund: Decimal
    credit: Decimal
    additional_payment: Decimal


def compute_return_financials(lines: list[ReturnLine]) -> ReturnFinancials:
    """
    Settle a return. Exactly one of refund / credit / additional_payment is
    non-zero, or all three are zero for an even exchange.
    """
    return_value = sum(
        (Decimal(line.unit_price) * line.quantity for line in lines if line.quantity > 0),
        ZERO,
    )
    exchange_value = sum(
        (Decimal(line.exchange_price) * line.quantity for line in lines if line.exchange_price is not None),
        ZERO,
    )
    return_value = return_value.quantize(CENT)
    exchange_value = exchange_value.quantize(CENT)

    refund = credit = additional = ZERO
    if exchange_value == 0:
        refund = return_value
    else:
        difference = return_value - exchange_value
        if difference > 0:
            credit = difference
        elif difference < 0:
            additional = -difference

    return ReturnFinancials(
        return_value=return_value,
        exchange_value=exchange_value,
        refund=refund,
        credit=credit,
        additional_payment=additional,
    )


# =============================================================================
# RETURN SERVICE
# =============================================================================

class ReturnService:
    def __init__(
        self,
        session,
        engine: InventoryEngine,
        discounts: DiscountCodeService,
        notifier: Notifier,
        *,
        credit_valid_days: int = 365,
    ):
        self.session = session
        self.engine = engine
        self.discounts = discounts
        self.notifier = notifier
        self.credit_valid_days = credit_valid_days

    def list_returns(self) -> list[Return]:
        return self.session.query(Return).order_by(Return.created_at.desc(), Return.id.asc()).all()

    def get_return(self, return_id: str) -> Return | None:
        return self.session.get(Return, return_id)

    def _already_returned(self, order_id: str) -> dict[str, int]:
        # Every stored return restocked its items, whatever its status now
        rows = (
            self.session.query(ReturnItem.product_id, func.sum(ReturnItem.quantity))
            .join(Return, Return.id == ReturnItem.return_id)
            .filter(Return.order_id == order_id)
            .group_by(ReturnItem.product_id)
            .all()
        )
        return {product_id: int(qty or 0) for product_id, qty in rows}

    def _build_items(self, order: Order, items: list[dict]) -> tuple[list[ReturnItem], list[ReturnLine]]:
        """
        Validate the selection against the order and build item snapshots.

        Items with quantity 0 are unselected and skipped.
        """
        ordered: dict[str, int] = defaultdict(int)
        order_lines: dict[str, OrderItem] = {}
        for oi in order.items:
            ordered[oi.product_id] += oi.quantity
            order_lines.setdefault(oi.product_id, oi)

        already = self._already_returned(order.id)
        requested: dict[str, int] = defaultdict(int)

        return_items: list[ReturnItem] = []
        lines: list[ReturnLine] = []

        for item in items:
            product_id = item.get("product_id")
            quantity = item.get("quantity", 0)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
                raise ValidationError("quantity must be a non-negative integer")
            if quantity == 0:
                continue

            order_line = order_lines.get(product_id)
            if order_line is None:
                raise ValidationError(f"Product {product_id} is not part of order {order.order_number}")

            requested[product_id] += quantity
            available = ordered[product_id] - already.get(product_id, 0)
            if requested[product_id] > available:
                raise ValidationError(
                    f"Cannot return {requested[product_id]} unit(s) of {order_line.sku}. "
                    f"Ordered: {ordered[product_id]}, already returned: {already.get(product_id, 0)}"
                )

            if self.session.get(Product, product_id) is None:
                raise NotFoundError(f"Product {product_id} not found")

            exchange_product = None
            exchange_id = item.get("exchange_product_id") or None
            if exchange_id:
                exchange_product = self.session.get(Product, exchange_id)
                if exchange_product is None:
                    raise NotFoundError(f"Exchange product {exchange_id} not found")

            unit_price = Decimal(order_line.unit_price)
            return_items.append(ReturnItem(
                position=len(return_items),
                product_id=product_id,
                product_name=order_line.product_name,
                sku=order_line.sku,
                quantity=quantity,
                unit_price=unit_price,
                subtotal=(unit_price * quantity).quantize(CENT),
                exchange_product_id=exchange_product.id if exchange_product else None,
                exchange_product_name=exchange_product.product_name if exchange_product else None,
            ))
            lines.append(ReturnLine(
                quantity=quantity,
                unit_price=unit_price,
                exchange_price=Decimal(exchange_product.price) if exchange_product else None,
            ))

        return return_items, lines

    def create_return(self, return_data: dict, items: list[dict]) -> Return:
        """
        Create a return against an order, restock items and settle money.

        Raises:
            NotFoundError: order, returned product or exchange product missing
            ValidationError: bad selection, or nothing of value returned
        """
        order_id = return_data.get("order_id")
        order = self.session.get(Order, order_id) if order_id else None
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        if not return_data.get("reason"):
            raise ValidationError("Return reason is required")

        return_items, lines = self._build_items(order, items or [])

        financials = compute_return_financials(lines)
        if financials.return_value <= 0:
            raise ValidationError("Return must include at least one item with a positive value")

        return_doc = Return(
            return_number=next_document_number(self.session, Return, "return_number", "RET", suffix_len=9),
            order_id=order.id,
            order_number=order.order_number,
            customer_name=return_data.get("customer_name") or order.customer_name,
            customer_email=return_data.get("customer_email") or order.customer_email,
            status="pending",
            reason=return_data["reason"],
            payment_method=return_data.get("payment_method") or "cash",
            notes=return_data.get("notes"),
            return_value=financials.return_value,
            refund_amount=financials.refund,
            credit_amount=financials.credit,
            exchange_value=financials.exchange_value,
            additional_payment=financials.additional_payment,
            created_at=utcnow(),
        )
        return_doc.items = return_items

        try:
            self.session.add(return_doc)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        return_id = return_doc.id
        return_number = return_doc.return_number
        customer_email = return_doc.customer_email
        restock = [(i.product_id, i.quantity) for i in return_doc.items]

        for product_id, quantity in restock:
            self.engine.record_return(product_id, quantity, return_number=return_number)

        if financials.credit > 0 and customer_email:
            self._issue_store_credit(customer_email, financials.credit, return_number)
        elif financials.credit > 0:
            logger.info("Return %s has credit %s but no customer email; no code issued", return_number, financials.credit)

        if financials.additional_payment > 0:
            logger.info(
                "Return %s: customer %s owes additional payment %s",
                return_number, customer_email, financials.additional_payment,
            )

        return self.session.get(Return, return_id)

    def _issue_store_credit(self, customer_email: str, amount: Decimal, return_number: str) -> None:
        expires_at = days_from_now(self.credit_valid_days)
        try:
            discount = self.discounts.create(customer_email, amount, expires_at)
        except Exception:
            self.session.rollback()
            logger.exception("Failed to create store credit for return %s", return_number)
            return

        code = discount.code
        try:
            self.notifier.send_store_credit(customer_email, code, amount, expires_at)
        except Exception:
            logger.exception("Failed to send store credit %s for return %s", code, return_number)

    def update_return(self, return_id: str, patch: dict) -> Return | None:
        """Metadata-only edit; financials and stock are never recomputed."""
        return_doc = self.get_return(return_id)
        if return_doc is None:
            return None

        for k, v in patch.items():
            if k in RETURN_METADATA_FIELDS:
                setattr(return_doc, k, v)

        self.session.commit()
        return return_doc
