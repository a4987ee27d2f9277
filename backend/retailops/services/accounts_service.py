# Overview: Profit/loss account ledger; append-only entries with fiscal period breakdown.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..models import AccountEntry, Product
from ..validation import ValidationError, ACCOUNT_TRANSACTION_TYPES, to_money
from retailops.time_utils import fiscal_period, utcnow

"""
Account Ledger Invariants

- Append-only: entries are inserted, never updated or deleted (product
  deletion keeps them).
- profit is signed; a negative value is a loss.
- fiscal_year / fiscal_month / fiscal_quarter come from transaction_date.

Posting policy (kept deliberately narrow):
- Product creation with a cost price posts a 'purchase' entry projecting the
  margin of the opening stock: (price - cost_price) * stock_quantity.
- Sales, returns and stock movements do NOT post entries here. Realized
  sale profit is derived downstream from orders and returns.
"""

ZERO = Decimal("0.00")


class AccountService:
    def __init__(self, session):
        self.session = session

    def _new_entry(self, **fields) -> AccountEntry:
        transaction_date = fields.pop("transaction_date", None) or utcnow()
        period = fiscal_period(transaction_date)
        entry = AccountEntry(
            transaction_date=transaction_date,
            fiscal_year=period.year,
            fiscal_month=period.month,
            fiscal_quarter=period.quarter,
            **fields,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def record_purchase_projection(self, product: Product) -> AccountEntry | None:
        """
        Projected profit/loss for a product's opening stock.

        No entry when there is no cost price, no stock, or price == cost.
        Caller owns the transaction.
        """
        if product.cost_price is None or product.stock_quantity <= 0:
            return None

        price = Decimal(product.price)
        cost_price = Decimal(product.cost_price)
        quantity = product.stock_quantity
        difference = price - cost_price
        if difference == 0:
            return None

        if difference > 0:
            notes = f"Purchase with potential profit of ${difference:.2f} per unit"
        else:
            notes = f"Purchase with potential loss of ${abs(difference):.2f} per unit"

        return self._new_entry(
            transaction_type="purchase",
            reference_id=product.id,
            reference_number=product.sku,
            revenue=ZERO,
            cost=(cost_price * quantity).quantize(Decimal("0.01")),
            profit=(difference * quantity).quantize(Decimal("0.01")),
            product_id=product.id,
            product_name=product.product_name,
            category=product.category,
            quantity=quantity,
            notes=notes,
        )

    def create_entry(self, data: dict) -> AccountEntry:
        """
        Manual entry (direct income, adjustment, ...).

        profit defaults to revenue - cost when not supplied.
        """
        transaction_type = data.get("transaction_type")
        if transaction_type not in ACCOUNT_TRANSACTION_TYPES:
            raise ValidationError(
                f"transaction_type must be one of: {', '.join(ACCOUNT_TRANSACTION_TYPES)}"
            )

        fields = dict(data)
        revenue = to_money(fields.pop("revenue", ZERO), "revenue")
        cost = to_money(fields.pop("cost", ZERO), "cost")
        profit = fields.pop("profit", None)
        profit = revenue - cost if profit is None else to_money(profit, "profit")

        entry = self._new_entry(revenue=revenue, cost=cost, profit=profit, **fields)
        self.session.commit()
        return entry

    def list_entries(
        self,
        *,
        transaction_type: str | None = None,
        fiscal_year: int | None = None,
        fiscal_month: int | None = None,
    ) -> list[AccountEntry]:
        q = self.session.query(AccountEntry)
        if transaction_type:
            q = q.filter(AccountEntry.transaction_type == transaction_type)
        if fiscal_year is not None:
            q = q.filter(AccountEntry.fiscal_year == fiscal_year)
        if fiscal_month is not None:
            q = q.filter(AccountEntry.fiscal_month == fiscal_month)
        return q.order_by(AccountEntry.transaction_date.desc(), AccountEntry.id.desc()).all()

    def summarize(self, *, fiscal_year: int | None = None) -> dict:
        """Revenue, cost and profit totals per transaction type."""
        q = self.session.query(
            AccountEntry.transaction_type,
            func.coalesce(func.sum(AccountEntry.revenue), 0).label("revenue"),
            func.coalesce(func.sum(AccountEntry.cost), 0).label("cost"),
            func.coalesce(func.sum(AccountEntry.profit), 0).label("profit"),
            func.count(AccountEntry.id).label("entries"),
        )
        if fiscal_year is not None:
            q = q.filter(AccountEntry.fiscal_year == fiscal_year)
        rows = q.group_by(AccountEntry.transaction_type).all()

        by_type = {}
        totals = {"revenue": ZERO, "cost": ZERO, "profit": ZERO}
        for row in rows:
            revenue = Decimal(row.revenue).quantize(Decimal("0.01"))
            cost = Decimal(row.cost).quantize(Decimal("0.01"))
            profit = Decimal(row.profit).quantize(Decimal("0.01"))
            by_type[row.transaction_type] = {
                "revenue": f"{revenue:.2f}",
                "cost": f"{cost:.2f}",
                "profit": f"{profit:.2f}",
                "entries": int(row.entries),
            }
            totals["revenue"] += revenue
            totals["cost"] += cost
            totals["profit"] += profit

        return {
            "fiscal_year": fiscal_year,
            "by_type": by_type,
            "totals": {k: f"{v:.2f}" for k, v in totals.items()},
        }
