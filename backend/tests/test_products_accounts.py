# Overview: Pytest coverage for the product catalog and the profit/loss account ledger.

from datetime import datetime
from decimal import Decimal

import pytest

from retailops.models import AccountEntry, StockMovement, StockStats
from retailops.time_utils import fiscal_period
from retailops.validation import ConflictError, ValidationError


class TestCreateProduct:
    def test_duplicate_sku_conflicts(self, services, shirt):
        with pytest.raises(ConflictError):
            services.products.create_product({
                "sku": "SHIRT-M", "product_name": "Dupe", "category": "Apparel", "price": Decimal("1.00"),
            })

    def test_sku_required(self, services):
        with pytest.raises(ValidationError):
            services.products.create_product({"product_name": "No SKU", "category": "X", "price": Decimal("1.00")})

    def test_profitable_purchase_projection(self, db_session, shirt):
        entry = db_session.query(AccountEntry).filter_by(product_id=shirt.id).one()

        assert entry.transaction_type == "purchase"
        assert entry.reference_number == "SHIRT-M"
        assert entry.revenue == Decimal("0.00")
        assert entry.cost == Decimal("120.00")
        assert entry.profit == Decimal("80.00")
        assert entry.quantity == 10
        assert entry.notes == "Purchase with potential profit of $8.00 per unit"

        period = fiscal_period(entry.transaction_date)
        assert (entry.fiscal_year, entry.fiscal_month, entry.fiscal_quarter) == period

    def test_loss_projection(self, db_session, make_product):
        product = make_product(price=Decimal("5.00"), cost_price=Decimal("7.50"), stock_quantity=4)

        entry = db_session.query(AccountEntry).filter_by(product_id=product.id).one()
        assert entry.profit == Decimal("-10.00")
        assert entry.notes == "Purchase with potential loss of $2.50 per unit"

    @pytest.mark.parametrize("overrides", [
        {"cost_price": None},
        {"cost_price": Decimal("10.00")},
        {"cost_price": Decimal("4.00"), "stock_quantity": 0},
    ])
    def test_no_projection(self, db_session, make_product, overrides):
        make_product(**overrides)

        assert db_session.query(AccountEntry).count() == 0


class TestProductQueries:
    def test_low_stock_excludes_empty_and_threshold(self, services, make_product):
        make_product(sku="ZERO", stock_quantity=0)
        make_product(sku="LOW", stock_quantity=3)
        make_product(sku="EDGE", stock_quantity=10)

        assert [p.sku for p in services.products.list_low_stock(10)] == ["LOW"]

    def test_lookup_by_sku(self, services, shirt):
        assert services.products.get_product_by_sku("SHIRT-M").id == shirt.id
        assert services.products.get_product_by_sku("NOPE") is None


class TestUpdateAndDelete:
    def test_update_refreshes_stats_snapshot_not_stock(self, services, shirt):
        services.products.update_product(shirt.id, {"product_name": "Tee M", "stock_quantity": 999})

        product = services.products.get_product(shirt.id)
        assert product.product_name == "Tee M"
        assert product.stock_quantity == 10
        assert services.stats.get_by_product(shirt.id).product_name == "Tee M"

    def test_update_to_taken_sku_conflicts(self, services, shirt, jacket):
        with pytest.raises(ConflictError):
            services.products.update_product(jacket.id, {"sku": "SHIRT-M"})

    def test_delete_keeps_history(self, db_session, services, shirt):
        product_id = shirt.id
        services.engine.record_sale(product_id, 1, order_number="ORD-X")

        assert services.products.delete_product(product_id) is True

        assert services.products.get_product(product_id) is None
        assert db_session.query(StockStats).filter_by(product_id=product_id).count() == 0
        assert db_session.query(StockMovement).filter_by(product_id=product_id).count() == 1
        assert db_session.query(AccountEntry).filter_by(product_id=product_id).count() == 1
        assert services.products.delete_product(product_id) is False


class TestAccountLedger:
    def test_manual_entry_defaults_profit(self, services):
        entry = services.accounts.create_entry({
            "transaction_type": "direct_income",
            "revenue": Decimal("100.00"),
            "cost": Decimal("30.00"),
            "transaction_date": datetime(2025, 5, 20, 12, 0),
        })

        assert entry.profit == Decimal("70.00")
        assert (entry.fiscal_year, entry.fiscal_month, entry.fiscal_quarter) == (2025, 5, 2)

    def test_unknown_transaction_type(self, services):
        with pytest.raises(ValidationError):
            services.accounts.create_entry({"transaction_type": "bribe"})

    def test_filters_and_summary(self, services, shirt):
        services.accounts.create_entry({
            "transaction_type": "adjustment",
            "revenue": Decimal("0.00"),
            "cost": Decimal("5.00"),
            "transaction_date": datetime(2024, 12, 31),
        })

        assert len(services.accounts.list_entries(transaction_type="purchase")) == 1
        assert len(services.accounts.list_entries(fiscal_year=2024)) == 1
        assert len(services.accounts.list_entries(fiscal_year=2024, fiscal_month=11)) == 0

        summary = services.accounts.summarize()
        assert summary["by_type"]["purchase"]["profit"] == "80.00"
        assert summary["by_type"]["adjustment"]["profit"] == "-5.00"
        assert summary["totals"]["cost"] == "125.00"

        only_2024 = services.accounts.summarize(fiscal_year=2024)
        assert list(only_2024["by_type"]) == ["adjustment"]
