# Overview: Pytest coverage for the stock statistics cache.

import pytest

from retailops.models import Product, StockStats


class TestStockStatsSeeding:
    def test_create_product_seeds_stats(self, services, shirt):
        stats = services.stats.get_by_product(shirt.id)

        assert stats.product_name == "T-Shirt M"
        assert stats.sku == "SHIRT-M"
        assert stats.category == "Apparel"
        assert stats.available == 10
        assert stats.purchased == 10
        assert stats.sold == 0
        assert stats.returned == 0

    def test_one_row_per_product(self, db_session, services, shirt):
        services.stats.ensure_for_product(shirt)
        services.stats.ensure_for_product(shirt)
        db_session.commit()

        assert db_session.query(StockStats).filter_by(product_id=shirt.id).count() == 1


class TestGetAllReconciles:
    def test_creates_missing_rows_with_zero_purchased(self, db_session, services):
        product = Product(sku="LEGACY", product_name="Legacy", category="Old", price=5, stock_quantity=4)
        db_session.add(product)
        db_session.commit()

        rows = services.stats.get_all()

        assert len(rows) == 1
        assert rows[0].product_id == product.id
        assert rows[0].available == 4
        assert rows[0].purchased == 0

    def test_forces_available_to_live_stock(self, db_session, services, shirt):
        services.stats.update(shirt.id, available=99)
        assert services.stats.get_by_product(shirt.id).available == 99

        rows = services.stats.get_all()

        assert rows[0].available == 10
        # Counters are left alone
        assert rows[0].purchased == 10

    def test_ordered_by_product_name(self, services, make_product):
        make_product(product_name="Zebra Mug")
        make_product(product_name="Apple Mug")

        names = [s.product_name for s in services.stats.get_all()]
        assert names == ["Apple Mug", "Zebra Mug"]


class TestStatsUpdate:
    def test_update_merges_fields(self, services, shirt):
        stats = services.stats.update(shirt.id, sold=4)

        assert stats.sold == 4
        assert stats.available == 10

    def test_update_missing_row_returns_none(self, services):
        assert services.stats.update("missing", sold=1) is None

    def test_update_rejects_unknown_fields(self, services, shirt):
        with pytest.raises(ValueError):
            services.stats.update(shirt.id, product_name="Renamed")
