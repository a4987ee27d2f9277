# Overview: Pytest coverage for the inventory mutation engine and stock ledger.

"""
Inventory Engine Tests

Every stock change must update product stock, append exactly one ledger
row and keep the stats row in step, or write nothing at all.
"""

from decimal import Decimal

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from retailops import create_app
from retailops.extensions import db
from retailops.models import Product, StockMovement, StockStats
from retailops.services.registry import build_services
from retailops.services.inventory_engine import (
    Decrease,
    Increase,
    SetTo,
    delta_for_movement,
)
from retailops.validation import NotFoundError, ValidationError


def _movements(db_session, product_id):
    return db_session.query(StockMovement).filter_by(product_id=product_id).all()


class TestStockDeltas:
    def test_increase_adds(self):
        assert Increase(3).apply(7) == 10

    def test_decrease_clamps_at_zero(self):
        assert Decrease(5).apply(3) == 0
        assert Decrease(2).apply(3) == 1

    def test_set_to_ignores_current(self):
        assert SetTo(4).apply(100) == 4

    def test_movement_type_mapping(self):
        assert delta_for_movement("in", 2) == Increase(2)
        assert delta_for_movement("out", 2) == Decrease(2)
        assert delta_for_movement("adjustment", 2) == SetTo(2)

    def test_unknown_movement_type_rejected(self):
        with pytest.raises(ValidationError):
            delta_for_movement("transfer", 2)


class TestRecordSale:
    def test_sale_decrements_and_ledgers(self, db_session, services, shirt):
        mutation = services.engine.record_sale(shirt.id, 3, order_number="ORD-1")

        assert mutation.previous_quantity == 10
        assert mutation.new_quantity == 7
        assert db_session.get(Product, shirt.id).stock_quantity == 7

        movements = _movements(db_session, shirt.id)
        assert len(movements) == 1
        assert movements[0].type == "out"
        assert movements[0].reason == "sale"
        assert movements[0].quantity == 3
        assert movements[0].notes == "Order ORD-1"
        assert movements[0].sku == "SHIRT-M"

        stats = services.stats.get_by_product(shirt.id)
        assert stats.available == 7
        assert stats.sold == 3

    def test_oversell_clamps_but_counts_full_quantity(self, db_session, services, shirt):
        services.engine.record_sale(shirt.id, 15, order_number="ORD-2")

        assert db_session.get(Product, shirt.id).stock_quantity == 0
        stats = services.stats.get_by_product(shirt.id)
        assert stats.available == 0
        assert stats.sold == 15
        assert _movements(db_session, shirt.id)[0].quantity == 15

    def test_missing_product_writes_nothing(self, db_session, services):
        with pytest.raises(NotFoundError):
            services.engine.record_sale("no-such-product", 1, order_number="ORD-3")

        assert db_session.query(StockMovement).count() == 0
        assert db_session.query(StockStats).count() == 0


class TestRecordReturn:
    def test_return_increments_uncapped(self, db_session, services, shirt):
        services.engine.record_return(shirt.id, 25, return_number="RET-1")

        assert db_session.get(Product, shirt.id).stock_quantity == 35
        stats = services.stats.get_by_product(shirt.id)
        assert stats.available == 35
        assert stats.returned == 25

        movement = _movements(db_session, shirt.id)[0]
        assert movement.type == "in"
        assert movement.reason == "return"
        assert movement.notes == "Return RET-1"


class TestRecordMovement:
    def test_purchase_in_bumps_purchased(self, db_session, services, shirt):
        services.engine.record_movement(shirt.id, "in", 5, "purchase")

        stats = services.stats.get_by_product(shirt.id)
        assert db_session.get(Product, shirt.id).stock_quantity == 15
        assert stats.available == 15
        assert stats.purchased == 15  # opening 10 + 5

    def test_other_reasons_touch_available_only(self, services, shirt):
        services.engine.record_movement(shirt.id, "out", 4, "damaged")

        stats = services.stats.get_by_product(shirt.id)
        assert stats.available == 6
        assert stats.sold == 0
        assert stats.returned == 0
        assert stats.purchased == 10

    def test_adjustment_sets_absolute_level(self, db_session, services, shirt):
        movement = services.engine.record_movement(shirt.id, "adjustment", 3, "count", notes="cycle count")

        assert db_session.get(Product, shirt.id).stock_quantity == 3
        assert services.stats.get_by_product(shirt.id).available == 3
        # The ledger keeps the target level as supplied
        assert movement.type == "adjustment"
        assert movement.quantity == 3
        assert movement.notes == "cycle count"

    def test_quantity_must_be_positive(self, db_session, services, shirt):
        with pytest.raises(ValidationError):
            services.engine.record_movement(shirt.id, "in", 0, "purchase")
        assert _movements(db_session, shirt.id) == []

    def test_missing_stats_row_is_recreated(self, db_session, services, shirt):
        services.stats.delete_for_product(shirt.id)
        db_session.commit()

        services.engine.record_movement(shirt.id, "in", 2, "restock")

        stats = services.stats.get_by_product(shirt.id)
        assert stats.available == 12
        assert stats.purchased == 0


class TestLedger:
    def test_list_movements_newest_first_and_filtered(self, services, shirt, jacket):
        services.engine.record_movement(shirt.id, "in", 1, "restock")
        services.engine.record_movement(jacket.id, "in", 2, "restock")
        services.engine.record_movement(shirt.id, "out", 1, "damaged")

        all_movements = services.engine.list_movements()
        assert len(all_movements) == 3

        shirt_movements = services.engine.list_movements(product_id=shirt.id)
        assert {m.product_id for m in shirt_movements} == {shirt.id}
        assert len(shirt_movements) == 2

        assert len(services.engine.list_movements(limit=1)) == 1

    def test_product_creation_is_not_ledgered(self, services, shirt):
        assert services.engine.list_movements(product_id=shirt.id) == []


class TestConcurrencyRetry:
    def test_stale_write_is_retried_once(self, db_session, services, shirt, monkeypatch):
        original = services.stats.ensure_for_product
        calls = {"n": 0}

        def flaky(product):
            calls["n"] += 1
            if calls["n"] == 1:
                raise StaleDataError("products row changed underneath us")
            return original(product)

        monkeypatch.setattr(services.stats, "ensure_for_product", flaky)

        services.engine.record_sale(shirt.id, 2, order_number="ORD-RETRY")

        assert calls["n"] == 2
        assert db_session.get(Product, shirt.id).stock_quantity == 8
        assert len(_movements(db_session, shirt.id)) == 1
        assert services.stats.get_by_product(shirt.id).sold == 2

    def test_retries_exhausted_writes_nothing(self, db_session, services, shirt, monkeypatch):
        def always_stale(product):
            raise StaleDataError("products row changed underneath us")

        monkeypatch.setattr(services.stats, "ensure_for_product", always_stale)

        with pytest.raises(StaleDataError):
            services.engine.record_sale(shirt.id, 2, order_number="ORD-STALE")

        assert db_session.get(Product, shirt.id).stock_quantity == 10
        assert _movements(db_session, shirt.id) == []


@pytest.fixture
def file_app(tmp_path):
    """Application on a file-backed SQLite database so two sessions use separate connections."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'stock.sqlite3'}",
        'STOCK_RETRY_BACKOFF': 0,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


class TestConcurrentWriters:
    def test_second_writer_does_not_lose_update(self, file_app):
        services = build_services(db.session, file_app.config)
        product = services.products.create_product({
            "sku": "RACE-1", "product_name": "Race", "category": "General",
            "price": Decimal("10.00"), "stock_quantity": 10,
        })
        product_id = product.id

        # First session holds a copy read before the other writer commits
        stale = db.session.get(Product, product_id)
        assert stale.stock_quantity == 10
        assert stale.version_id == 1

        with Session(db.engine) as other:
            other_services = build_services(other, file_app.config)
            other_services.engine.record_sale(product_id, 3, order_number="ORD-OTHER")

        services.engine.record_sale(product_id, 2, order_number="ORD-MINE")

        db.session.expire_all()
        assert db.session.get(Product, product_id).stock_quantity == 5
        assert services.stats.get_by_product(product_id).sold == 5
        assert len(services.engine.list_movements(product_id=product_id)) == 2
