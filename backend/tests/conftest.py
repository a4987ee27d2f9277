"""
Pytest fixtures for retailops backend tests.

Provides the application, a clean database per test, a service registry
bound to the test session, and a few catalog builders.
"""

from decimal import Decimal

import pytest
from retailops import create_app
from retailops.extensions import db
from retailops.services.notifications import LoggingNotifier
from retailops.services.registry import build_services


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STOCK_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session()

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def notifier():
    return LoggingNotifier()


@pytest.fixture(scope='function')
def services(app, db_session, notifier):
    """Service registry bound to the test session with a recording notifier."""
    return build_services(db_session, app.config, notifier)


@pytest.fixture(scope='function')
def make_product(services):
    """Factory: create a product through the catalog service."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "sku": f"SKU-{counter['n']:03d}",
            "product_name": f"Product {counter['n']}",
            "category": "General",
            "price": Decimal("10.00"),
            "stock_quantity": 10,
        }
        data.update(overrides)
        return services.products.create_product(data)

    return _make


@pytest.fixture(scope='function')
def shirt(make_product):
    """Product priced 20.00 with 10 units and a cost price of 12.00."""
    return make_product(
        sku="SHIRT-M",
        product_name="T-Shirt M",
        category="Apparel",
        price=Decimal("20.00"),
        cost_price=Decimal("12.00"),
        stock_quantity=10,
    )


@pytest.fixture(scope='function')
def jacket(make_product):
    """Product priced 50.00 with 5 units."""
    return make_product(
        sku="JACKET-L",
        product_name="Jacket L",
        category="Apparel",
        price=Decimal("50.00"),
        stock_quantity=5,
    )


@pytest.fixture(scope='function')
def create_product_json(client, db_session):
    """Factory: create a product over HTTP and return the JSON body."""

    def _create(**overrides):
        body = {
            "sku": "HTTP-001",
            "product_name": "HTTP Product",
            "category": "General",
            "price": "49.90",
            "stock_quantity": 10,
        }
        body.update(overrides)
        response = client.post('/api/products', json=body)
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    return _create
