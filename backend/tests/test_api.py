# Overview: Pytest coverage for the JSON HTTP surface and its status codes.

"""
API Tests

Exercises every blueprint through the Flask test client: money travels as
2-decimal strings, ids as opaque strings, and errors as {"error": ...}
with the matching status code.
"""

import pytest


class TestSystem:
    def test_health(self, client, db_session):
        response = client.get('/api/health')

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "ok"
        assert body["checks"]["database"]["status"] == "healthy"


class TestProductsAPI:
    def test_create_and_fetch(self, client, create_product_json):
        product = create_product_json(cost_price="30.00")

        assert product["price"] == "49.90"
        assert product["stock_quantity"] == 10

        response = client.get(f'/api/products/{product["id"]}')
        assert response.status_code == 200
        assert response.get_json()["sku"] == "HTTP-001"

        listed = client.get('/api/products').get_json()
        assert [p["id"] for p in listed] == [product["id"]]

    def test_missing_required_fields(self, client, db_session):
        response = client.post('/api/products', json={"sku": "X"})

        assert response.status_code == 400
        assert "Missing required fields" in response.get_json()["error"]

    def test_negative_price(self, client, db_session):
        response = client.post('/api/products', json={
            "sku": "NEG", "product_name": "Neg", "category": "X", "price": "-1.00",
        })
        assert response.status_code == 400

    def test_duplicate_sku(self, client, create_product_json):
        create_product_json()
        response = client.post('/api/products', json={
            "sku": "HTTP-001", "product_name": "Again", "category": "X", "price": "1.00",
        })

        assert response.status_code == 409
        assert response.get_json()["error"] == "Product with this SKU already exists"

    def test_patch_cannot_set_stock(self, client, create_product_json):
        product = create_product_json()

        response = client.patch(f'/api/products/{product["id"]}', json={"stock_quantity": 99})
        assert response.status_code == 400

        response = client.patch(f'/api/products/{product["id"]}', json={"price": "55.00"})
        assert response.status_code == 200
        assert response.get_json()["price"] == "55.00"

    def test_delete(self, client, create_product_json):
        product = create_product_json()

        assert client.delete(f'/api/products/{product["id"]}').status_code == 204
        assert client.get(f'/api/products/{product["id"]}').status_code == 404
        assert client.delete(f'/api/products/{product["id"]}').status_code == 404


class TestInventoryAPI:
    def test_movement_updates_stock_and_stats(self, client, create_product_json):
        product = create_product_json()

        response = client.post('/api/stock-movements', json={
            "product_id": product["id"], "type": "in", "quantity": 5, "reason": "purchase",
        })
        assert response.status_code == 201
        movement = response.get_json()
        assert movement["sku"] == "HTTP-001"
        assert movement["quantity"] == 5

        assert client.get(f'/api/products/{product["id"]}').get_json()["stock_quantity"] == 15

        stats = client.get(f'/api/stock-stats/{product["id"]}').get_json()
        assert stats["available"] == 15
        assert stats["purchased"] == 15

        history = client.get(f'/api/stock-movements?product_id={product["id"]}').get_json()
        assert len(history) == 1

    def test_movement_validation(self, client, create_product_json):
        product = create_product_json()

        bad_type = client.post('/api/stock-movements', json={
            "product_id": product["id"], "type": "teleport", "quantity": 1, "reason": "x",
        })
        assert bad_type.status_code == 400

        zero = client.post('/api/stock-movements', json={
            "product_id": product["id"], "type": "in", "quantity": 0, "reason": "x",
        })
        assert zero.status_code == 400

        missing = client.post('/api/stock-movements', json={
            "product_id": "nope", "type": "in", "quantity": 1, "reason": "x",
        })
        assert missing.status_code == 404

    def test_stats_listing_and_low_stock(self, client, create_product_json):
        create_product_json(sku="LOW-1", stock_quantity=2)
        create_product_json(sku="FULL-1", stock_quantity=50)

        stats = client.get('/api/stock-stats').get_json()
        assert len(stats) == 2

        low = client.get('/api/stock-movements/low-stock').get_json()
        assert [p["sku"] for p in low] == ["LOW-1"]

        low_custom = client.get('/api/stock-movements/low-stock?threshold=100').get_json()
        assert len(low_custom) == 2

    def test_stats_not_found(self, client, db_session):
        assert client.get('/api/stock-stats/nope').status_code == 404


class TestOrdersAPI:
    def test_create_ignores_client_totals(self, client, create_product_json):
        product = create_product_json()

        response = client.post('/api/orders', json={
            "customer_name": "Jane Doe",
            "customer_email": "jane@example.com",
            "total_amount": "1.00",
            "items": [{"product_id": product["id"], "quantity": 2, "subtotal": "1.00"}],
        })

        assert response.status_code == 201
        order = response.get_json()
        assert order["total_amount"] == "99.80"
        assert order["items"][0]["subtotal"] == "99.80"

        by_email = client.get('/api/orders/customer/jane@example.com').get_json()
        assert [o["id"] for o in by_email] == [order["id"]]

        assert client.get(f'/api/products/{product["id"]}').get_json()["stock_quantity"] == 8

    def test_unknown_product(self, client, db_session):
        response = client.post('/api/orders', json={
            "customer_name": "Jane Doe",
            "items": [{"product_id": "nope", "quantity": 1}],
        })
        assert response.status_code == 404

    def test_no_items(self, client, db_session):
        response = client.post('/api/orders', json={"customer_name": "Jane Doe", "items": []})
        assert response.status_code == 400

    def test_patch_and_delete(self, client, create_product_json):
        product = create_product_json()
        order = client.post('/api/orders', json={
            "customer_name": "Jane Doe",
            "items": [{"product_id": product["id"], "quantity": 1}],
        }).get_json()

        patched = client.patch(f'/api/orders/{order["id"]}', json={"status": "shipped"})
        assert patched.status_code == 200
        assert patched.get_json()["status"] == "shipped"

        assert client.patch(f'/api/orders/{order["id"]}', json={"status": "lost"}).status_code == 400
        assert client.delete(f'/api/orders/{order["id"]}').status_code == 204
        assert client.get(f'/api/orders/{order["id"]}').status_code == 404


@pytest.fixture
def sold_order(client, create_product_json):
    """An order for 2 x SHIRT (20.00) plus the JACKET (50.00) product on the shelf."""
    shirt = create_product_json(sku="SHIRT", product_name="Shirt", price="20.00")
    jacket = create_product_json(sku="JACKET", product_name="Jacket", price="50.00")
    order = client.post('/api/orders', json={
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "items": [{"product_id": shirt["id"], "quantity": 2}],
    }).get_json()
    return order, shirt, jacket


class TestReturnsAPI:
    def test_refund(self, client, sold_order):
        order, shirt, _ = sold_order

        response = client.post('/api/returns', json={
            "order_id": order["id"],
            "reason": "Too small",
            "refund_amount": "999.00",
            "items": [{"product_id": shirt["id"], "quantity": 1}],
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body["refund_amount"] == "20.00"
        assert body["items"][0]["unit_price"] == "20.00"

        assert client.get(f'/api/returns/{body["id"]}').status_code == 200
        assert len(client.get('/api/returns').get_json()) == 1

    def test_upgrade_exchange_owes_payment(self, client, sold_order):
        order, shirt, jacket = sold_order

        body = client.post('/api/returns', json={
            "order_id": order["id"],
            "reason": "Changed mind",
            "items": [{"product_id": shirt["id"], "quantity": 1, "exchange_product_id": jacket["id"]}],
        }).get_json()

        assert body["additional_payment"] == "30.00"
        assert body["credit_amount"] == "0.00"

    def test_errors(self, client, sold_order):
        order, shirt, _ = sold_order

        too_many = client.post('/api/returns', json={
            "order_id": order["id"], "reason": "x",
            "items": [{"product_id": shirt["id"], "quantity": 3}],
        })
        assert too_many.status_code == 400

        no_order = client.post('/api/returns', json={
            "order_id": "nope", "reason": "x",
            "items": [{"product_id": shirt["id"], "quantity": 1}],
        })
        assert no_order.status_code == 404

        no_reason = client.post('/api/returns', json={
            "order_id": order["id"],
            "items": [{"product_id": shirt["id"], "quantity": 1}],
        })
        assert no_reason.status_code == 400

    def test_patch_status(self, client, sold_order):
        order, shirt, _ = sold_order
        created = client.post('/api/returns', json={
            "order_id": order["id"], "reason": "x",
            "items": [{"product_id": shirt["id"], "quantity": 1}],
        }).get_json()

        response = client.patch(f'/api/returns/{created["id"]}', json={"status": "approved"})
        assert response.status_code == 200
        assert response.get_json()["status"] == "approved"
        assert client.patch('/api/returns/nope', json={"status": "approved"}).status_code == 404

    def test_status_is_not_settable_on_create(self, client, sold_order):
        order, shirt, _ = sold_order

        response = client.post('/api/returns', json={
            "order_id": order["id"], "reason": "x", "status": "rejected",
            "items": [{"product_id": shirt["id"], "quantity": 1}],
        })

        assert response.status_code == 400
        assert client.get(f'/api/products/{shirt["id"]}').get_json()["stock_quantity"] == 8

    def test_rejecting_does_not_reopen_quantity(self, client, sold_order):
        order, shirt, _ = sold_order
        created = client.post('/api/returns', json={
            "order_id": order["id"], "reason": "x",
            "items": [{"product_id": shirt["id"], "quantity": 2}],
        }).get_json()
        client.patch(f'/api/returns/{created["id"]}', json={"status": "rejected"})

        again = client.post('/api/returns', json={
            "order_id": order["id"], "reason": "x",
            "items": [{"product_id": shirt["id"], "quantity": 1}],
        })

        assert again.status_code == 400
        assert client.get(f'/api/products/{shirt["id"]}').get_json()["stock_quantity"] == 10


class TestDiscountCodesAPI:
    def test_issue_redeem_and_exhaust(self, client, db_session):
        created = client.post('/api/discount-codes', json={
            "customer_email": "jane@example.com", "amount": "25.00",
        })
        assert created.status_code == 201
        code = created.get_json()["code"]
        assert created.get_json()["expires_at"] is not None

        partial = client.post(f'/api/discount-codes/{code}/use', json={"amount_used": "10.00"})
        assert partial.status_code == 200
        assert partial.get_json()["fully_used"] is False
        assert partial.get_json()["balance"] == "15.00"

        too_much = client.post(f'/api/discount-codes/{code}/use', json={"amount_used": "20.00"})
        assert too_much.status_code == 400
        assert client.get(f'/api/discount-codes/{code}').get_json()["amount"] == "15.00"

        final = client.post(f'/api/discount-codes/{code}/use', json={"amount_used": "15.00"})
        assert final.get_json()["fully_used"] is True
        assert client.get(f'/api/discount-codes/{code}').status_code == 404

    def test_redeem_errors(self, client, db_session):
        missing = client.post('/api/discount-codes/CREDIT-1-XXXXXX/use', json={"amount_used": "1.00"})
        assert missing.status_code == 404

        code = client.post('/api/discount-codes', json={
            "customer_email": "jane@example.com", "amount": "5.00",
        }).get_json()["code"]
        bad_amount = client.post(f'/api/discount-codes/{code}/use', json={"amount_used": "-1"})
        assert bad_amount.status_code == 400

    def test_list_and_delete(self, client, db_session):
        created = client.post('/api/discount-codes', json={
            "customer_email": "jane@example.com", "amount": "5.00",
        }).get_json()

        listed = client.get('/api/discount-codes?customer_email=jane@example.com').get_json()
        assert [c["id"] for c in listed] == [created["id"]]

        assert client.delete(f'/api/discount-codes/{created["id"]}').status_code == 204
        assert client.delete(f'/api/discount-codes/{created["id"]}').status_code == 404


class TestAccountsAPI:
    def test_create_list_and_summary(self, client, create_product_json):
        create_product_json(cost_price="40.00")

        response = client.post('/api/accounts', json={
            "transaction_type": "direct_income",
            "revenue": "100.00",
            "notes": "Consulting",
        })
        assert response.status_code == 201
        assert response.get_json()["profit"] == "100.00"

        entries = client.get('/api/accounts?transaction_type=purchase').get_json()
        assert len(entries) == 1
        assert entries[0]["profit"] == "99.00"

        summary = client.get('/api/accounts/summary').get_json()
        assert summary["totals"]["profit"] == "199.00"

    def test_invalid_type(self, client, db_session):
        response = client.post('/api/accounts', json={"transaction_type": "gift"})
        assert response.status_code == 400
