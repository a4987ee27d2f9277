# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/retailops/routes/orders.py
"""
Order routes.

Request body for POST /api/orders:
{
    "customer_name": "Jane Doe",
    "customer_email": "jane@example.com",   (optional)
    "payment_method": "cash",               (optional, default cash)
    "items": [
        {"product_id": "...", "quantity": 2, "unit_price": "19.99"}   (unit_price optional)
    ]
}

total_amount and item subtotals are always computed server-side; values
sent by the client are ignored.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_services
from ..models import Order, OrderItem
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_order,
    enforce_rules_line_item,
    ValidationError,
    NotFoundError,
)

ORDER_POLICY = ModelValidationPolicy(
    writable_fields={"customer_name", "customer_email", "customer_phone", "status", "payment_method", "notes"},
    required_on_create={"customer_name"},
)

ORDER_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "product_name", "sku", "quantity", "unit_price"},
    required_on_create={"product_id", "quantity"},
)

# Client-computed totals accepted for compatibility but recomputed by the service
_IGNORED_ORDER_FIELDS = ("total_amount",)
_IGNORED_ITEM_FIELDS = ("subtotal",)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _validate_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Order must have at least one item")

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object")
        raw = {k: v for k, v in raw.items() if k not in _IGNORED_ITEM_FIELDS}
        patch = validate_payload(model=OrderItem, payload=raw, policy=ORDER_ITEM_POLICY, partial=False)
        enforce_rules_line_item(patch)
        items.append(patch)
    return items


@orders_bp.get("")
def list_orders():
    orders = get_services().orders.list_orders()
    return jsonify([o.to_dict() for o in orders])


@orders_bp.get("/customer/<path:email>")
def list_orders_by_customer(email: str):
    orders = get_services().orders.list_orders_by_customer_email(email)
    return jsonify([o.to_dict() for o in orders])


@orders_bp.get("/<order_id>")
def get_order(order_id: str):
    order = get_services().orders.get_order(order_id)
    if order is None:
        return {"error": "Order not found"}, 404
    return order.to_dict()


@orders_bp.post("")
def create_order_route():
    """Create an order; each item is posted to stock as a sale."""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    raw_items = payload.get("items")
    order_payload = {
        k: v for k, v in payload.items() if k != "items" and k not in _IGNORED_ORDER_FIELDS
    }

    try:
        order_data = validate_payload(model=Order, payload=order_payload, policy=ORDER_POLICY, partial=False)
        enforce_rules_order(order_data)
        items = _validate_items(raw_items)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        order = get_services().orders.create_order(order_data, items)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return {"error": "Failed to create order"}, 500

    return order.to_dict(), 201


@orders_bp.patch("/<order_id>")
def update_order_route(order_id: str):
    """Edit order metadata. Never re-applies stock effects."""
    payload = request.get_json(silent=True) or {}
    payload = {k: v for k, v in payload.items() if k not in _IGNORED_ORDER_FIELDS} if isinstance(payload, dict) else payload

    try:
        patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=True)
        enforce_rules_order(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        order = get_services().orders.update_order(order_id, patch)
    except Exception:
        current_app.logger.exception("Failed to update order")
        return {"error": "Failed to update order"}, 500

    if order is None:
        return {"error": "Order not found"}, 404
    return order.to_dict()


@orders_bp.delete("/<order_id>")
def delete_order_route(order_id: str):
    try:
        deleted = get_services().orders.delete_order(order_id)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return {"error": "Failed to delete order"}, 500

    if not deleted:
        return {"error": "Order not found"}, 404
    return "", 204
