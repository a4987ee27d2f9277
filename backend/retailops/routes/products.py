# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/retailops/routes/products.py
"""
Product catalog routes.

stock_quantity is accepted on create only (opening stock). Afterwards stock
changes go through /api/stock-movements, orders and returns.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_services
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "product_name", "category", "brand", "description",
        "price", "cost_price", "stock_quantity", "warehouse",
    },
    required_on_create={"sku", "product_name", "category", "price"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_CREATE_POLICY.writable_fields - {"stock_quantity"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    products = get_services().products.list_products()
    return jsonify([p.to_dict() for p in products])


@products_bp.get("/<product_id>")
def get_product(product_id: str):
    product = get_services().products.get_product(product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict()


@products_bp.post("")
def create_product_route():
    """
    Create a product.

    Side effects: stock stats row seeded with the opening stock, and a
    'purchase' account entry when cost_price is given.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = get_services().products.create_product(patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Failed to create product"}, 500

    return created.to_dict(), 201


@products_bp.patch("/<product_id>")
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = get_services().products.update_product(product_id, patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Failed to update product"}, 500

    if updated is None:
        return {"error": "Product not found"}, 404
    return updated.to_dict()


@products_bp.delete("/<product_id>")
def delete_product_route(product_id: str):
    """Delete a product. Ledger history (movements, items, accounts) is kept."""
    try:
        deleted = get_services().products.delete_product(product_id)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Failed to delete product"}, 500

    if not deleted:
        return {"error": "Product not found"}, 404
    return "", 204
