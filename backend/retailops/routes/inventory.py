# Overview: Flask API routes for the stock ledger and stock statistics.

# backend/retailops/routes/inventory.py
"""
Stock movement and stock statistics routes.

Movement semantics (POST /api/stock-movements):
- type=in:          stock += quantity
- type=out:         stock -= quantity, clamped at 0
- type=adjustment:  stock  = quantity (absolute target, recorded verbatim)
- reason=purchase additionally counts quantity as purchased in stock stats.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_services
from ..models import StockMovement
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_stock_movement,
    ValidationError,
    NotFoundError,
)

STOCK_MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "type", "quantity", "reason", "notes"},
    required_on_create={"product_id", "type", "quantity", "reason"},
)

# Snapshot fields are taken from the product row, not the client
_IGNORED_MOVEMENT_FIELDS = ("product_name", "sku")

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api")


@inventory_bp.get("/stock-movements")
def list_stock_movements():
    product_id = request.args.get("product_id") or request.args.get("productId")
    limit = request.args.get("limit", type=int)
    if limit is not None:
        limit = max(1, min(limit, 1000))
    movements = get_services().engine.list_movements(product_id=product_id, limit=limit)
    return jsonify([m.to_dict() for m in movements])


@inventory_bp.post("/stock-movements")
def create_stock_movement_route():
    payload = request.get_json(silent=True) or {}
    if isinstance(payload, dict):
        payload = {k: v for k, v in payload.items() if k not in _IGNORED_MOVEMENT_FIELDS}

    try:
        patch = validate_payload(
            model=StockMovement,
            payload=payload,
            policy=STOCK_MOVEMENT_POLICY,
            partial=False,
        )
        enforce_rules_stock_movement(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        movement = get_services().engine.record_movement(
            patch["product_id"],
            patch["type"],
            patch["quantity"],
            patch["reason"],
            notes=patch.get("notes"),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create stock movement")
        return {"error": "Failed to create stock movement"}, 500

    return movement.to_dict(), 201


@inventory_bp.get("/stock-movements/low-stock")
def list_low_stock_products():
    threshold = request.args.get("threshold", type=int)
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    products = get_services().products.list_low_stock(threshold)
    return jsonify([p.to_dict() for p in products])


@inventory_bp.get("/stock-stats")
def list_stock_stats():
    """All stats rows; available is reconciled to live stock before returning."""
    try:
        stats = get_services().stats.get_all()
    except Exception:
        current_app.logger.exception("Failed to fetch stock stats")
        return {"error": "Failed to fetch stock stats"}, 500
    return jsonify([s.to_dict() for s in stats])


@inventory_bp.get("/stock-stats/<product_id>")
def get_stock_stats(product_id: str):
    stats = get_services().stats.get_by_product(product_id)
    if stats is None:
        return {"error": "Stock stats not found"}, 404
    return stats.to_dict()
