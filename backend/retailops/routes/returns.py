# Overview: Flask API routes for returns and exchanges; parses input and returns JSON responses.

# backend/retailops/routes/returns.py
"""
Return Processing API Routes

Request body for POST /api/returns:
{
    "order_id": "...",
    "reason": "Wrong size",
    "customer_email": "jane@example.com",   (optional, defaults to the order's)
    "items": [
        {"product_id": "...", "quantity": 1, "exchange_product_id": "..."}   (exchange optional)
    ]
}

refund_amount / credit_amount / exchange_value / additional_payment are
computed by the service and snapshotted; client-sent values are ignored.
Store credit (and its notification) is issued best-effort after the return
is stored.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_services
from ..models import Return, ReturnItem
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_return,
    ValidationError,
    NotFoundError,
)

# New returns always start as pending; status moves only through PATCH
RETURN_POLICY = ModelValidationPolicy(
    writable_fields={"order_id", "customer_name", "customer_email", "reason", "payment_method", "notes"},
    required_on_create={"order_id", "reason"},
)

RETURN_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=(RETURN_POLICY.writable_fields - {"order_id"}) | {"status"},
)

RETURN_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "exchange_product_id"},
    required_on_create={"product_id", "quantity"},
)

_COMPUTED_RETURN_FIELDS = (
    "order_number", "return_value", "refund_amount", "credit_amount", "exchange_value", "additional_payment",
)
_IGNORED_ITEM_FIELDS = ("product_name", "sku", "unit_price", "subtotal", "exchange_product_name")

returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


def _strip(payload: dict, fields) -> dict:
    return {k: v for k, v in payload.items() if k not in fields}


def _validate_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Return must include at least one item")

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object")
        patch = validate_payload(
            model=ReturnItem,
            payload=_strip(raw, _IGNORED_ITEM_FIELDS),
            policy=RETURN_ITEM_POLICY,
            partial=False,
        )
        if patch["quantity"] is None or patch["quantity"] < 0:
            raise ValidationError("quantity must be 0 or greater")
        items.append(patch)
    return items


@returns_bp.get("")
def list_returns():
    returns = get_services().returns.list_returns()
    return jsonify([r.to_dict() for r in returns])


@returns_bp.get("/<return_id>")
def get_return(return_id: str):
    return_doc = get_services().returns.get_return(return_id)
    if return_doc is None:
        return {"error": "Return not found"}, 404
    return return_doc.to_dict()


@returns_bp.post("")
def create_return_route():
    """
    Create a return, restock its items and settle refund / credit / payment.

    Returns:
        201: Return created
        400: Invalid input, quantity exceeds order, or nothing returned
        404: Order or product not found
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    raw_items = payload.get("items")
    return_payload = _strip(payload, _COMPUTED_RETURN_FIELDS + ("items",))

    try:
        return_data = validate_payload(model=Return, payload=return_payload, policy=RETURN_POLICY, partial=False)
        enforce_rules_return(return_data)
        items = _validate_items(raw_items)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        return_doc = get_services().returns.create_return(return_data, items)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create return")
        return {"error": "Failed to create return"}, 500

    return return_doc.to_dict(), 201


@returns_bp.patch("/<return_id>")
def update_return_route(return_id: str):
    """Edit return metadata (status, notes, ...). Financials are never recomputed."""
    payload = request.get_json(silent=True) or {}
    if isinstance(payload, dict):
        payload = _strip(payload, _COMPUTED_RETURN_FIELDS)

    try:
        patch = validate_payload(model=Return, payload=payload, policy=RETURN_UPDATE_POLICY, partial=True)
        enforce_rules_return(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        return_doc = get_services().returns.update_return(return_id, patch)
    except Exception:
        current_app.logger.exception("Failed to update return")
        return {"error": "Failed to update return"}, 500

    if return_doc is None:
        return {"error": "Return not found"}, 404
    return return_doc.to_dict()
