# Overview: Flask API routes for store-credit discount codes.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_services
from ..validation import ValidationError, NotFoundError
from ..services.discount_service import InsufficientBalanceError, InvalidAmountError
from retailops.time_utils import parse_iso_datetime, days_from_now

discount_codes_bp = Blueprint("discount_codes", __name__, url_prefix="/api/discount-codes")


@discount_codes_bp.get("")
def list_discount_codes():
    customer_email = request.args.get("customer_email") or request.args.get("customerEmail")
    codes = get_services().discounts.list_codes(customer_email)
    return jsonify([c.to_dict() for c in codes])


@discount_codes_bp.get("/<code>")
def get_discount_code(code: str):
    discount = get_services().discounts.get(code)
    if discount is None:
        return {"error": "Discount code not found"}, 404
    return discount.to_dict()


@discount_codes_bp.post("")
def create_discount_code_route():
    """
    Issue store credit manually.

    Body: {"customer_email": "...", "amount": "25.00", "expires_at": "2027-01-01T00:00:00Z"}
    expires_at defaults to STORE_CREDIT_VALID_DAYS from now.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    try:
        expires_raw = payload.get("expires_at")
        try:
            expires_at = parse_iso_datetime(expires_raw) if expires_raw else None
        except ValueError:
            raise ValidationError("expires_at must be an ISO-8601 datetime")
        if expires_at is None:
            expires_at = days_from_now(current_app.config["STORE_CREDIT_VALID_DAYS"])

        discount = get_services().discounts.create(
            payload.get("customer_email"),
            payload.get("amount"),
            expires_at,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create discount code")
        return {"error": "Failed to create discount code"}, 500

    return discount.to_dict(), 201


@discount_codes_bp.post("/<code>/use")
def redeem_discount_code_route(code: str):
    """
    Redeem part or all of a code.

    Body: {"amount_used": "12.50"}

    Returns:
        200: {"success": true, "fully_used": bool, "balance": "...", ...}
        400: amount not positive, or exceeds balance (code unchanged)
        404: unknown code
    """
    payload = request.get_json(silent=True) or {}
    amount = payload.get("amount_used", payload.get("amountUsed")) if isinstance(payload, dict) else None

    try:
        result = get_services().discounts.redeem(code, amount)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except (InvalidAmountError, InsufficientBalanceError) as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to use discount code")
        return {"error": "Failed to use discount code"}, 500

    return result.to_dict()


@discount_codes_bp.delete("/<discount_id>")
def delete_discount_code_route(discount_id: str):
    try:
        deleted = get_services().discounts.delete(discount_id)
    except Exception:
        current_app.logger.exception("Failed to delete discount code")
        return {"error": "Failed to delete discount code"}, 500

    if not deleted:
        return {"error": "Discount code not found"}, 404
    return "", 204
