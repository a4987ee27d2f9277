# Overview: Flask API routes for the profit/loss account ledger.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_services
from ..models import AccountEntry
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_account_entry,
    ValidationError,
)

ACCOUNT_ENTRY_POLICY = ModelValidationPolicy(
    writable_fields={
        "transaction_type", "reference_id", "reference_number",
        "revenue", "cost", "profit", "tax_amount", "discount_amount", "shipping_cost",
        "product_id", "product_name", "category", "quantity",
        "customer_name", "customer_email", "notes", "transaction_date",
    },
    required_on_create={"transaction_type"},
)

accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.get("")
def list_account_entries():
    entries = get_services().accounts.list_entries(
        transaction_type=request.args.get("transaction_type"),
        fiscal_year=request.args.get("fiscal_year", type=int),
        fiscal_month=request.args.get("fiscal_month", type=int),
    )
    return jsonify([e.to_dict() for e in entries])


@accounts_bp.get("/summary")
def account_summary():
    return get_services().accounts.summarize(fiscal_year=request.args.get("fiscal_year", type=int))


@accounts_bp.post("")
def create_account_entry_route():
    """Manual ledger entry (direct income, adjustment, ...). Entries are append-only."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=AccountEntry, payload=payload, policy=ACCOUNT_ENTRY_POLICY, partial=False)
        enforce_rules_account_entry(patch)
        entry = get_services().accounts.create_entry(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create account entry")
        return {"error": "Failed to create account entry"}, 500

    return entry.to_dict(), 201
