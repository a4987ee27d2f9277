from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from retailops.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Matches NUMERIC(10, 2): $99,999,999.99
MAX_MONEY = Decimal("99999999.99")
CENT = Decimal("0.01")

STOCK_MOVEMENT_TYPES = ("in", "out", "adjustment")
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
RETURN_STATUSES = ("pending", "approved", "rejected", "completed")
PAYMENT_METHODS = ("cash", "credit_card", "debit_card", "upi", "bank_transfer", "store_credit", "mixed")
ACCOUNT_TRANSACTION_TYPES = ("sale", "purchase", "return", "refund", "adjustment", "direct_income")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


class NotFoundError(LookupError):
    """404-level: product, order, return or discount code is absent."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def to_money(value: Any, field: str = "amount") -> Decimal:
    """
    Coerce a client value to a 2-decimal Decimal.

    Accepts Decimal, int, float and numeric strings ("12.50"). Rejects
    booleans, blanks, NaN and infinities.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    # Money columns arrive as strings ("49.99") or numbers
    if isinstance(coltype, Numeric):
        return to_money(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None or (raw == "" and col.nullable and not isinstance(col.type, (String, Text))):
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Optional text fields store blanks as NULL
        if isinstance(col.type, (String, Text)) and col.nullable and val == "":
            val = None

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_money_range(patch: dict, field: str) -> None:
    value = patch.get(field)
    if value is None:
        return
    if value < 0:
        raise ValidationError(f"{field} must be >= 0")
    if value > MAX_MONEY:
        raise ValidationError(f"{field} cannot exceed {MAX_MONEY}")


def _check_choice(patch: dict, field: str, choices: tuple[str, ...]) -> None:
    if field in patch and patch[field] not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_money_range(patch, "price")
    _check_money_range(patch, "cost_price")

    if "stock_quantity" in patch and patch["stock_quantity"] is not None:
        if patch["stock_quantity"] < 0:
            raise ValidationError("stock_quantity must be 0 or greater")


def enforce_rules_stock_movement(patch: dict) -> None:
    # quantity is a delta for in/out and the target level for adjustment
    _check_choice(patch, "type", STOCK_MOVEMENT_TYPES)
    if "quantity" in patch:
        if patch["quantity"] is None or patch["quantity"] < 1:
            raise ValidationError("quantity must be at least 1")
    if "reason" in patch and not patch["reason"]:
        raise ValidationError("reason is required")


def enforce_rules_order(patch: dict) -> None:
    _check_choice(patch, "status", ORDER_STATUSES)
    _check_choice(patch, "payment_method", PAYMENT_METHODS)


def enforce_rules_line_item(patch: dict) -> None:
    # Shared by order items and return items
    if "quantity" in patch:
        if patch["quantity"] is None or patch["quantity"] < 1:
            raise ValidationError("quantity must be at least 1")
    _check_money_range(patch, "unit_price")


def enforce_rules_return(patch: dict) -> None:
    _check_choice(patch, "status", RETURN_STATUSES)
    _check_choice(patch, "payment_method", PAYMENT_METHODS)


def enforce_rules_account_entry(patch: dict) -> None:
    _check_choice(patch, "transaction_type", ACCOUNT_TRANSACTION_TYPES)
    for field in ("revenue", "cost", "tax_amount", "discount_amount", "shipping_cost"):
        _check_money_range(patch, field)
    if "quantity" in patch and patch["quantity"] is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be 0 or greater")
