from __future__ import annotations

import uuid
from decimal import Decimal

from ..extensions import db


def new_id() -> str:
    """Opaque primary key shared by every table."""
    return str(uuid.uuid4())


def money_str(value: Decimal | None) -> str | None:
    # Money is serialized as a fixed 2-decimal string ("49.90")
    if value is None:
        return None
    return f"{Decimal(value):.2f}"


def Money(**kwargs):
    return db.Column(db.Numeric(10, 2, asdecimal=True), **kwargs)
