# Overview: Human-readable document numbers for orders and returns.

from __future__ import annotations

import secrets
import string

from retailops.time_utils import epoch_millis

_ALPHABET = string.ascii_uppercase + string.digits


def next_document_number(session, model, column: str, prefix: str, suffix_len: int = 0) -> str:
    """
    "<prefix>-<epoch ms>[-<random suffix>]", unique within model.column.

    A collision (two documents in the same millisecond) retries with a
    random suffix.
    """
    for _ in range(5):
        number = f"{prefix}-{epoch_millis()}"
        if suffix_len:
            number += "-" + "".join(secrets.choice(_ALPHABET) for _ in range(suffix_len))
        if session.query(model).filter(getattr(model, column) == number).first() is None:
            return number
        suffix_len = suffix_len or 4
    raise RuntimeError(f"Could not allocate a unique {prefix} number")
