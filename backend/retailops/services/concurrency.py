# Overview: Row locking and retry helpers for stock read-modify-write.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the Product.version_id
    optimistic check is what detects a concurrent writer.
    """
    return query.with_for_update()


def run_with_retry(session, func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). func must re-read everything it writes,
    since the session is rolled back before each retry.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after concurrent write conflict (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
