# Overview: Customer notification collaborators (email delivery lives outside this service).

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from retailops.time_utils import to_utc_z

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_store_credit(
        self, customer_email: str, code: str, amount: Decimal, expires_at: datetime | None
    ) -> None:
        ...


class LoggingNotifier:
    """Default notifier: records the message instead of delivering it."""

    def __init__(self):
        self.sent: list[dict] = []

    def send_store_credit(
        self, customer_email: str, code: str, amount: Decimal, expires_at: datetime | None
    ) -> None:
        message = {
            "to": customer_email,
            "code": code,
            "amount": f"{amount:.2f}",
            "expires_at": to_utc_z(expires_at),
        }
        self.sent.append(message)
        logger.info("Store credit notification for %s: code=%s amount=%s", customer_email, code, message["amount"])
