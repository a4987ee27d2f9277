# backend/retailops/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///retailops.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Products with 0 < stock_quantity < threshold are reported as low stock
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    # Store credit issued from returns expires after this many days
    STORE_CREDIT_VALID_DAYS = int(os.environ.get("STORE_CREDIT_VALID_DAYS", "365"))

    # Retry policy for the product row read-modify-write (optimistic locking)
    STOCK_RETRY_ATTEMPTS = int(os.environ.get("STOCK_RETRY_ATTEMPTS", "3"))
    STOCK_RETRY_BACKOFF = float(os.environ.get("STOCK_RETRY_BACKOFF", "0.1"))
