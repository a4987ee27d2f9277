# Overview: Explicit wiring of the service graph around one database session.

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .accounts_service import AccountService
from .discount_service import DiscountCodeService
from .inventory_engine import InventoryEngine
from .notifications import LoggingNotifier, Notifier
from .order_service import OrderService
from .products_service import ProductService
from .return_service import ReturnService
from .stock_stats_service import StockStatsService


@dataclass
class ServiceRegistry:
    stats: StockStatsService
    engine: InventoryEngine
    accounts: AccountService
    products: ProductService
    orders: OrderService
    discounts: DiscountCodeService
    returns: ReturnService
    notifier: Notifier


def build_services(session, config: Mapping | None = None, notifier: Notifier | None = None) -> ServiceRegistry:
    """
    Construct every service against the given session.

    config is read for the STOCK_RETRY_* and STORE_CREDIT_VALID_DAYS keys
    (a Flask app.config works); missing keys fall back to defaults.
    """
    config = config or {}
    notifier = notifier or LoggingNotifier()

    stats = StockStatsService(session)
    engine = InventoryEngine(
        session,
        stats,
        retry_attempts=int(config.get("STOCK_RETRY_ATTEMPTS", 3)),
        retry_backoff=float(config.get("STOCK_RETRY_BACKOFF", 0.1)),
    )
    accounts = AccountService(session)
    discounts = DiscountCodeService(session)

    return ServiceRegistry(
        stats=stats,
        engine=engine,
        accounts=accounts,
        products=ProductService(session, engine, stats, accounts),
        orders=OrderService(session, engine),
        discounts=discounts,
        returns=ReturnService(
            session,
            engine,
            discounts,
            notifier,
            credit_valid_days=int(config.get("STORE_CREDIT_VALID_DAYS", 365)),
        ),
        notifier=notifier,
    )
