# src/swappoints/app.py
"""
Application Entry Point - Service Wiring and Startup

This module serves as the composition root for the SwapPoints exchange service.
It wires the store, rate provider and services together, builds the HTTP
application and starts the server.

Files that USE this module:
- python -m swappoints (module entry point)
- swappoints.adapters.http.api (Services type)
- tests.* (build_services for fully wired fixtures)

Files that this module USES:
- swappoints.shared.logging_conf (setup_logging for logging configuration)
- swappoints.config (settings for configuration management)
- swappoints.adapters.persistence (JsonFileBackend, LedgerStore)
- swappoints.adapters.providers (StoredRateProvider)
- swappoints.application (all services)
- swappoints.adapters.http (create_app)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations for forward references

import logging  # Standard library for logging messages and errors
from dataclasses import dataclass  # Service container
from datetime import datetime, timedelta  # Order TTL
from typing import Callable, Optional  # Type hints

import uvicorn  # ASGI server
from fastapi import FastAPI  # Web application type

from swappoints.config import Settings
from swappoints.shared.logging_conf import setup_logging  # Configure logging with file rotation
from swappoints.shared.locks import KeyedLocks
from swappoints.adapters.persistence import JsonFileBackend, LedgerStore
from swappoints.adapters.providers import RateProvider, StoredRateProvider
from swappoints.application import (
    AccountService,
    AdminProjection,
    HealthChecker,
    OrderEngine,
    TransactionLedger,
)
from swappoints.adapters.http import create_app
from swappoints.domain.models import utcnow

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the HTTP layer needs, wired once at startup."""
    store: LedgerStore
    locks: KeyedLocks
    rates: RateProvider
    accounts: AccountService
    ledger: TransactionLedger
    orders: OrderEngine
    admin: AdminProjection
    health: HealthChecker


def build_services(
    cfg: Settings,
    store: Optional[LedgerStore] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    """
    Wire the store, rate provider and services.

    Args:
        cfg: Application settings
        store: Pre-built store (tests); defaults to the JSON file backend from cfg
        clock: Current-time source for order expiry
    """
    if store is None:
        store = LedgerStore(
            durable=JsonFileBackend(cfg.store_file, timeout_seconds=cfg.store_timeout_seconds),
            fallback_enabled=cfg.store_fallback_enabled,
        )

    locks = KeyedLocks()
    rates = StoredRateProvider(store, cfg.default_rate_usdt, cfg.default_rate_ton)
    accounts = AccountService(store, locks, password_auth_enabled=cfg.password_auth_enabled)
    ledger = TransactionLedger(store, accounts, rates, locks)
    orders = OrderEngine(
        store,
        rates,
        locks,
        accounts=accounts,
        ledger=ledger,
        payment_address=cfg.payment_address,
        ttl=timedelta(minutes=cfg.order_ttl_minutes),
        clock=clock,
    )
    return Services(
        store=store,
        locks=locks,
        rates=rates,
        accounts=accounts,
        ledger=ledger,
        orders=orders,
        admin=AdminProjection(store, rates),
        health=HealthChecker(store, rates),
    )


def create_application(cfg: Optional[Settings] = None) -> FastAPI:
    """Build the ASGI application from settings (used by uvicorn)."""
    if cfg is None:
        from swappoints.config import settings as cfg

    services = build_services(cfg)
    services.store.warm_up()
    services.rates.get()  # create the rate singleton on first start

    if not cfg.admin_enabled:
        logger.warning("ADMIN_TOKEN is not set; all operator endpoints will refuse requests")
    if not cfg.store_fallback_enabled:
        logger.info("In-memory fallback disabled; store failures will surface as 503")

    return create_app(services, admin_token=cfg.admin_token)


def main() -> None:
    """
    Initialize and start the HTTP server.

    This function:
    1. Sets up logging from settings
    2. Wires store, rates and services
    3. Starts uvicorn on the configured host/port
    """
    # Global instance (built when swappoints.config is first imported)
    from swappoints.config import settings

    setup_logging(
        level=settings.log_level,
        log_file=settings.log_file,
        log_dir=settings.log_dir,
        stdout=settings.log_stdout,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )

    logger.info("Ledger file: %s", settings.store_file.resolve())
    app = create_application(settings)

    logger.info("Starting SwapPoints on %s:%d", settings.host, settings.port)
    try:
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    except KeyboardInterrupt:
        logger.info("Server stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception("Unexpected error during server operation: %s (type: %s)", e, type(e).__name__)
        raise


if __name__ == "__main__":
    main()
