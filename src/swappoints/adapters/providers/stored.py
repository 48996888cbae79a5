"""
Stored Rate Provider - Operator-Set Rates Kept in the Ledger Store

Rates are a singleton record in the ledger store. The first read creates it
from the configured defaults; updates are serialized by a provider lock and
the last write wins.

Files that USE this module:
- swappoints.app (provider wired into services)
- tests.test_rates (unit tests)

Files that this module USES:
- swappoints.adapters.persistence.ledger_store (LedgerStore)
- swappoints.adapters.providers.base (RateProvider)
"""
from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Optional

from swappoints.adapters.persistence.ledger_store import LedgerStore
from swappoints.adapters.providers.base import RateProvider
from swappoints.domain.errors import ValidationError
from swappoints.domain.models import Rates, utcnow
from swappoints.shared.validators import MAX_RATE, MAX_RATE_PLACES, parse_rate

logger = logging.getLogger(__name__)


class StoredRateProvider(RateProvider):
    """Rate provider backed by the Rates singleton in LedgerStore."""

    def __init__(self, store: LedgerStore, default_usdt: Decimal, default_ton: Decimal):
        self.store = store
        self.default_usdt = Decimal(default_usdt)
        self.default_ton = Decimal(default_ton)
        self._lock = threading.RLock()

    def get(self) -> Rates:
        rates = self.store.get(Rates, Rates.SINGLETON_KEY)
        if rates is not None:
            return rates

        with self._lock:
            # Another caller may have created it while we waited
            rates = self.store.get(Rates, Rates.SINGLETON_KEY)
            if rates is None:
                rates = Rates(usdt=self.default_usdt, ton=self.default_ton)
                self.store.put(rates)
                logger.info("Initialized default rates: USDT=%s TON=%s", rates.usdt, rates.ton)
            return rates

    def set(self, usdt: Optional[Decimal] = None, ton: Optional[Decimal] = None) -> Rates:
        for name, value in (("USDT", usdt), ("TON", ton)):
            if value is not None and parse_rate(value) is None:
                raise ValidationError(
                    f"{name} rate must be a positive number up to {MAX_RATE} with at most {MAX_RATE_PLACES} decimal places"
                )

        with self._lock:
            rates = self.get()
            if usdt is not None:
                rates.usdt = Decimal(usdt)
            if ton is not None:
                rates.ton = Decimal(ton)
            rates.updated_at = utcnow()
            self.store.put(rates)

        logger.info("Rates updated: USDT=%s TON=%s", rates.usdt, rates.ton)
        return rates
