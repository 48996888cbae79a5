"""
Base Provider Interface for Conversion Rate Providers

This module defines the abstract base class for all rate providers.
It establishes the contract the order engine and the transaction ledger rely
on when they snapshot a rate.

Files that USE this module:
- swappoints.adapters.providers.stored (StoredRateProvider implements RateProvider)
- swappoints.application.orders (rate snapshot at order creation)
- swappoints.application.transactions (rate snapshot at withdrawal request)

Files that this module USES:
- swappoints.domain.models (Rates, Currency)
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from swappoints.domain.models import Currency, Rates


class RateProvider(ABC):
    @abstractmethod
    def get(self) -> Rates:
        """Return the current rates."""
        raise NotImplementedError

    @abstractmethod
    def set(self, usdt: Optional[Decimal] = None, ton: Optional[Decimal] = None) -> Rates:
        """Update the given rates and return the new snapshot."""
        raise NotImplementedError

    def rate(self, currency: Currency) -> Decimal:
        """Return UAH per one unit of ``currency``."""
        return self.get().rate(currency)
