"""
Rate Providers - Conversion Rate Sources

This package contains rate provider implementations:
- StoredRateProvider: operator-set rates persisted in the ledger store
"""

from swappoints.adapters.providers.base import RateProvider
from swappoints.adapters.providers.stored import StoredRateProvider

__all__ = [
    "RateProvider",
    "StoredRateProvider",
]
