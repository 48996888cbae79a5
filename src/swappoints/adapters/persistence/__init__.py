"""
Persistence Adapters - Data Storage

This package contains adapters for persisting the ledger:
- Durable JSON file backend
- In-memory backend (degraded-mode mirror, tests)
- LedgerStore, the fallback-aware entity store
"""

from swappoints.adapters.persistence.base import LedgerBackend
from swappoints.adapters.persistence.file_store import JsonFileBackend
from swappoints.adapters.persistence.memory_store import InMemoryBackend
from swappoints.adapters.persistence.ledger_store import (
    STATE_DEGRADED,
    STATE_DURABLE,
    LedgerStore,
    StoreHealth,
)

__all__ = [
    "LedgerBackend",
    "JsonFileBackend",
    "InMemoryBackend",
    "LedgerStore",
    "StoreHealth",
    "STATE_DURABLE",
    "STATE_DEGRADED",
]
