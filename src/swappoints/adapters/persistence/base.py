"""
Base Backend Interface for Ledger Storage

This module defines the abstract base class for all storage backends.
Backends store plain JSON documents grouped by collection and keyed by
entity key; entity conversion happens in LedgerStore.

Files that USE this module:
- swappoints.adapters.persistence.memory_store (InMemoryBackend implements LedgerBackend)
- swappoints.adapters.persistence.file_store (JsonFileBackend implements LedgerBackend)
- swappoints.adapters.persistence.ledger_store (LedgerStore drives two backends)

Files that this module USES:
- None (pure interface definition)
"""
from abc import ABC, abstractmethod
from typing import List, Optional


class LedgerBackend(ABC):
    """
    Document storage contract.

    Every method may raise StoreUnavailableError when the backend cannot
    serve the request.
    """

    name: str = "backend"

    @abstractmethod
    def load(self, collection: str, key: str) -> Optional[dict]:
        """Return the document stored under ``key`` or None."""
        raise NotImplementedError

    @abstractmethod
    def save(self, collection: str, key: str, document: dict) -> None:
        """Insert or replace the document stored under ``key``."""
        raise NotImplementedError

    @abstractmethod
    def scan(self, collection: str) -> List[dict]:
        """Return every document in ``collection``."""
        raise NotImplementedError

    def ping(self) -> None:
        """Raise StoreUnavailableError if the backend is not reachable."""
        self.scan("rates")
