"""
In-Memory Backend - Process-Lifetime Document Storage

Serves as the degraded-mode mirror behind LedgerStore and as a plain store in
tests. Nothing written here survives a restart.
"""
from __future__ import annotations

import copy
import threading
from collections import defaultdict
from typing import Dict, List, Optional

from swappoints.adapters.persistence.base import LedgerBackend


class InMemoryBackend(LedgerBackend):
    """Dict-of-dicts backend; documents are deep-copied in and out."""

    name = "memory"

    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, dict]] = defaultdict(dict)

    def load(self, collection: str, key: str) -> Optional[dict]:
        with self._lock:
            doc = self._data[collection].get(key)
            return copy.deepcopy(doc) if doc is not None else None

    def save(self, collection: str, key: str, document: dict) -> None:
        with self._lock:
            self._data[collection][key] = copy.deepcopy(document)

    def scan(self, collection: str) -> List[dict]:
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._data[collection].values()]

    def ping(self) -> None:
        return None
