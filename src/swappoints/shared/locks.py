"""
Keyed Locks - Per-Entity Mutual Exclusion

Every read-modify-write of a user balance or an order status runs inside the
lock for that entity's key, so two concurrent withdrawals cannot both pass the
funds check and two concurrent confirmations cannot both apply. Locks are
re-entrant: a service holding ``user:<id>`` may call another service method
that takes the same key.

Lock order when several keys are needed: order before user. A key is dropped
from the registry once its last holder releases it, so unknown ids sent by
clients do not accumulate.

Files that USE this module:
- swappoints.application.accounts
- swappoints.application.orders
- swappoints.application.transactions
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class KeyedLocks:
    """Registry of re-entrant locks, one per entity key currently in use."""

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of threads holding or waiting for it]
        self._locks: Dict[str, List] = {}

    def _acquire_entry(self, key: str) -> threading.RLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _release_entry(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)

    def __len__(self) -> int:
        """Number of keys with at least one holder or waiter."""
        with self._guard:
            return len(self._locks)


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def order_key(order_id: str) -> str:
    return f"order:{order_id}"


def phone_key(phone: str) -> str:
    return f"phone:{phone}"
