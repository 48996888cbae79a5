"""
Ledger Store - Durable Storage with Explicit In-Memory Fallback

This module is the single storage entry point for users, orders, transactions
and rates. Every operation first goes to the durable backend. When the durable
backend raises StoreUnavailableError the operation is served by an in-memory
mirror instead and the store enters *degraded* mode:

- degradation is logged once per failure episode, recovery once per episode;
- writes made while degraded live only in memory and are NOT copied back to
  the durable backend on recovery; they are counted and reported instead;
- while durable, every document read from or written to the durable backend
  is also copied into the mirror so degraded reads see what this process saw.

The fallback is a policy switch (``fallback_enabled``). With it off, backend
failures propagate to the caller.

Files that USE this module:
- swappoints.app (builds the store at startup)
- swappoints.adapters.providers.stored (rate singleton)
- swappoints.application.* (all services read and write through it)
- swappoints.application.health (store health)

Files that this module USES:
- swappoints.adapters.persistence.base (LedgerBackend contract)
- swappoints.adapters.persistence.memory_store (InMemoryBackend mirror)
- swappoints.domain.errors (StoreUnavailableError)
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Type, TypeVar

from swappoints.adapters.persistence.base import LedgerBackend
from swappoints.adapters.persistence.memory_store import InMemoryBackend
from swappoints.domain.errors import StoreUnavailableError
from swappoints.domain.models import Order, Rates, Transaction, User

logger = logging.getLogger(__name__)

E = TypeVar("E")

STATE_DURABLE = "durable"
STATE_DEGRADED = "degraded"

ENTITY_TYPES = (User, Order, Transaction, Rates)


@dataclass
class StoreHealth:
    """Snapshot of the store's durability state."""
    state: str
    backend: str
    fallback_enabled: bool
    degraded_since: Optional[datetime]
    degraded_episodes: int
    unsynced_writes: int  # writes in the current degraded episode
    lost_writes_total: int  # writes from finished episodes never carried back
    last_error: Optional[str]

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "backend": self.backend,
            "fallbackEnabled": self.fallback_enabled,
            "degradedSince": self.degraded_since.isoformat() if self.degraded_since else None,
            "degradedEpisodes": self.degraded_episodes,
            "unsyncedWrites": self.unsynced_writes,
            "lostWritesTotal": self.lost_writes_total,
            "lastError": self.last_error,
        }


class LedgerStore:
    """Entity store over a durable backend with an in-memory fallback mirror."""

    def __init__(
        self,
        durable: LedgerBackend,
        mirror: Optional[InMemoryBackend] = None,
        fallback_enabled: bool = True,
    ):
        """
        Initialize the store.

        Args:
            durable: Backend that provides persistence across restarts
            mirror: In-memory backend used while degraded (created if omitted)
            fallback_enabled: Serve from the mirror when the durable backend fails
        """
        self.durable = durable
        self.mirror = mirror if mirror is not None else InMemoryBackend()
        self.fallback_enabled = fallback_enabled

        self._state_lock = threading.Lock()
        self._state = STATE_DURABLE
        self._degraded_since: Optional[datetime] = None
        self._episodes = 0
        self._unsynced_writes = 0
        self._lost_writes_total = 0
        self._last_error: Optional[str] = None

    # --- durability state -------------------------------------------------

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_durable(self) -> bool:
        return self._state == STATE_DURABLE

    def _mark_degraded(self, error: StoreUnavailableError) -> None:
        with self._state_lock:
            self._last_error = str(error)
            if self._state == STATE_DEGRADED:
                return
            self._state = STATE_DEGRADED
            self._degraded_since = datetime.now(timezone.utc)
            self._episodes += 1
            self._unsynced_writes = 0
        logger.warning(
            "Durable store '%s' unavailable, serving from in-memory fallback "
            "(writes are NOT durable until recovery): %s",
            self.durable.name,
            error,
        )

    def _mark_durable(self) -> None:
        if self._state == STATE_DURABLE:
            return
        with self._state_lock:
            if self._state == STATE_DURABLE:
                return
            lost = self._unsynced_writes
            since = self._degraded_since
            self._state = STATE_DURABLE
            self._degraded_since = None
            self._lost_writes_total += lost
            self._unsynced_writes = 0
        logger.warning(
            "Durable store '%s' recovered (degraded since %s); %d write(s) made in "
            "degraded mode were not carried back and need operator reconciliation",
            self.durable.name,
            since.isoformat() if since else "?",
            lost,
        )

    def _count_unsynced_write(self) -> None:
        with self._state_lock:
            self._unsynced_writes += 1

    def _call(self, durable_op: Callable[[], Any], fallback_op: Callable[[], Any]) -> Any:
        try:
            result = durable_op()
        except StoreUnavailableError as e:
            if not self.fallback_enabled:
                with self._state_lock:
                    self._last_error = str(e)
                raise
            self._mark_degraded(e)
            return fallback_op()
        self._mark_durable()
        return result

    def health(self) -> StoreHealth:
        with self._state_lock:
            return StoreHealth(
                state=self._state,
                backend=self.durable.name,
                fallback_enabled=self.fallback_enabled,
                degraded_since=self._degraded_since,
                degraded_episodes=self._episodes,
                unsynced_writes=self._unsynced_writes,
                lost_writes_total=self._lost_writes_total,
                last_error=self._last_error,
            )

    def check(self) -> StoreHealth:
        """Probe the durable backend and update the state accordingly."""
        try:
            self.durable.ping()
        except StoreUnavailableError as e:
            if self.fallback_enabled:
                self._mark_degraded(e)
            else:
                with self._state_lock:
                    self._last_error = str(e)
        else:
            self._mark_durable()
        return self.health()

    def warm_up(self) -> int:
        """
        Copy every durable document into the mirror.

        Returns:
            Number of documents mirrored (0 if the durable backend is down)
        """
        copied = 0
        for entity_type in ENTITY_TYPES:
            try:
                docs = self.durable.scan(entity_type.collection)
            except StoreUnavailableError as e:
                logger.warning("Mirror warm-up skipped, durable store unavailable: %s", e)
                return copied
            for doc in docs:
                self.mirror.save(entity_type.collection, entity_type.from_json(doc).key, doc)
                copied += 1
        logger.info("Mirrored %d document(s) from durable store '%s'", copied, self.durable.name)
        return copied

    # --- entity operations ------------------------------------------------

    def get(self, entity_type: Type[E], key: str) -> Optional[E]:
        """Return the entity stored under ``key``, or None when absent."""
        collection = entity_type.collection

        def durable_op():
            doc = self.durable.load(collection, key)
            if doc is not None:
                self.mirror.save(collection, key, doc)
            return doc

        doc = self._call(durable_op, lambda: self.mirror.load(collection, key))
        return entity_type.from_json(doc) if doc is not None else None

    def put(self, entity) -> None:
        """Insert or replace one entity."""
        collection = entity.collection
        key = entity.key
        doc = entity.to_json()

        def durable_op():
            self.durable.save(collection, key, doc)
            self.mirror.save(collection, key, doc)

        def fallback_op():
            self.mirror.save(collection, key, doc)
            self._count_unsynced_write()

        self._call(durable_op, fallback_op)

    def find(
        self,
        entity_type: Type[E],
        predicate: Optional[Callable[[E], bool]] = None,
        sort: Optional[Callable[[E], Any]] = None,
        descending: bool = False,
    ) -> List[E]:
        """
        Return entities of ``entity_type`` matching ``predicate``.

        Args:
            entity_type: Entity class (User, Order, Transaction, Rates)
            predicate: Optional filter applied to each entity
            sort: Optional sort key
            descending: Reverse the sort order
        """
        collection = entity_type.collection

        def durable_op():
            docs = self.durable.scan(collection)
            for doc in docs:
                self.mirror.save(collection, entity_type.from_json(doc).key, doc)
            return docs

        docs = self._call(durable_op, lambda: self.mirror.scan(collection))
        entities = [entity_type.from_json(doc) for doc in docs]
        if predicate is not None:
            entities = [e for e in entities if predicate(e)]
        if sort is not None:
            entities.sort(key=sort, reverse=descending)
        return entities

    def count(self, entity_type: Type[E], predicate: Optional[Callable[[E], bool]] = None) -> int:
        return len(self.find(entity_type, predicate))
