"""
Health Checker - Store Durability and Rate Availability

This module reports whether the ledger is being written to its durable
backend or to the in-memory fallback, whether writes from earlier degraded
episodes still await reconciliation, and whether rates can be read.
A degraded store is not an outage (requests keep succeeding) but it is a
durability loss window that operators need to see.

Files that USE this module:
- swappoints.app (service wiring)
- swappoints.adapters.http.api (/api/admin/health)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from swappoints.adapters.persistence.ledger_store import STATE_DURABLE, LedgerStore, StoreHealth
from swappoints.adapters.providers.base import RateProvider

logger = logging.getLogger(__name__)


@dataclass
class HealthStatus:
    """Result of one component check."""
    is_healthy: bool
    message: str
    details: Optional[Dict[str, Any]] = None
    last_check: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "healthy": self.is_healthy,
            "message": self.message,
            "last_check": self.last_check.isoformat(),
            "details": self.details,
        }


class HealthChecker:
    """Runs the component checks behind /api/admin/health."""

    def __init__(self, store: LedgerStore, rates: RateProvider):
        self.store = store
        self.rates = rates

    def check_store(self, health: Optional[StoreHealth] = None) -> HealthStatus:
        """Probe the durable backend (or reuse a fresh probe result)."""
        health = health or self.store.check()
        if health.state == STATE_DURABLE:
            return HealthStatus(True, f"Store durable ({health.backend})", health.to_dict())

        since = health.degraded_since.isoformat() if health.degraded_since else "?"
        return HealthStatus(
            False,
            f"Store degraded since {since}, {health.unsynced_writes} write(s) held only in memory",
            health.to_dict(),
        )

    def check_durability(self, health: Optional[StoreHealth] = None) -> HealthStatus:
        """Flag writes from finished degraded episodes that never reached the durable backend."""
        health = health or self.store.health()
        lost = health.lost_writes_total
        if not lost:
            return HealthStatus(True, "No unreconciled writes", {"lostWritesTotal": 0})
        return HealthStatus(
            False,
            f"{lost} write(s) from past degraded episodes need reconciliation",
            {"lostWritesTotal": lost, "degradedEpisodes": health.degraded_episodes},
        )

    def check_rates(self) -> HealthStatus:
        try:
            rates = self.rates.get()
        except Exception as e:
            logger.error("Rate health check failed: %s", e)
            return HealthStatus(False, f"Rates error: {e}")
        return HealthStatus(
            True,
            f"Rates available: USDT={rates.usdt} TON={rates.ton}",
            {"USDT": str(rates.usdt), "TON": str(rates.ton), "updatedAt": rates.updated_at.isoformat()},
        )

    def get_overall_health(self) -> Dict[str, Any]:
        """
        Run every check and summarize.

        The overall status is "degraded" as soon as one component fails.
        """
        store_health = self.store.check()
        probes: Dict[str, Callable[[], HealthStatus]] = {
            "store": lambda: self.check_store(store_health),
            "durability": lambda: self.check_durability(store_health),
            "rates": self.check_rates,
        }
        results = {name: probe() for name, probe in probes.items()}

        failed = [name for name, result in results.items() if not result.is_healthy]
        if failed:
            logger.warning("Health check failed for: %s", ", ".join(failed))

        return {
            "overall_healthy": not failed,
            "status": "degraded" if failed else "healthy",
            "message": f"{len(failed)} component(s) failed: {', '.join(failed)}" if failed else "All systems healthy",
            "failed_components": failed,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {name: result.to_dict() for name, result in results.items()},
        }
