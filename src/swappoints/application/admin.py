"""
Admin Projection - Read-Only Operator Views

Listings, the public summary counters, a full JSON export and the balance
reconciliation report. Nothing here writes to the store.

Files that USE this module:
- swappoints.adapters.http.api (/api/stats and /api/admin/* reads)
"""
from __future__ import annotations

import logging
from collections import Counter
from decimal import Decimal
from typing import Dict, List, Optional

from swappoints.adapters.persistence.ledger_store import LedgerStore
from swappoints.adapters.providers.base import RateProvider
from swappoints.domain.models import (
    Order,
    OrderStatus,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)


class AdminProjection:
    def __init__(self, store: LedgerStore, rates: RateProvider):
        self.store = store
        self.rates = rates

    def list_orders(self, status: Optional[OrderStatus] = None) -> List[Order]:
        return self.store.find(
            Order,
            (lambda o: o.status is status) if status else None,
            sort=lambda o: o.created_at,
            descending=True,
        )

    def list_users(self) -> List[User]:
        return self.store.find(User, sort=lambda u: u.created_at, descending=True)

    def list_transactions(
        self,
        tx_type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
    ) -> List[Transaction]:
        def matches(t: Transaction) -> bool:
            return (tx_type is None or t.type is tx_type) and (status is None or t.status is status)

        return self.store.find(Transaction, matches, sort=lambda t: t.sort_key, descending=True)

    def summary(self) -> dict:
        """Aggregate counters behind /api/stats."""
        orders = self.store.find(Order)
        by_status = Counter(o.status.value for o in orders)
        return {
            "users": self.store.count(User),
            "orders": len(orders),
            "ordersByStatus": {s.value: by_status.get(s.value, 0) for s in OrderStatus},
            "transactions": self.store.count(Transaction),
            "rates": self.rates.get().view(),
        }

    def export(self) -> dict:
        """Full snapshot of the ledger for offline inspection."""
        return {
            "exportedAt": utcnow(),
            "store": self.store.health().to_dict(),
            "rates": self.rates.get().view(),
            "users": [u.admin_view() for u in self.list_users()],
            "orders": [o.admin_view() for o in self.list_orders()],
            "transactions": [t.view() for t in self.list_transactions()],
        }

    def reconciliation(self) -> dict:
        """
        Compare every USDT balance with the one implied by the transaction log.

        Expected balance = confirmed deposits - withdrawals that are pending or
        paid out (refunded withdrawals were credited back). A mismatch usually
        points at writes lost during a degraded-store episode.
        """
        expected: Dict[str, Decimal] = {}
        for tx in self.store.find(Transaction):
            delta = Decimal("0")
            if tx.type is TransactionType.DEPOSIT and tx.status is TransactionStatus.CONFIRMED:
                delta = tx.amount
            elif tx.type is TransactionType.WITHDRAW and tx.status is not TransactionStatus.REFUNDED:
                delta = -tx.amount
            expected[tx.user_id] = expected.get(tx.user_id, Decimal("0")) + delta

        users = self.store.find(User)
        mismatches = []
        for user in users:
            want = expected.get(user.id, Decimal("0"))
            if want != user.balance_usdt:
                mismatches.append({
                    "userId": user.id,
                    "phone": user.phone,
                    "expectedUSDT": want,
                    "actualUSDT": user.balance_usdt,
                    "difference": user.balance_usdt - want,
                })

        if mismatches:
            logger.warning("Reconciliation found %d balance mismatch(es)", len(mismatches))
        return {
            "checkedUsers": len(users),
            "consistent": not mismatches,
            "mismatches": mismatches,
            "store": self.store.health().to_dict(),
        }
