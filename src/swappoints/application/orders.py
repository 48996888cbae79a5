"""
Order Engine - Exchange Order Lifecycle

This module owns the order state machine:

    pending  -> confirmed | received | expired | cancelled
    received -> confirmed

All other states are terminal. Expiry is evaluated lazily: every operation
that loads an order first moves an overdue pending order to ``expired`` and
persists it, so there is no background scheduler. ``expire_overdue`` applies
the same rule to every order before admin listings.

Repeating a transition into the state an order is already in (confirm twice,
received twice, cancel twice) succeeds without side effects.

Files that USE this module:
- swappoints.app (service wiring)
- swappoints.adapters.http.api (create-order, order status, admin actions)

Files that this module USES:
- swappoints.adapters.providers.base (rate snapshot at creation)
- swappoints.adapters.persistence.ledger_store (LedgerStore)
- swappoints.application.accounts (requesting-user lookup)
- swappoints.application.transactions (exchange entry on confirmation)
"""
from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Callable, Optional

from swappoints.adapters.persistence.ledger_store import LedgerStore
from swappoints.adapters.providers.base import RateProvider
from swappoints.application.accounts import AccountService
from swappoints.application.transactions import TransactionLedger
from swappoints.domain.errors import InvalidTransitionError, NotFoundError, ValidationError
from swappoints.domain.models import ORDER_TRANSITIONS, Direction, Order, OrderStatus, utcnow
from swappoints.shared.locks import KeyedLocks, order_key
from swappoints.shared.validators import mask_card, parse_amount, validate_card_number

logger = logging.getLogger(__name__)

DEFAULT_ORDER_TTL = timedelta(minutes=30)
_ID_ALPHABET = string.ascii_lowercase + string.digits


def _new_order_id(now: datetime) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"SWAP-{int(now.timestamp() * 1000)}-{suffix}"


class OrderEngine:
    """Creates orders and drives them through their lifecycle."""

    def __init__(
        self,
        store: LedgerStore,
        rates: RateProvider,
        locks: KeyedLocks,
        accounts: AccountService,
        ledger: TransactionLedger,
        payment_address: str,
        ttl: timedelta = DEFAULT_ORDER_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the engine.

        Args:
            store: Ledger store holding orders
            rates: Provider snapshotted at creation time
            locks: Per-entity lock registry
            accounts: Used to resolve the optional requesting user
            ledger: Records exchange entries for confirmed user orders
            payment_address: Crypto address customers send funds to
            ttl: Time a pending order stays open
            clock: Returns the current UTC time (injectable for tests)
        """
        self.store = store
        self.rates = rates
        self.locks = locks
        self.accounts = accounts
        self.ledger = ledger
        self.payment_address = payment_address
        self.ttl = ttl
        self.clock = clock

    def create(self, direction, amount, card_number: str, user_id: Optional[str] = None) -> Order:
        """
        Open a pending order priced at the current rate.

        Args:
            direction: USDT_TO_UAH or TON_TO_UAH
            amount: Source-currency amount, > 0
            card_number: Payout card
            user_id: Optional requesting user (enables exchange totals)

        Returns:
            The persisted Order; amount_uah is frozen from here on
        """
        try:
            direction = Direction(direction)
        except ValueError:
            raise ValidationError(f"Unknown direction: {direction}")

        value = parse_amount(amount)
        if value is None:
            raise ValidationError("Amount must be greater than zero")
        if not validate_card_number(card_number):
            raise ValidationError("Invalid card number")
        if user_id:
            self.accounts.get_user(user_id)

        rate = self.rates.rate(direction.source_currency)
        now = self.clock()
        order = Order(
            order_id=_new_order_id(now),
            user_id=user_id or None,
            direction=direction,
            amount=value,
            amount_uah=value * rate,
            rate=rate,
            card_number=card_number.replace(" ", ""),
            payment_address=self.payment_address,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self.store.put(order)
        logger.info(
            "Order %s created: %s %s -> %s UAH at %s, payout to %s",
            order.order_id, value, direction.source_currency.value, order.amount_uah, rate,
            mask_card(order.card_number),
        )
        return order

    def _load(self, order_id: str) -> Order:
        """Fetch an order and apply lazy expiry. Caller holds the order lock."""
        order = self.store.get(Order, order_id) if order_id else None
        if order is None:
            raise NotFoundError("Order not found")

        now = self.clock()
        if order.is_expired(now):
            order.status = OrderStatus.EXPIRED
            order.updated_at = now
            self.store.put(order)
            logger.info("Order %s expired (deadline %s)", order.order_id, order.expires_at.isoformat())
        return order

    def _transition(self, order: Order, target: OrderStatus) -> Order:
        if target not in ORDER_TRANSITIONS.get(order.status, frozenset()):
            raise InvalidTransitionError("order", order.status.value, target.value)
        previous = order.status
        order.status = target
        order.updated_at = self.clock()
        self.store.put(order)
        logger.info("Order %s: %s -> %s", order.order_id, previous.value, target.value)
        return order

    def get_status(self, order_id: str) -> Order:
        with self.locks.hold(order_key(order_id)):
            return self._load(order_id)

    def mark_received(self, order_id: str) -> Order:
        """Operator saw the inbound funds. No balance effect."""
        with self.locks.hold(order_key(order_id)):
            order = self._load(order_id)
            if order.status is OrderStatus.RECEIVED:
                return order
            return self._transition(order, OrderStatus.RECEIVED)

    def confirm(self, order_id: str) -> Order:
        """
        Operator completed the payout.

        No balance is credited. For orders placed by a known user the real
        transition (not a repeat) also records the exchange entry.
        """
        with self.locks.hold(order_key(order_id)):
            order = self._load(order_id)
            if order.status is OrderStatus.CONFIRMED:
                logger.info("Order %s already confirmed", order.order_id)
                return order
            previous_status, previous_updated = order.status, order.updated_at
            self._transition(order, OrderStatus.CONFIRMED)
            if order.user_id:
                try:
                    self.ledger.record_exchange(order)
                except Exception:
                    # A repeated confirm retries the exchange entry from the restored state
                    logger.error("Exchange entry for order %s failed, reverting to %s", order.order_id, previous_status.value)
                    order.status, order.updated_at = previous_status, previous_updated
                    self.store.put(order)
                    raise
            return order

    def cancel(self, order_id: str) -> Order:
        with self.locks.hold(order_key(order_id)):
            order = self._load(order_id)
            if order.status is OrderStatus.CANCELLED:
                return order
            return self._transition(order, OrderStatus.CANCELLED)

    def expire_overdue(self) -> int:
        """
        Expire every overdue pending order.

        Returns:
            Number of orders moved to expired
        """
        now = self.clock()
        expired = 0
        for candidate in self.store.find(Order, lambda o: o.is_expired(now)):
            with self.locks.hold(order_key(candidate.order_id)):
                if self._load(candidate.order_id).status is OrderStatus.EXPIRED:
                    expired += 1
        return expired
