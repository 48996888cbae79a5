"""
Transaction Ledger - Deposits, Withdrawals and Exchange Entries

This module records every ledger entry and ties each status change to the
matching AccountService balance mutation:

- deposit: requested as pending, credited only when an operator confirms it
- withdraw: debited at request time (debit-on-request), later confirmed when
  the payout is done or refunded as an explicit reconciliation step
- exchange: written as confirmed when an order placed by a known user is
  confirmed; counts toward exchange totals, moves no balance

All read-modify-write sequences run under the owning user's lock.

Files that USE this module:
- swappoints.app (service wiring)
- swappoints.application.orders (exchange entries on confirmation)
- swappoints.adapters.http.api (deposit, withdraw, history, admin actions)

Files that this module USES:
- swappoints.application.accounts (credit, debit, record_exchange)
- swappoints.adapters.providers.base (USDT rate snapshot for withdrawals)
- swappoints.adapters.persistence.ledger_store (LedgerStore)
"""
from __future__ import annotations

import logging
import secrets
import threading
import time
from typing import List, Optional, Tuple

from swappoints.adapters.persistence.ledger_store import LedgerStore
from swappoints.adapters.providers.base import RateProvider
from swappoints.application.accounts import AccountService
from swappoints.domain.errors import InvalidTransitionError, NotFoundError, ValidationError
from swappoints.domain.models import (
    Currency,
    Order,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
)
from swappoints.shared.locks import KeyedLocks, user_key
from swappoints.shared.validators import mask_card, parse_amount, validate_card_number

logger = logging.getLogger(__name__)


_id_lock = threading.Lock()
_last_stamp = 0


def _new_tx_id(prefix: str) -> str:
    """Time-ordered id: strictly increasing nanosecond stamp plus a random tail."""
    global _last_stamp
    with _id_lock:
        _last_stamp = max(time.time_ns(), _last_stamp + 1)
        stamp = _last_stamp
    return f"{prefix}_{stamp:016x}{secrets.token_hex(3)}"


def _require_amount(amount):
    value = parse_amount(amount)
    if value is None:
        raise ValidationError("Amount must be greater than zero")
    return value


class TransactionLedger:
    """Ledger entries and their balance effects."""

    def __init__(
        self,
        store: LedgerStore,
        accounts: AccountService,
        rates: RateProvider,
        locks: KeyedLocks,
    ):
        self.store = store
        self.accounts = accounts
        self.rates = rates
        self.locks = locks

    def get(self, transaction_id: str) -> Transaction:
        tx = self.store.get(Transaction, transaction_id) if transaction_id else None
        if tx is None:
            raise NotFoundError("Transaction not found")
        return tx

    def _get_typed(self, transaction_id: str, tx_type: TransactionType) -> Transaction:
        tx = self.store.get(Transaction, transaction_id) if transaction_id else None
        if tx is None or tx.type is not tx_type:
            raise NotFoundError(f"{tx_type.value.capitalize()} transaction not found")
        return tx

    # --- deposits ---------------------------------------------------------

    def request_deposit(self, user_id: str, amount) -> Transaction:
        """Create a pending deposit; the balance is credited on confirmation."""
        value = _require_amount(amount)
        self.accounts.get_user(user_id)

        tx = Transaction(
            id=_new_tx_id("dep"),
            user_id=user_id,
            type=TransactionType.DEPOSIT,
            amount=value,
            currency=Currency.USDT,
        )
        self.store.put(tx)
        logger.info("Deposit %s requested by %s: %s USDT", tx.id, user_id, value)
        return tx

    def confirm_deposit(self, user_id: str, amount, tx_hash: str) -> Tuple[Transaction, User]:
        """
        Confirm the oldest pending deposit of ``amount`` for ``user_id`` and credit it.

        Raises:
            NotFoundError: unknown user, or no pending deposit of that amount
        """
        value = _require_amount(amount)
        if not tx_hash or not tx_hash.strip():
            raise ValidationError("Transaction hash is required")

        with self.locks.hold(user_key(user_id)):
            self.accounts.get_user(user_id)
            matches = self.store.find(
                Transaction,
                lambda t: (
                    t.user_id == user_id
                    and t.type is TransactionType.DEPOSIT
                    and t.status is TransactionStatus.PENDING
                    and t.amount == value
                ),
                sort=lambda t: t.sort_key,
            )
            if not matches:
                raise NotFoundError(f"No pending deposit of {value} USDT for this user")
            return self._settle_deposit(matches[0], tx_hash.strip())

    def confirm_deposit_by_id(self, transaction_id: str, tx_hash: Optional[str] = None) -> Tuple[Transaction, User]:
        """Operator confirmation of one specific deposit; repeats are no-ops."""
        tx = self._get_typed(transaction_id, TransactionType.DEPOSIT)

        with self.locks.hold(user_key(tx.user_id)):
            tx = self._get_typed(transaction_id, TransactionType.DEPOSIT)
            if tx.status is TransactionStatus.CONFIRMED:
                logger.info("Deposit %s already confirmed", tx.id)
                return tx, self.accounts.get_user(tx.user_id)
            return self._settle_deposit(tx, (tx_hash or "").strip() or None)

    def _settle_deposit(self, tx: Transaction, tx_hash: Optional[str]) -> Tuple[Transaction, User]:
        # Mark first: a failure after this point can only under-credit, never double-credit
        tx.status = TransactionStatus.CONFIRMED
        if tx_hash:
            tx.tx_hash = tx_hash
        self.store.put(tx)
        try:
            user = self.accounts.credit(tx.user_id, tx.currency, tx.amount)
        except Exception:
            tx.status = TransactionStatus.PENDING
            self.store.put(tx)
            raise
        logger.info("Deposit %s confirmed (hash=%s)", tx.id, tx.tx_hash)
        return tx, user

    # --- withdrawals ------------------------------------------------------

    def request_withdraw(self, user_id: str, amount, card: str) -> Tuple[Transaction, User]:
        """
        Debit ``amount`` USDT now and record a pending withdrawal.

        The UAH payout is fixed at the USDT rate of the moment of the request.

        Raises:
            InsufficientFundsError: balance below ``amount`` (balance unchanged)
        """
        value = _require_amount(amount)
        if not validate_card_number(card):
            raise ValidationError("Invalid card number")

        with self.locks.hold(user_key(user_id)):
            rate = self.rates.rate(Currency.USDT)
            user = self.accounts.debit(user_id, Currency.USDT, value)

            tx = Transaction(
                id=_new_tx_id("tx"),
                user_id=user_id,
                type=TransactionType.WITHDRAW,
                amount=value,
                currency=Currency.USDT,
                uah_amount=value * rate,
                card=card.replace(" ", ""),
            )
            try:
                self.store.put(tx)
            except Exception:
                logger.error("Failed to record withdrawal for %s, reversing debit of %s USDT", user_id, value)
                self.accounts.credit(user_id, Currency.USDT, value)
                raise

        logger.info(
            "Withdrawal %s requested by %s: %s USDT -> %s UAH to %s",
            tx.id, user_id, value, tx.uah_amount, mask_card(tx.card),
        )
        return tx, user

    def confirm_withdraw(self, transaction_id: str) -> Transaction:
        """Mark a withdrawal as paid out; repeats are no-ops."""
        tx = self._get_typed(transaction_id, TransactionType.WITHDRAW)

        with self.locks.hold(user_key(tx.user_id)):
            tx = self._get_typed(transaction_id, TransactionType.WITHDRAW)
            if tx.status is TransactionStatus.CONFIRMED:
                return tx
            if tx.status is not TransactionStatus.PENDING:
                raise InvalidTransitionError("withdrawal", tx.status.value, TransactionStatus.CONFIRMED.value)
            tx.status = TransactionStatus.CONFIRMED
            self.store.put(tx)

        logger.info("Withdrawal %s paid out", tx.id)
        return tx

    def refund_withdraw(self, transaction_id: str) -> Tuple[Transaction, User]:
        """
        Reconcile a never-fulfilled withdrawal: mark it refunded and credit it back.

        Raises:
            InvalidTransitionError: the withdrawal was already paid out
        """
        tx = self._get_typed(transaction_id, TransactionType.WITHDRAW)

        with self.locks.hold(user_key(tx.user_id)):
            tx = self._get_typed(transaction_id, TransactionType.WITHDRAW)
            if tx.status is TransactionStatus.REFUNDED:
                return tx, self.accounts.get_user(tx.user_id)
            if tx.status is not TransactionStatus.PENDING:
                raise InvalidTransitionError("withdrawal", tx.status.value, TransactionStatus.REFUNDED.value)

            tx.status = TransactionStatus.REFUNDED
            self.store.put(tx)
            try:
                user = self.accounts.credit(tx.user_id, tx.currency, tx.amount)
            except Exception:
                tx.status = TransactionStatus.PENDING
                self.store.put(tx)
                raise

        logger.info("Withdrawal %s refunded: %s %s back to %s", tx.id, tx.amount, tx.currency.value, tx.user_id)
        return tx, user

    # --- exchanges --------------------------------------------------------

    def record_exchange(self, order: Order) -> Transaction:
        """
        Bump the user's exchange totals and write the exchange entry for a confirmed order.

        Totals go first; if the entry cannot be written they are taken back, so
        either both land or neither does.
        """
        with self.locks.hold(user_key(order.user_id)):
            self.accounts.record_exchange(order.user_id, order.amount_uah)
            tx = Transaction(
                id=_new_tx_id("ex"),
                user_id=order.user_id,
                type=TransactionType.EXCHANGE,
                amount=order.amount,
                currency=order.direction.source_currency,
                status=TransactionStatus.CONFIRMED,
                uah_amount=order.amount_uah,
                card=order.card_number,
                order_id=order.order_id,
            )
            try:
                self.store.put(tx)
            except Exception:
                logger.error("Failed to record exchange for order %s, reverting totals of %s", order.order_id, order.user_id)
                self.accounts.record_exchange(order.user_id, order.amount_uah, undo=True)
                raise

        logger.info("Exchange %s recorded for order %s", tx.id, order.order_id)
        return tx

    # --- queries ----------------------------------------------------------

    def history(self, user_id: str) -> List[Transaction]:
        """All entries of ``user_id``, most recent first."""
        return self.store.find(
            Transaction,
            lambda t: t.user_id == user_id,
            sort=lambda t: t.sort_key,
            descending=True,
        )
