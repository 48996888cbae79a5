"""
Account Service - User Identity and Balance Mutations

This module owns user registration and login and is the only code path that
changes balance fields. Deposits, withdrawals, refunds and exchange totals all
go through credit/debit/record_exchange here; callers are responsible for the
Transaction record that mirrors each mutation.

Files that USE this module:
- swappoints.app (service wiring)
- swappoints.application.transactions (credits and debits)
- swappoints.application.orders (requesting-user lookup)
- swappoints.adapters.http.api (login, balances)

Files that this module USES:
- swappoints.adapters.persistence.ledger_store (LedgerStore)
- swappoints.shared.locks (per-user and per-phone locks)
- swappoints.shared.passwords (salted password hashing)
- swappoints.shared.validators (phone and amount validation)
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional, Tuple

from swappoints.adapters.persistence.ledger_store import LedgerStore
from swappoints.domain.errors import (
    AlreadyExistsError,
    InsufficientFundsError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from swappoints.domain.models import Currency, User
from swappoints.shared.locks import KeyedLocks, phone_key, user_key
from swappoints.shared.passwords import hash_password, verify_password
from swappoints.shared.validators import normalize_phone, parse_amount, validate_phone

logger = logging.getLogger(__name__)

BALANCE_CURRENCIES = (Currency.USDT, Currency.UAH)


def _new_user_id() -> str:
    return f"user_{uuid.uuid4().hex[:16]}"


class AccountService:
    """Users, login and the balance mutators."""

    def __init__(self, store: LedgerStore, locks: KeyedLocks, password_auth_enabled: bool = True):
        self.store = store
        self.locks = locks
        self.password_auth_enabled = password_auth_enabled

    # --- identity ---------------------------------------------------------

    def _find_by_phone(self, phone: str) -> Optional[User]:
        matches = self.store.find(User, lambda u: u.phone == phone)
        return matches[0] if matches else None

    def login_or_register(
        self,
        phone: str,
        password: Optional[str] = None,
        is_register: bool = False,
    ) -> User:
        """
        Register a new user or log an existing one in.

        Args:
            phone: Phone number identifying the account
            password: Plain password as typed by the user (hashed, never stored)
            is_register: Create the account instead of logging in

        Returns:
            The registered or logged-in User

        Raises:
            ValidationError: malformed phone, or missing password on registration
            AlreadyExistsError: registering a taken phone
            NotFoundError: logging in with an unknown phone
            UnauthorizedError: wrong or missing password for a protected account
        """
        if not phone or not validate_phone(phone):
            raise ValidationError("Invalid phone number")
        phone = normalize_phone(phone)

        with self.locks.hold(phone_key(phone)):
            existing = self._find_by_phone(phone)

            if is_register:
                if existing is not None:
                    raise AlreadyExistsError("Phone number is already registered")
                if self.password_auth_enabled and not password:
                    raise ValidationError("Password is required")

                user = User(
                    id=_new_user_id(),
                    phone=phone,
                    password_hash=hash_password(password) if password else None,
                )
                self.store.put(user)
                logger.info("Registered user %s", user.id)
                return user

            if existing is None:
                raise NotFoundError("User not found")

            if self.password_auth_enabled and existing.password_hash:
                if not password or not verify_password(password, existing.password_hash):
                    logger.info("Rejected login for user %s: bad credentials", existing.id)
                    raise UnauthorizedError("Invalid phone or password")

            logger.info("User %s logged in", existing.id)
            return existing

    def get_user(self, user_id: str) -> User:
        user = self.store.get(User, user_id) if user_id else None
        if user is None:
            raise NotFoundError("User not found")
        return user

    def get_balances(self, user_id: str) -> dict:
        return self.get_user(user_id).balances_view()

    # --- balance mutators -------------------------------------------------

    @staticmethod
    def _check(currency, amount) -> Tuple[Currency, Decimal]:
        try:
            currency = Currency(currency)
        except ValueError:
            raise ValidationError(f"Unknown currency: {currency}")
        if currency not in BALANCE_CURRENCIES:
            raise ValidationError(f"No balance is kept in {currency.value}")
        value = parse_amount(amount)
        if value is None:
            raise ValidationError("Amount must be greater than zero")
        return currency, value

    def credit(self, user_id: str, currency: Currency, amount) -> User:
        """Add ``amount`` to the user's ``currency`` balance."""
        currency, value = self._check(currency, amount)
        with self.locks.hold(user_key(user_id)):
            user = self.get_user(user_id)
            user.set_balance(currency, user.balance(currency) + value)
            self.store.put(user)
        logger.info("Credited %s %s to %s (balance %s)", value, currency.value, user_id, user.balance(currency))
        return user

    def debit(self, user_id: str, currency: Currency, amount) -> User:
        """
        Subtract ``amount`` from the user's ``currency`` balance.

        Raises:
            InsufficientFundsError: the balance would go negative (nothing is changed)
        """
        currency, value = self._check(currency, amount)
        with self.locks.hold(user_key(user_id)):
            user = self.get_user(user_id)
            current = user.balance(currency)
            if current < value:
                raise InsufficientFundsError(
                    f"Insufficient funds: {current} {currency.value} available, {value} requested"
                )
            user.set_balance(currency, current - value)
            self.store.put(user)
        logger.info("Debited %s %s from %s (balance %s)", value, currency.value, user_id, user.balance(currency))
        return user

    def record_exchange(self, user_id: str, amount_uah: Decimal, undo: bool = False) -> User:
        """
        Count one completed exchange in the user's totals (no balance change).

        With ``undo`` the same exchange is taken back out of the totals.
        """
        sign = -1 if undo else 1
        with self.locks.hold(user_key(user_id)):
            user = self.get_user(user_id)
            user.total_exchanges += sign
            user.total_exchanged_uah += sign * Decimal(amount_uah)
            self.store.put(user)
        return user
