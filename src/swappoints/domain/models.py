"""
Domain Models - Ledger Entities

This module contains the entities persisted by the ledger:
- Users with their balances
- Exchange orders and their lifecycle states
- Ledger transactions (deposits, withdrawals, exchanges)
- The conversion rate singleton

Each entity knows its storage collection and key, and converts itself to and
from the JSON document kept by the persistence backends. Field names in those
documents are camelCase, matching the records of the original web service.

Files that USE this module:
- swappoints.adapters.persistence.* (stores and loads entities)
- swappoints.application.* (all services create and mutate entities)
- swappoints.adapters.http.api (renders entity views)
- tests.* (tests build entities for fixtures)

Files that this module USES:
- None (pure domain layer, no external dependencies)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar, Dict, Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dec(value: Any) -> Decimal:
    return Decimal(str(value))


def _opt_dec(value: Any) -> Optional[Decimal]:
    return None if value is None else _dec(value)


def _opt_str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def _ts(value: Optional[str]) -> datetime:
    # Accept both "...Z" and "+00:00"
    if not value:
        return utcnow()
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(timezone.utc)


class Currency(str, enum.Enum):
    USDT = "USDT"
    TON = "TON"
    UAH = "UAH"


class Direction(str, enum.Enum):
    USDT_TO_UAH = "USDT_TO_UAH"
    TON_TO_UAH = "TON_TO_UAH"

    @property
    def source_currency(self) -> Currency:
        return Currency.USDT if self is Direction.USDT_TO_UAH else Currency.TON


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    RECEIVED = "received"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


# Allowed order transitions; states missing as keys are terminal.
ORDER_TRANSITIONS: Dict[OrderStatus, frozenset] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.CONFIRMED,
        OrderStatus.RECEIVED,
        OrderStatus.EXPIRED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.RECEIVED: frozenset({OrderStatus.CONFIRMED}),
}


class TransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    EXCHANGE = "exchange"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REFUNDED = "refunded"


@dataclass
class User:
    """
    Ledger account identified by phone number.

    Attributes:
        id: Generated identifier (``user_`` prefix)
        phone: Unique phone number
        balance_usdt: USDT balance, never negative
        balance_uah: UAH balance, never negative
        total_exchanges: Number of confirmed exchange orders
        total_exchanged_uah: UAH volume of confirmed exchange orders
        password_hash: Salted hash, or None for phone-only accounts
    """
    collection: ClassVar[str] = "users"

    id: str
    phone: str
    balance_usdt: Decimal = Decimal("0")
    balance_uah: Decimal = Decimal("0")
    total_exchanges: int = 0
    total_exchanged_uah: Decimal = Decimal("0")
    password_hash: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> str:
        return self.id

    def balance(self, currency: Currency) -> Decimal:
        if currency is Currency.USDT:
            return self.balance_usdt
        if currency is Currency.UAH:
            return self.balance_uah
        raise ValueError(f"No balance is kept in {currency.value}")

    def set_balance(self, currency: Currency, value: Decimal) -> None:
        if currency is Currency.USDT:
            self.balance_usdt = value
        elif currency is Currency.UAH:
            self.balance_uah = value
        else:
            raise ValueError(f"No balance is kept in {currency.value}")

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "phone": self.phone,
            "balanceUSDT": str(self.balance_usdt),
            "balanceUAH": str(self.balance_uah),
            "totalExchanges": self.total_exchanges,
            "totalExchangedUAH": str(self.total_exchanged_uah),
            "passwordHash": self.password_hash,
            "createdAt": self.created_at.isoformat(),
        }

    @staticmethod
    def from_json(data: dict) -> "User":
        return User(
            id=data["id"],
            phone=data["phone"],
            balance_usdt=_dec(data.get("balanceUSDT", 0)),
            balance_uah=_dec(data.get("balanceUAH", 0)),
            total_exchanges=int(data.get("totalExchanges", 0)),
            total_exchanged_uah=_dec(data.get("totalExchangedUAH", 0)),
            password_hash=data.get("passwordHash"),
            created_at=_ts(data.get("createdAt")),
        )

    def public_view(self) -> dict:
        """Login response: identity plus balances."""
        return {
            "id": self.id,
            "phone": self.phone,
            "balanceUSDT": self.balance_usdt,
            "balanceUAH": self.balance_uah,
        }

    def balances_view(self) -> dict:
        return {
            "balanceUSDT": self.balance_usdt,
            "balanceUAH": self.balance_uah,
            "totalExchanges": self.total_exchanges,
            "totalExchangedUAH": self.total_exchanged_uah,
        }

    def admin_view(self) -> dict:
        return {
            **self.public_view(),
            "totalExchanges": self.total_exchanges,
            "totalExchangedUAH": self.total_exchanged_uah,
            "hasPassword": self.password_hash is not None,
            "createdAt": self.created_at,
        }


@dataclass
class Order:
    """Exchange order; amount_uah and rate are frozen at creation."""
    collection: ClassVar[str] = "orders"

    order_id: str
    direction: Direction
    amount: Decimal
    amount_uah: Decimal
    rate: Decimal
    card_number: str
    payment_address: str
    expires_at: datetime
    status: OrderStatus = OrderStatus.PENDING
    user_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return self.order_id

    def is_expired(self, now: datetime) -> bool:
        return self.status is OrderStatus.PENDING and now > self.expires_at

    def to_json(self) -> dict:
        return {
            "orderId": self.order_id,
            "userId": self.user_id,
            "direction": self.direction.value,
            "amount": str(self.amount),
            "amountUAH": str(self.amount_uah),
            "rate": str(self.rate),
            "cardNumber": self.card_number,
            "paymentAddress": self.payment_address,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @staticmethod
    def from_json(data: dict) -> "Order":
        return Order(
            order_id=data["orderId"],
            user_id=data.get("userId"),
            direction=Direction(data["direction"]),
            amount=_dec(data["amount"]),
            amount_uah=_dec(data["amountUAH"]),
            rate=_dec(data["rate"]),
            card_number=data["cardNumber"],
            payment_address=data["paymentAddress"],
            status=OrderStatus(data.get("status", OrderStatus.PENDING.value)),
            created_at=_ts(data.get("createdAt")),
            expires_at=_ts(data["expiresAt"]),
            updated_at=_ts(data["updatedAt"]) if data.get("updatedAt") else None,
        )

    def receipt_view(self) -> dict:
        """Creation response: where to pay and what will be paid out."""
        return {
            "orderId": self.order_id,
            "paymentAddress": self.payment_address,
            "amount": self.amount,
            "amountUAH": self.amount_uah,
            "expiresAt": self.expires_at,
        }

    def status_view(self) -> dict:
        return {
            "status": self.status.value,
            "amount": self.amount,
            "amountUAH": self.amount_uah,
        }

    def admin_view(self) -> dict:
        return {
            "orderId": self.order_id,
            "userId": self.user_id,
            "direction": self.direction.value,
            "amount": self.amount,
            "amountUAH": self.amount_uah,
            "rate": self.rate,
            "cardNumber": self.card_number,
            "paymentAddress": self.payment_address,
            "status": self.status.value,
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Transaction:
    """Ledger entry for a deposit, withdrawal or exchange."""
    collection: ClassVar[str] = "transactions"

    id: str
    user_id: str
    type: TransactionType
    amount: Decimal
    currency: Currency
    status: TransactionStatus = TransactionStatus.PENDING
    uah_amount: Optional[Decimal] = None
    card: Optional[str] = None
    tx_hash: Optional[str] = None
    order_id: Optional[str] = None
    date: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> str:
        return self.id

    @property
    def sort_key(self) -> Tuple[datetime, str]:
        """Creation order: timestamp, then the time-ordered part of the id."""
        return self.date, self.id.partition("_")[2]

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type.value,
            "amount": str(self.amount),
            "currency": self.currency.value,
            "uahAmount": _opt_str(self.uah_amount),
            "card": self.card,
            "txHash": self.tx_hash,
            "orderId": self.order_id,
            "status": self.status.value,
            "date": self.date.isoformat(),
        }

    @staticmethod
    def from_json(data: dict) -> "Transaction":
        return Transaction(
            id=data["id"],
            user_id=data["userId"],
            type=TransactionType(data["type"]),
            amount=_dec(data["amount"]),
            currency=Currency(data.get("currency", Currency.USDT.value)),
            uah_amount=_opt_dec(data.get("uahAmount")),
            card=data.get("card"),
            tx_hash=data.get("txHash"),
            order_id=data.get("orderId"),
            status=TransactionStatus(data.get("status", TransactionStatus.PENDING.value)),
            date=_ts(data.get("date")),
        )

    def view(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type.value,
            "amount": self.amount,
            "currency": self.currency.value,
            "uahAmount": self.uah_amount,
            "card": self.card,
            "txHash": self.tx_hash,
            "orderId": self.order_id,
            "status": self.status.value,
            "date": self.date,
        }


@dataclass
class Rates:
    """Singleton conversion rates, UAH per one unit of crypto."""
    collection: ClassVar[str] = "rates"
    SINGLETON_KEY: ClassVar[str] = "current"

    usdt: Decimal
    ton: Decimal
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> str:
        return self.SINGLETON_KEY

    def rate(self, currency: Currency) -> Decimal:
        if currency is Currency.USDT:
            return self.usdt
        if currency is Currency.TON:
            return self.ton
        raise ValueError(f"No UAH rate for {currency.value}")

    def to_json(self) -> dict:
        return {
            "USDT": str(self.usdt),
            "TON": str(self.ton),
            "updatedAt": self.updated_at.isoformat(),
        }

    @staticmethod
    def from_json(data: dict) -> "Rates":
        return Rates(
            usdt=_dec(data["USDT"]),
            ton=_dec(data["TON"]),
            updated_at=_ts(data.get("updatedAt")),
        )

    def view(self) -> dict:
        return {"USDT": self.usdt, "TON": self.ton}
