"""
Domain Layer - Pure Business Objects

This package contains ledger entities and business errors.
No dependencies on infrastructure or external systems.
"""

from swappoints.domain.models import (
    Currency,
    Direction,
    Order,
    OrderStatus,
    Rates,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
)
from swappoints.domain.errors import (
    AlreadyExistsError,
    ConflictError,
    DomainError,
    InsufficientFundsError,
    InvalidTransitionError,
    NotFoundError,
    StoreUnavailableError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "Currency",
    "Direction",
    "Order",
    "OrderStatus",
    "Rates",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "User",
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "AlreadyExistsError",
    "InvalidTransitionError",
    "InsufficientFundsError",
    "UnauthorizedError",
    "StoreUnavailableError",
]
