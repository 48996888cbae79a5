"""
Application Layer - Use Cases and Services

This package contains the services that enforce ledger consistency.
Storage and rates are reached through adapter interfaces.
"""

from swappoints.application.accounts import AccountService
from swappoints.application.transactions import TransactionLedger
from swappoints.application.orders import OrderEngine
from swappoints.application.admin import AdminProjection
from swappoints.application.health import HealthChecker, HealthStatus

__all__ = [
    "AccountService",
    "TransactionLedger",
    "OrderEngine",
    "AdminProjection",
    "HealthChecker",
    "HealthStatus",
]
