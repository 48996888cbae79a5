"""
Shared Utilities - Cross-cutting Concerns

This package contains shared utilities used across all layers:
- Validation
- Per-entity locking
- Password hashing
- Logging configuration
"""

from swappoints.shared.validators import (
    mask_card,
    normalize_phone,
    parse_amount,
    parse_rate,
    validate_card_number,
    validate_payment_address,
    validate_phone,
)
from swappoints.shared.locks import KeyedLocks, order_key, phone_key, user_key
from swappoints.shared.passwords import hash_password, verify_password

__all__ = [
    "validate_phone",
    "normalize_phone",
    "validate_card_number",
    "validate_payment_address",
    "parse_amount",
    "parse_rate",
    "mask_card",
    "KeyedLocks",
    "user_key",
    "order_key",
    "phone_key",
    "hash_password",
    "verify_password",
]
