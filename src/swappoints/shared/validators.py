# src/swappoints/shared/validators.py
"""
Input Validation Utilities - Data Validation

This module provides input validation functions for the service.
It validates phone numbers, payout card numbers, payment addresses and
monetary amounts so that malformed input is rejected before it reaches
the ledger.

Files that USE this module:
- swappoints.config.settings (payment address validator)
- swappoints.application.accounts (phone validation)
- swappoints.application.orders (card and amount validation)
- swappoints.application.transactions (card and amount validation)

Files that this module USES:
- None (pure utility functions)
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional


def validate_phone(phone: str) -> bool:
    """
    Validate phone number format.

    Args:
        phone: Phone number to validate

    Returns:
        True if valid, False otherwise
    """
    if not phone:
        return False

    # Local (0991234567) or international (+380991234567) forms,
    # spaces and dashes allowed between digit groups
    compact = re.sub(r'[\s\-()]', '', phone)
    return bool(re.match(r'^\+?\d{9,15}$', compact))


def normalize_phone(phone: str) -> str:
    """Strip separators so the same number always maps to one account."""
    return re.sub(r'[\s\-()]', '', phone or '')


def validate_card_number(card: str) -> bool:
    """
    Validate payout card number.

    Args:
        card: Card number (spaces allowed)

    Returns:
        True if 12-19 digits, False otherwise
    """
    if not card:
        return False

    digits = card.replace(' ', '')
    return bool(re.match(r'^\d{12,19}$', digits))


def validate_payment_address(address: str) -> bool:
    """
    Validate crypto payment address format.

    Args:
        address: TON/TRON style address

    Returns:
        True if valid, False otherwise
    """
    if not address:
        return False

    return bool(re.match(r'^[A-Za-z0-9_\-]{20,80}$', address))


# Amounts carry at most 9 decimal places (TON precision) and rates at most 4,
# so amount x rate always fits the 28-digit default decimal context exactly.
MAX_AMOUNT = Decimal("100000000")
MAX_AMOUNT_PLACES = 9
MAX_RATE = Decimal("100000")
MAX_RATE_PLACES = 4


def parse_amount(
    value,
    min_val: Optional[Decimal] = Decimal("0"),
    max_val: Decimal = MAX_AMOUNT,
    max_places: int = MAX_AMOUNT_PLACES,
) -> Optional[Decimal]:
    """
    Parse a positive monetary amount.

    Args:
        value: Number or numeric string
        min_val: Exclusive lower bound (default: 0)
        max_val: Inclusive upper bound
        max_places: Maximum number of decimal places

    Returns:
        Decimal amount, or None when the value is not a valid amount
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        amount = Decimal(str(value).strip().replace(',', '.'))
    except (InvalidOperation, ValueError):
        return None

    if not amount.is_finite():
        return None
    if min_val is not None and amount <= min_val:
        return None
    if amount > max_val:
        return None
    if amount != amount.quantize(Decimal(1).scaleb(-max_places)):
        return None
    return amount


def parse_rate(value) -> Optional[Decimal]:
    """Parse a UAH-per-unit exchange rate (positive, bounded, 4 places)."""
    return parse_amount(value, max_val=MAX_RATE, max_places=MAX_RATE_PLACES)


def mask_card(card: Optional[str]) -> str:
    """Mask a card number for log output, keeping the last four digits."""
    if not card:
        return ""
    digits = card.replace(' ', '')
    return f"****{digits[-4:]}"
