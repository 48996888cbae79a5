# tests/test_validators.py
"""
Validator Tests - Amounts, Rates, Phones and Cards

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- swappoints.shared.validators
"""
from decimal import Decimal

import pytest  # Testing framework for writing and running tests

from swappoints.shared.validators import (
    MAX_AMOUNT,
    mask_card,
    parse_amount,
    parse_rate,
    validate_card_number,
    validate_phone,
)


class TestParseAmount:
    @pytest.mark.parametrize("value, expected", [
        ("10", Decimal("10")),
        ("2,5", Decimal("2.5")),
        (0.5, Decimal("0.5")),
        ("0.000000001", Decimal("0.000000001")),
        ("1.500000000000", Decimal("1.5")),
        (MAX_AMOUNT, MAX_AMOUNT),
    ])
    def test_valid_amounts(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", [
        None, True, "", "abc", "0", "-3", "NaN", "Infinity",
        "1E+999999", "100000000.1", "0.0000000001",
        "1.00000000000000000000000000001",
    ])
    def test_rejected_amounts(self, value):
        assert parse_amount(value) is None

    def test_bounded_product_is_exact(self):
        amount = parse_amount("99999999.999999999")
        rate = parse_rate("99999.9999")

        assert amount * rate == Decimal("9999999989999.9999000000001")


class TestParseRate:
    def test_valid_rate(self):
        assert parse_rate("46.25") == Decimal("46.25")

    @pytest.mark.parametrize("value", ["0", "100000.5", "46.12345", "1E+10"])
    def test_rejected_rates(self, value):
        assert parse_rate(value) is None


class TestFormats:
    @pytest.mark.parametrize("phone", ["0991234567", "+380991234567", "099 123-45-67"])
    def test_valid_phones(self, phone):
        assert validate_phone(phone)

    @pytest.mark.parametrize("card", ["4111111111111111", "4111 1111 1111 1111", "123456789012"])
    def test_valid_cards(self, card):
        assert validate_card_number(card)

    def test_mask_card(self):
        assert mask_card("4111 1111 1111 1234") == "****1234"
