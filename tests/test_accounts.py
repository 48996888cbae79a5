# tests/test_accounts.py
"""
Account Service Tests - Registration, Login and Balance Mutators

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- swappoints.application.accounts (AccountService)
- tests.conftest (services fixture)
"""
from decimal import Decimal

import pytest  # Testing framework for writing and running tests

from swappoints.application import AccountService
from swappoints.domain.errors import (
    AlreadyExistsError,
    InsufficientFundsError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from swappoints.domain.models import Currency, User

from tests.support import PHONE


@pytest.fixture
def accounts(services):
    return services.accounts


class TestRegistration:
    def test_register_creates_zero_balance_user(self, accounts):
        user = accounts.login_or_register(PHONE, password="pw-123456", is_register=True)

        assert user.id.startswith("user_")
        assert user.balance_usdt == Decimal("0")
        assert user.balance_uah == Decimal("0")
        assert user.public_view()["phone"] == PHONE

    def test_password_is_hashed(self, accounts):
        user = accounts.login_or_register(PHONE, password="pw-123456", is_register=True)

        assert user.password_hash
        assert "pw-123456" not in user.password_hash
        assert "passwordHash" not in user.public_view()
        assert user.admin_view()["hasPassword"] is True

    def test_duplicate_phone_rejected(self, accounts):
        accounts.login_or_register(PHONE, password="pw", is_register=True)
        with pytest.raises(AlreadyExistsError):
            accounts.login_or_register(PHONE, password="other", is_register=True)

    def test_phone_is_normalized(self, accounts):
        accounts.login_or_register("099 123-45-67", password="pw", is_register=True)
        with pytest.raises(AlreadyExistsError):
            accounts.login_or_register(PHONE, password="pw", is_register=True)

    @pytest.mark.parametrize("phone", ["", "abc", "12345", "+1234567890123456"])
    def test_invalid_phone_rejected(self, accounts, phone):
        with pytest.raises(ValidationError):
            accounts.login_or_register(phone, password="pw", is_register=True)

    def test_password_required_on_register(self, accounts):
        with pytest.raises(ValidationError):
            accounts.login_or_register(PHONE, is_register=True)

    def test_phone_only_registration_when_passwords_disabled(self, store, services):
        accounts = AccountService(store, services.locks, password_auth_enabled=False)
        user = accounts.login_or_register(PHONE, is_register=True)

        assert user.password_hash is None
        assert accounts.login_or_register(PHONE).id == user.id


class TestLogin:
    def test_login_with_correct_password(self, accounts):
        registered = accounts.login_or_register(PHONE, password="pw-123456", is_register=True)
        assert accounts.login_or_register(PHONE, password="pw-123456").id == registered.id

    def test_wrong_password_rejected(self, accounts):
        accounts.login_or_register(PHONE, password="pw-123456", is_register=True)
        with pytest.raises(UnauthorizedError):
            accounts.login_or_register(PHONE, password="nope")

    def test_missing_password_rejected(self, accounts):
        accounts.login_or_register(PHONE, password="pw-123456", is_register=True)
        with pytest.raises(UnauthorizedError):
            accounts.login_or_register(PHONE)

    def test_unknown_phone_not_found(self, accounts):
        with pytest.raises(NotFoundError):
            accounts.login_or_register(PHONE, password="pw")

    def test_legacy_phone_only_account_logs_in(self, accounts, store):
        store.put(User(id="user_legacy", phone=PHONE))
        assert accounts.login_or_register(PHONE).id == "user_legacy"


class TestBalances:
    def test_get_balances_unknown_user(self, accounts):
        with pytest.raises(NotFoundError):
            accounts.get_balances("user_missing")

    def test_credit_and_debit(self, accounts, user):
        accounts.credit(user.id, Currency.USDT, Decimal("10"))
        updated = accounts.debit(user.id, Currency.USDT, Decimal("4"))

        assert updated.balance_usdt == Decimal("6")
        assert accounts.get_balances(user.id)["balanceUSDT"] == Decimal("6")

    def test_debit_over_balance_changes_nothing(self, accounts, user):
        accounts.credit(user.id, Currency.USDT, Decimal("5"))

        with pytest.raises(InsufficientFundsError):
            accounts.debit(user.id, Currency.USDT, Decimal("5.01"))

        assert accounts.get_user(user.id).balance_usdt == Decimal("5")

    @pytest.mark.parametrize("amount", [0, -1, "abc", None, True])
    def test_invalid_amount_rejected(self, accounts, user, amount):
        with pytest.raises(ValidationError):
            accounts.credit(user.id, Currency.USDT, amount)

    def test_no_balance_in_ton(self, accounts, user):
        with pytest.raises(ValidationError):
            accounts.credit(user.id, Currency.TON, Decimal("1"))

    def test_unknown_currency(self, accounts, user):
        with pytest.raises(ValidationError):
            accounts.credit(user.id, "BTC", Decimal("1"))

    def test_record_exchange_updates_totals_only(self, accounts, user):
        updated = accounts.record_exchange(user.id, Decimal("460"))

        assert updated.total_exchanges == 1
        assert updated.total_exchanged_uah == Decimal("460")
        assert updated.balance_uah == Decimal("0")
