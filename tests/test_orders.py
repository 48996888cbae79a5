# tests/test_orders.py
"""
Order Engine Tests - Pricing, Lifecycle and Lazy Expiry

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- swappoints.application.orders (OrderEngine)
- tests.conftest (services, clock and user fixtures)
"""
from decimal import Decimal
from unittest.mock import patch  # Mocking utilities for testing

import pytest  # Testing framework for writing and running tests

from swappoints.domain.errors import (
    InvalidTransitionError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from swappoints.domain.models import Direction, Order, OrderStatus, Transaction, TransactionType

from tests.support import CARD


@pytest.fixture
def orders(services):
    return services.orders


class TestCreate:
    def test_usdt_order_priced_at_current_rate(self, orders):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)

        assert order.order_id.startswith("SWAP-")
        assert order.status is OrderStatus.PENDING
        assert order.amount_uah == Decimal("460")
        assert order.rate == Decimal("46")

    def test_ton_order_uses_ton_rate(self, orders):
        order = orders.create(Direction.TON_TO_UAH, Decimal("2.5"), CARD)
        assert order.amount_uah == Decimal("200")

    def test_price_frozen_after_rate_change(self, orders, services):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)

        services.rates.set(usdt=Decimal("50"))

        assert orders.get_status(order.order_id).amount_uah == Decimal("460")

    def test_receipt_carries_payment_details(self, orders, cfg, clock):
        receipt = orders.create("USDT_TO_UAH", Decimal("10"), CARD).receipt_view()

        assert receipt["paymentAddress"] == cfg.payment_address
        assert receipt["amountUAH"] == Decimal("460")
        assert (receipt["expiresAt"] - clock.now).total_seconds() == 30 * 60

    def test_unknown_direction(self, orders):
        with pytest.raises(ValidationError):
            orders.create("BTC_TO_UAH", Decimal("1"), CARD)

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1"), "ten"])
    def test_invalid_amount(self, orders, amount):
        with pytest.raises(ValidationError):
            orders.create("USDT_TO_UAH", amount, CARD)

    def test_invalid_card(self, orders):
        with pytest.raises(ValidationError):
            orders.create("USDT_TO_UAH", Decimal("1"), "12ab")

    def test_unknown_user(self, orders):
        with pytest.raises(NotFoundError):
            orders.create("USDT_TO_UAH", Decimal("1"), CARD, user_id="user_missing")

    def test_unknown_order(self, orders):
        with pytest.raises(NotFoundError):
            orders.get_status("SWAP-0-nothing")


class TestLifecycle:
    def test_confirm_pending(self, orders):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        assert orders.confirm(order.order_id).status is OrderStatus.CONFIRMED

    def test_received_then_confirmed(self, orders):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)

        assert orders.mark_received(order.order_id).status is OrderStatus.RECEIVED
        assert orders.mark_received(order.order_id).status is OrderStatus.RECEIVED
        assert orders.confirm(order.order_id).status is OrderStatus.CONFIRMED

    def test_confirm_twice_is_a_no_op(self, orders, store):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        first = orders.confirm(order.order_id)
        second = orders.confirm(order.order_id)

        assert second.status is OrderStatus.CONFIRMED
        assert second.updated_at == first.updated_at

    def test_cancel_pending(self, orders):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)

        assert orders.cancel(order.order_id).status is OrderStatus.CANCELLED
        assert orders.cancel(order.order_id).status is OrderStatus.CANCELLED

    @pytest.mark.parametrize("first, then", [
        ("confirm", "cancel"),
        ("confirm", "mark_received"),
        ("cancel", "confirm"),
        ("mark_received", "cancel"),
    ])
    def test_invalid_transitions(self, orders, first, then):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        getattr(orders, first)(order.order_id)

        with pytest.raises(InvalidTransitionError):
            getattr(orders, then)(order.order_id)

    def test_confirm_does_not_touch_balances(self, orders, services, user):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD, user_id=user.id)
        orders.confirm(order.order_id)

        updated = services.accounts.get_user(user.id)
        assert updated.balance_usdt == Decimal("0")
        assert updated.balance_uah == Decimal("0")


class TestExpiry:
    def test_order_expires_lazily(self, orders, store, clock):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        clock.advance(minutes=31)

        assert store.get(Order, order.order_id).status is OrderStatus.PENDING
        assert orders.get_status(order.order_id).status is OrderStatus.EXPIRED
        assert store.get(Order, order.order_id).status is OrderStatus.EXPIRED
        assert orders.get_status(order.order_id).status is OrderStatus.EXPIRED

    def test_still_pending_before_deadline(self, orders, clock):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        clock.advance(minutes=29)
        assert orders.get_status(order.order_id).status is OrderStatus.PENDING

    def test_expired_order_cannot_be_confirmed(self, orders, clock):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        clock.advance(minutes=31)

        with pytest.raises(InvalidTransitionError):
            orders.confirm(order.order_id)

    def test_received_order_does_not_expire(self, orders, clock):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        orders.mark_received(order.order_id)
        clock.advance(hours=2)

        assert orders.confirm(order.order_id).status is OrderStatus.CONFIRMED

    def test_expire_overdue_counts_moved_orders(self, orders, clock):
        old = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        clock.advance(minutes=20)
        fresh = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        clock.advance(minutes=15)

        assert orders.expire_overdue() == 1
        assert orders.expire_overdue() == 0
        assert orders.get_status(old.order_id).status is OrderStatus.EXPIRED
        assert orders.get_status(fresh.order_id).status is OrderStatus.PENDING


class TestExchangeEntries:
    def test_confirmed_user_order_recorded_once(self, orders, services, user):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD, user_id=user.id)

        orders.confirm(order.order_id)
        orders.confirm(order.order_id)

        entries = [t for t in services.ledger.history(user.id) if t.type is TransactionType.EXCHANGE]
        assert len(entries) == 1
        assert entries[0].order_id == order.order_id
        assert entries[0].uah_amount == Decimal("460")

        updated = services.accounts.get_user(user.id)
        assert updated.total_exchanges == 1
        assert updated.total_exchanged_uah == Decimal("460")

    def test_anonymous_order_records_nothing(self, orders, services):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD)
        orders.confirm(order.order_id)

        assert services.admin.list_transactions() == []

    def test_cancelled_user_order_records_nothing(self, orders, services, user):
        order = orders.create("TON_TO_UAH", Decimal("1"), CARD, user_id=user.id)
        orders.cancel(order.order_id)

        assert services.ledger.history(user.id) == []
        assert services.accounts.get_user(user.id).total_exchanges == 0


def exchange_entries(services, user_id):
    return [t for t in services.ledger.history(user_id) if t.type is TransactionType.EXCHANGE]


class TestConfirmFailures:
    def test_totals_failure_rolls_confirm_back(self, orders, services, user):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD, user_id=user.id)

        with patch.object(services.accounts, "record_exchange", side_effect=StoreUnavailableError("down")):
            with pytest.raises(StoreUnavailableError):
                orders.confirm(order.order_id)

        assert orders.get_status(order.order_id).status is OrderStatus.PENDING
        assert exchange_entries(services, user.id) == []

        assert orders.confirm(order.order_id).status is OrderStatus.CONFIRMED
        assert len(exchange_entries(services, user.id)) == 1
        assert services.accounts.get_user(user.id).total_exchanges == 1

    def test_entry_write_failure_reverts_totals(self, orders, services, user):
        order = orders.create("USDT_TO_UAH", Decimal("10"), CARD, user_id=user.id)
        orders.mark_received(order.order_id)
        real_put = services.store.put

        def put(entity):
            if isinstance(entity, Transaction):
                raise StoreUnavailableError("disk full")
            real_put(entity)

        with patch.object(services.store, "put", side_effect=put):
            with pytest.raises(StoreUnavailableError):
                orders.confirm(order.order_id)

        updated = services.accounts.get_user(user.id)
        assert updated.total_exchanges == 0
        assert updated.total_exchanged_uah == Decimal("0")
        assert orders.get_status(order.order_id).status is OrderStatus.RECEIVED

        orders.confirm(order.order_id)
        assert services.accounts.get_user(user.id).total_exchanged_uah == Decimal("460")
        assert len(exchange_entries(services, user.id)) == 1
