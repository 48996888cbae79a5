# tests/test_concurrency.py
"""
Concurrency Tests - Per-Entity Locking Under Parallel Requests

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- swappoints.application (ledger, orders under threads)
- swappoints.shared.locks (KeyedLocks)
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest  # Testing framework for writing and running tests

from swappoints.domain.errors import InsufficientFundsError, InvalidTransitionError, NotFoundError
from swappoints.domain.models import TransactionType
from swappoints.shared.locks import KeyedLocks

from tests.support import CARD


def _attempt(fn, *args):
    try:
        fn(*args)
        return True
    except (InsufficientFundsError, InvalidTransitionError):
        return False


class TestParallelRequests:
    def test_parallel_withdrawals_never_overdraw(self, services, user):
        services.ledger.request_deposit(user.id, Decimal("100"))
        services.ledger.confirm_deposit(user.id, Decimal("100"), "0xabc")

        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(pool.map(
                lambda _: _attempt(services.ledger.request_withdraw, user.id, Decimal("20"), CARD),
                range(10),
            ))

        assert results.count(True) == 5
        assert services.accounts.get_user(user.id).balance_usdt == Decimal("0")

    def test_parallel_confirms_record_one_exchange(self, services, user):
        order = services.orders.create("USDT_TO_UAH", Decimal("10"), CARD, user_id=user.id)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: services.orders.confirm(order.order_id), range(8)))

        exchanges = [t for t in services.ledger.history(user.id) if t.type is TransactionType.EXCHANGE]
        assert len(exchanges) == 1
        assert services.accounts.get_user(user.id).total_exchanges == 1

    def test_confirm_races_cancel(self, services):
        order = services.orders.create("USDT_TO_UAH", Decimal("10"), CARD)

        with ThreadPoolExecutor(max_workers=2) as pool:
            confirm = pool.submit(_attempt, services.orders.confirm, order.order_id)
            cancel = pool.submit(_attempt, services.orders.cancel, order.order_id)

        assert [confirm.result(), cancel.result()].count(True) == 1


class TestKeyedLocks:
    def test_lock_is_reentrant(self):
        locks = KeyedLocks()
        with locks.hold("user:1"):
            with locks.hold("user:1"):
                assert len(locks) == 1
        assert len(locks) == 0

    def test_released_keys_are_dropped(self):
        locks = KeyedLocks()
        with pytest.raises(RuntimeError):
            with locks.hold("order:x"):
                raise RuntimeError("boom")
        assert len(locks) == 0

    def test_lookups_of_unknown_ids_leave_no_locks(self, services):
        for i in range(200):
            with pytest.raises(NotFoundError):
                services.orders.get_status(f"SWAP-0-missing{i}")
            with pytest.raises(NotFoundError):
                services.ledger.request_withdraw(f"user_missing{i}", Decimal("1"), CARD)
            with pytest.raises(NotFoundError):
                services.accounts.login_or_register(f"099{i:07d}", password="pw")

        assert len(services.locks) == 0

    def test_parallel_holders_share_one_entry(self):
        locks = KeyedLocks()
        entered = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold("user:1"):
                entered.set()
                release.wait(5)

        worker = threading.Thread(target=holder)
        worker.start()
        entered.wait(5)
        assert len(locks) == 1
        release.set()
        worker.join(5)
        assert len(locks) == 0
