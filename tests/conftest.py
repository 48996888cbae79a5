# tests/conftest.py
"""
Shared Test Fixtures

Builds fully wired services over a switchable in-memory backend, with a
controllable clock for order expiry.

Files that USE this module:
- pytest (fixture discovery for every test module)

Files that this module USES:
- swappoints.app (build_services)
- swappoints.adapters.persistence (LedgerStore)
- swappoints.config (Settings)
- tests.support (FakeClock, FlakyBackend)
"""
from decimal import Decimal

import pytest  # Testing framework for fixtures

from swappoints.adapters.persistence import LedgerStore
from swappoints.app import build_services
from swappoints.config import Settings

from tests.support import ADMIN_TOKEN, PHONE, FakeClock, FlakyBackend


@pytest.fixture
def cfg(tmp_path):
    return Settings(
        admin_token=ADMIN_TOKEN,
        store_file=tmp_path / "ledger.json",
        default_rate_usdt=Decimal("46"),
        default_rate_ton=Decimal("80"),
        password_auth_enabled=True,
        order_ttl_minutes=30,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return FlakyBackend()


@pytest.fixture
def store(backend):
    return LedgerStore(durable=backend)


@pytest.fixture
def services(cfg, store, clock):
    return build_services(cfg, store=store, clock=clock)


@pytest.fixture
def user(services):
    return services.accounts.login_or_register(PHONE, password="s3cret-pass", is_register=True)
