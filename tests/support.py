# tests/support.py
"""
Test Support - Constants, Fake Clock and Failing Backend

Files that USE this module:
- tests.conftest (fixtures)
- tests.test_* (constants and FlakyBackend)

Files that this module USES:
- swappoints.adapters.persistence (InMemoryBackend)
"""
from datetime import datetime, timedelta, timezone

from swappoints.adapters.persistence import InMemoryBackend
from swappoints.domain.errors import StoreUnavailableError

ADMIN_TOKEN = "test-admin-token"
CARD = "4111111111111111"
PHONE = "0991234567"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FlakyBackend(InMemoryBackend):
    """In-memory backend that raises StoreUnavailableError while ``failing`` is set."""

    name = "flaky"

    def __init__(self):
        super().__init__()
        self.failing = False

    def _check(self):
        if self.failing:
            raise StoreUnavailableError("connection refused")

    def load(self, collection, key):
        self._check()
        return super().load(collection, key)

    def save(self, collection, key, document):
        self._check()
        super().save(collection, key, document)

    def scan(self, collection):
        self._check()
        return super().scan(collection)

    def ping(self):
        self._check()
