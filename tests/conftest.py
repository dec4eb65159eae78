"""Test configuration for pytest."""

from datetime import datetime, timedelta, timezone

import pytest

from pointledger.persistence.store import MemoryStateStore
from pointledger.registry import (
    AssetIndex,
    AssetRegistry,
    OwnershipQueryService,
    TransactionLog,
)
from pointledger.service.config import LedgerConfig
from pointledger.service.core import LedgerService


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "conformance: API contract conformance tests")


class StepClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + timedelta(seconds=1)
        return now


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def index(store):
    return AssetIndex(store)


@pytest.fixture
def registry(store, index):
    return AssetRegistry(store, index)


@pytest.fixture
def transaction_log(store, clock):
    return TransactionLog(store, time_provider=clock)


@pytest.fixture
def ownership(store, registry):
    return OwnershipQueryService(store, registry)


@pytest.fixture
def service(store, clock):
    return LedgerService(LedgerConfig(), store=store, time_provider=clock)
