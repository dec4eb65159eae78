"""Integration tests for the SQLite-backed state store."""

import pytest

from pointledger.errors import StoreUnavailable
from pointledger.persistence.keys import INTENT_KEY, POINT_INDEX_KEY
from pointledger.persistence.store import SqliteStateStore, StateStore
from pointledger.service.config import LedgerConfig, StoreBackend
from pointledger.service.core import LedgerService, build_store


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "state" / "ledger.db"


@pytest.mark.integration
class TestSqliteStateStore:
    def test_creates_parent_directory(self, db_path):
        with SqliteStateStore(db_path) as store:
            assert isinstance(store, StateStore)
        assert db_path.exists()

    def test_get_put_delete(self, db_path):
        with SqliteStateStore(db_path) as store:
            assert store.get("k") is None
            store.put("k", b"one")
            store.put("k", b"two")
            assert store.get("k") == b"two"
            store.delete("k")
            assert store.get("k") is None
            assert store.count() == 0

    def test_values_survive_reopen(self, db_path):
        with SqliteStateStore(db_path) as store:
            store.put(POINT_INDEX_KEY, b'["p1"]')

        with SqliteStateStore(db_path) as store:
            assert store.get(POINT_INDEX_KEY) == b'["p1"]'

    def test_ping(self, db_path):
        with SqliteStateStore(db_path) as store:
            store.ping()

    def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises((StoreUnavailable, OSError)):
            SqliteStateStore(blocker / "ledger.db")


@pytest.mark.integration
class TestSqliteBackedService:
    """End-to-end ledger behaviour over a real file."""

    def test_build_store_selects_sqlite(self, db_path):
        config = LedgerConfig(store_backend=StoreBackend.SQLITE, db_path=str(db_path))
        store = build_store(config)
        try:
            assert isinstance(store, SqliteStateStore)
        finally:
            store.close()

    def test_ledger_state_survives_restart(self, db_path, clock):
        config = LedgerConfig(store_backend=StoreBackend.SQLITE, db_path=str(db_path))

        service = LedgerService(config, time_provider=clock)
        service.invoke("init_point", ["p1", "Alice"])
        service.invoke("init_point", ["p2", "bob"])
        service.invoke("delete", ["p2"])
        service.invoke("init_transaction", ["order-alice-1", "alice", "bob", "p1", "p2"])
        service.close()

        restarted = LedgerService(config, time_provider=clock)
        try:
            restarted.startup()
            assert restarted.list_points() == ["p1"]
            assert restarted.find_points_by_owner("alice") == ["p1"]
            assert [tx.id for tx in restarted.find_transactions("alice")] == [
                "order-alice-1"
            ]
        finally:
            restarted.close()

    def test_startup_replays_pending_intent(self, db_path):
        config = LedgerConfig(store_backend=StoreBackend.SQLITE, db_path=str(db_path))

        # Simulate a crash between the record write and the index write
        with SqliteStateStore(db_path) as store:
            store.put(INTENT_KEY, b'{"op":"create","id":"p7"}')
            store.put("p7", b'{"id":"p7","owner":"carol"}')

        service = LedgerService(config)
        try:
            report = service.startup()
            assert report.replayed_intent == {"op": "create", "id": "p7"}
            assert service.list_points() == ["p7"]
            assert service.store.get(INTENT_KEY) is None
        finally:
            service.close()
