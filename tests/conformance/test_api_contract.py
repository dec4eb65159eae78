"""API contract conformance tests for the ledger endpoints.

These tests pin the HTTP surface: routes, status codes, error bodies and
the correlation header every response carries.
"""

import json

import pytest
from fastapi.testclient import TestClient

from pointledger.persistence.keys import INTENT_KEY, POINT_INDEX_KEY
from pointledger.service.app import create_ledger_app
from pointledger.service.config import LedgerConfig


@pytest.fixture
def config():
    """Create test configuration."""
    return LedgerConfig()


@pytest.fixture
def app(config, store, clock):
    """Create test application over the shared in-memory store."""
    return create_ledger_app(config, store=store, time_provider=clock)


@pytest.fixture
def client(app):
    """Test client with lifespan events run."""
    with TestClient(app) as client:
        yield client


pytestmark = pytest.mark.conformance


class TestInvokeContract:
    """Tests for POST /invoke."""

    def test_init_point_then_read(self, client):
        """Invocations return their raw payload as text."""
        response = client.post("/invoke", json={"function": "init_point", "args": ["p1", "Alice"]})
        assert response.status_code == 200
        assert response.json() == {"function": "init_point", "payload": ""}

        response = client.post("/invoke", json={"function": "read", "args": ["read", "p1"]})
        assert json.loads(response.json()["payload"]) == {"id": "p1", "owner": "alice"}

    def test_find_latest_payload_layout(self, client):
        client.post(
            "/invoke",
            json={"function": "init_transaction", "args": ["order-bob-1", "bob", "alice", "p2", "p1"]},
        )

        response = client.post("/invoke", json={"function": "read", "args": ["findLatest", "bob"]})

        payload = json.loads(response.json()["payload"])
        assert [tx["txID"] for tx in payload["tx"]] == ["order-bob-1"]

    def test_unknown_function_is_400(self, client):
        response = client.post("/invoke", json={"function": "steal", "args": []})

        assert response.status_code == 400
        body = response.json()
        assert body["kind"] == "UnknownOperation"
        assert "steal" in body["detail"]

    def test_wrong_argument_count_is_400(self, client):
        response = client.post("/invoke", json={"function": "set_user", "args": ["p1"]})

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidArgumentCount"

    def test_duplicate_create_is_409(self, client):
        client.post("/invoke", json={"function": "init_point", "args": ["p1", "alice"]})
        response = client.post("/invoke", json={"function": "init_point", "args": ["p1", "bob"]})

        assert response.status_code == 409
        assert response.json()["kind"] == "AlreadyExists"

    def test_owner_without_points_is_404(self, client):
        response = client.post("/invoke", json={"function": "findPointWithOwner", "args": ["nobody"]})

        assert response.status_code == 404
        assert response.json()["kind"] == "NotFound"


class TestPointsContract:
    """Tests for /points and /owners."""

    def test_create_returns_201(self, client):
        response = client.post("/points", json={"id": "p1", "owner": "Alice"})

        assert response.status_code == 201
        assert response.json() == {"id": "p1", "owner": "alice"}

    def test_create_with_reserved_id_is_400(self, client):
        response = client.post("/points", json={"id": POINT_INDEX_KEY, "owner": "alice"})

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidArgumentValue"

    def test_create_with_empty_owner_is_validation_error(self, client):
        response = client.post("/points", json={"id": "p1", "owner": ""})
        assert response.status_code == 422

    def test_get_missing_is_404(self, client):
        response = client.get("/points/ghost")
        assert response.status_code == 404

    def test_get_corrupt_is_422(self, client):
        client.put("/state/p1", json={"value": "definitely not json"})

        response = client.get("/points/p1")

        assert response.status_code == 422
        assert response.json()["kind"] == "Corrupt"

    def test_transfer_owner(self, client):
        client.post("/points", json={"id": "a1", "owner": "Bob"})

        response = client.put("/points/a1/owner", json={"owner": "ALICE"})

        assert response.status_code == 200
        assert response.json()["owner"] == "alice"
        assert client.get("/owners/alice/points").json() == {"owner": "alice", "ids": ["a1"]}
        assert client.get("/owners/bob/points").status_code == 404

    def test_list_and_delete(self, client):
        client.post("/points", json={"id": "p1", "owner": "alice"})
        client.post("/points", json={"id": "p2", "owner": "bob"})

        response = client.delete("/points/p1")

        assert response.json() == {"id": "p1", "index_entries_removed": 1}
        assert client.get("/points").json() == {"ids": ["p2"], "count": 1}
        assert client.get("/points/p1").status_code == 404

    def test_delete_unknown_succeeds(self, client):
        response = client.delete("/points/ghost")

        assert response.status_code == 200
        assert response.json()["index_entries_removed"] == 0


class TestTransactionsContract:
    """Tests for /transactions."""

    def test_record_and_filter(self, client):
        response = client.post(
            "/transactions",
            json={
                "id": "order-bob-1",
                "trader_a": "bob",
                "trader_b": "alice",
                "asset_a": "p2",
                "asset_b": "p1",
            },
        )
        assert response.status_code == 201
        assert response.json()["timestamp"] == "2024-01-01T00:00:00+00:00"

        bob = client.get("/transactions", params={"participant": "bob"}).json()
        carol = client.get("/transactions", params={"participant": "carol"}).json()

        assert [tx["id"] for tx in bob["transactions"]] == ["order-bob-1"]
        assert carol == {"transactions": [], "count": 0}

    def test_list_all_in_append_order(self, client):
        for tx_id in ("t1", "t2", "t3"):
            client.post(
                "/transactions",
                json={"id": tx_id, "trader_a": "a", "trader_b": "b", "asset_a": "x", "asset_b": "y"},
            )

        body = client.get("/transactions").json()

        assert [tx["id"] for tx in body["transactions"]] == ["t1", "t2", "t3"]
        assert body["count"] == 3


class TestStateAndAdminContract:
    """Tests for raw state, reset, reconcile and audit routes."""

    def test_raw_state_round_trip(self, client):
        assert client.put("/state/notes", json={"value": "hello"}).status_code == 200
        assert client.get("/state/notes").json() == {"key": "notes", "value": "hello"}

    def test_raw_read_missing_is_404(self, client):
        assert client.get("/state/nothing").status_code == 404

    def test_reset(self, client):
        client.post("/points", json={"id": "p1", "owner": "alice"})

        response = client.post("/admin/reset", json={"value": 3})

        assert response.json() == {"status": "reset", "value": 3}
        assert client.get("/points").json()["ids"] == []

    def test_reconcile_removes_dangling_ids(self, client, store):
        client.post("/points", json={"id": "p1", "owner": "alice"})
        store.put(POINT_INDEX_KEY, b'["p1","ghost","p1"]')

        body = client.post("/admin/reconcile").json()

        assert body["dangling_removed"] == ["ghost"]
        assert body["duplicates_removed"] == ["p1"]
        assert body["index_size"] == 1
        assert body["repaired"] is True

    def test_audit_log_records_invocations(self, client):
        client.post("/invoke", json={"function": "init_point", "args": ["p1", "alice"]})
        client.post("/invoke", json={"function": "nope", "args": []})

        entries = client.get("/audit/log").json()["entries"]

        assert [e["status"] for e in entries] == ["ok", "error"]
        assert entries[1]["error_kind"] == "UnknownOperation"


class TestHealthContract:
    """Tests for health and readiness probes."""

    def test_healthz(self, client):
        body = client.get("/healthz").json()

        assert body["status"] == "ok"
        assert body["service"] == "pointledger"
        assert body["checks"]["state_store"]["backend"] == "memory"
        assert body["checks"]["write_intent"]["status"] == "healthy"

    def test_healthz_reports_pending_intent(self, client, store):
        store.put(INTENT_KEY, b'{"op":"delete","id":"p1"}')

        body = client.get("/healthz").json()

        assert body["checks"]["write_intent"]["pending"] == {"op": "delete", "id": "p1"}

    def test_ready_after_startup(self, client):
        assert client.get("/ready").json() == {"ready": True, "service": "pointledger"}

    def test_not_ready_without_lifespan(self, app):
        response = TestClient(app).get("/ready")
        assert response.json()["ready"] is False


class TestCorrelationContract:
    """Every response carries a correlation id."""

    def test_correlation_id_propagated(self, client):
        response = client.get("/points", headers={"X-Correlation-ID": "trace-123"})
        assert response.headers["X-Correlation-ID"] == "trace-123"

    def test_correlation_id_generated(self, client):
        response = client.get("/points")
        assert response.headers["X-Correlation-ID"]
        assert response.headers["X-Request-ID"]

    def test_error_body_carries_correlation_id(self, client):
        response = client.get("/points/ghost", headers={"X-Correlation-ID": "trace-404"})
        assert response.json()["correlation_id"] == "trace-404"
