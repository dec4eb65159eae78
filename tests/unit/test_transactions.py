"""Unit tests for the Transaction Log."""

import pytest

from pointledger.errors import Corrupt, InvalidArgumentValue
from pointledger.persistence.codec import Transaction
from pointledger.persistence.keys import TRANSACTION_LOG_KEY
from pointledger.registry import TransactionLog


class TestAppend:
    """Tests for appending to the log."""

    def test_record_stamps_timestamp(self, transaction_log):
        tx = transaction_log.record("order-bob-1", "bob", "alice", "p2", "p1")

        assert tx.timestamp == "2024-01-01T00:00:00+00:00"
        assert tx.related == []

    def test_append_preserves_insertion_order(self, transaction_log):
        transaction_log.record("bob-1", "bob", "alice", "p2", "p1")
        transaction_log.record("bob-2", "bob", "carol", "p3", "p4")

        assert [tx.id for tx in transaction_log.find_by_participant("bob")] == [
            "bob-1",
            "bob-2",
        ]

    def test_duplicate_ids_accepted(self, transaction_log):
        transaction_log.record("t1", "a", "b", "p1", "p2")
        transaction_log.record("t1", "a", "b", "p1", "p2")

        assert transaction_log.count() == 2

    def test_assets_are_not_validated(self, transaction_log):
        """Points referenced by a transaction need not exist."""
        tx = transaction_log.record("t1", "a", "b", "nowhere", "nothing")
        assert tx.asset_a == "nowhere"

    def test_empty_id_rejected(self, transaction_log):
        with pytest.raises(InvalidArgumentValue):
            transaction_log.record("", "a", "b", "p1", "p2")

    def test_append_keeps_existing_entries(self, store, clock):
        TransactionLog(store, time_provider=clock).record("t1", "a", "b", "p1", "p2")

        second = TransactionLog(store, time_provider=clock)
        second.append(Transaction(id="t2"))

        assert [tx.id for tx in second.all()] == ["t1", "t2"]

    def test_append_on_reset_log(self, store, transaction_log):
        store.put(TRANSACTION_LOG_KEY, b'{"tx":null}')
        transaction_log.record("t1", "a", "b", "p1", "p2")
        assert transaction_log.count() == 1


class TestFindByParticipant:
    """Tests for the substring participant filter."""

    def test_scenario_single_match(self, transaction_log):
        transaction_log.record("order-bob-1", "bob", "alice", "p2", "p1")

        found = transaction_log.find_by_participant("bob")

        assert len(found) == 1
        assert found[0].id == "order-bob-1"
        assert found[0].trader_b == "alice"

    def test_no_match_returns_empty(self, transaction_log):
        transaction_log.record("order-bob-1", "bob", "alice", "p2", "p1")
        assert transaction_log.find_by_participant("carol") == []

    def test_empty_log_returns_empty(self, transaction_log):
        assert transaction_log.find_by_participant("bob") == []

    def test_matches_on_id_not_trader_fields(self, transaction_log):
        """Only the transaction id is searched."""
        transaction_log.record("order-1", "bob", "alice", "p2", "p1")
        assert transaction_log.find_by_participant("bob") == []

    def test_substring_not_exact(self, transaction_log):
        transaction_log.record("bobby-7", "bobby", "x", "p1", "p2")
        transaction_log.record("alice-3", "alice", "x", "p1", "p2")
        transaction_log.record("x-bob-9", "x", "bob", "p1", "p2")

        assert [tx.id for tx in transaction_log.find_by_participant("bob")] == [
            "bobby-7",
            "x-bob-9",
        ]

    def test_corrupt_log_raises(self, store, transaction_log):
        store.put(TRANSACTION_LOG_KEY, b"garbage")
        with pytest.raises(Corrupt):
            transaction_log.find_by_participant("bob")
