"""Unit tests for the Asset Index repository."""

import pytest

from pointledger.errors import Corrupt
from pointledger.persistence.keys import POINT_INDEX_KEY
from pointledger.registry.index import AssetIndex, IndexRemovalPolicy


class TestLoadFlush:
    """Tests for explicit load/flush boundaries."""

    def test_unloaded_index_refuses_use(self, index):
        """Mutating before load would silently drop stored ids."""
        with pytest.raises(RuntimeError):
            index.append("p1")

    def test_load_empty_store(self, index):
        assert index.load() == []

    def test_flush_writes_aggregate(self, store, index):
        index.load()
        index.append("p1")
        index.append("p2")
        index.flush()

        assert store.get(POINT_INDEX_KEY) == b'["p1","p2"]'

    def test_mutations_invisible_until_flush(self, store, index):
        index.load()
        index.append("p1")

        assert AssetIndex(store).load() == []

    def test_corrupt_index_raises(self, store, index):
        store.put(POINT_INDEX_KEY, b"{broken")
        with pytest.raises(Corrupt):
            index.load()

    def test_reset_writes_empty_list(self, store, index):
        store.put(POINT_INDEX_KEY, b'["p1"]')
        index.reset()
        assert store.get(POINT_INDEX_KEY) == b"[]"


class TestMutations:
    """Tests for append/remove semantics."""

    def test_append_skips_existing_id(self, index):
        index.load()
        assert index.append("p1") is True
        assert index.append("p1") is False
        assert index.ids == ["p1"]

    def test_ids_is_a_copy(self, index):
        index.load()
        index.ids.append("p1")
        assert index.ids == []

    def test_remove_missing_id(self, index):
        index.load()
        index.append("p1")
        assert index.remove("p9") == 0
        assert index.ids == ["p1"]

    def test_remove_all_policy_drops_duplicates(self, store):
        store.put(POINT_INDEX_KEY, b'["p1", "p2", "p1"]')
        index = AssetIndex(store, removal_policy=IndexRemovalPolicy.ALL)
        index.load()

        assert index.remove("p1") == 2
        assert index.ids == ["p2"]

    def test_remove_first_policy_keeps_later_duplicates(self, store):
        """Legacy behaviour: stop at the first match."""
        store.put(POINT_INDEX_KEY, b'["p1", "p2", "p1"]')
        index = AssetIndex(store, removal_policy="first")
        index.load()

        assert index.remove("p1") == 1
        assert index.ids == ["p2", "p1"]

    def test_dedupe_keeps_first_occurrence(self, store, index):
        store.put(POINT_INDEX_KEY, b'["a", "b", "a", "c", "b", "a"]')
        index.load()

        assert index.dedupe() == ["a", "b"]
        assert index.ids == ["a", "b", "c"]

    def test_retain(self, store, index):
        store.put(POINT_INDEX_KEY, b'["a", "b", "c"]')
        index.load()

        assert index.retain({"a", "c"}) == ["b"]
        assert index.ids == ["a", "c"]
