"""Asset Index - Ordered list of every registered point id.

The store has no iteration primitive, so the index is the only way to
enumerate points. It lives as a single JSON list under ``_pointindex``
and is owned here: callers ``load()`` it at the start of an operation,
mutate the in-memory copy, and ``flush()`` it once at the end.

Invariant maintained together with ``AssetRegistry``: the index holds
exactly the ids that have a live record, each id once.
"""

from __future__ import annotations

import logging
from enum import Enum

from ..errors import Corrupt
from ..persistence.codec import CodecError, decode_index, encode_index
from ..persistence.keys import POINT_INDEX_KEY
from ..persistence.store import StateStore

logger = logging.getLogger(__name__)


class IndexRemovalPolicy(str, Enum):
    """How many matching entries a removal takes out."""

    ALL = "all"
    FIRST = "first"


class AssetIndex:
    """Repository for the point index aggregate.

    Example:
        index = AssetIndex(store)
        index.load()
        index.append("p1")
        index.flush()
    """

    def __init__(
        self,
        store: StateStore,
        *,
        key: str = POINT_INDEX_KEY,
        removal_policy: IndexRemovalPolicy = IndexRemovalPolicy.ALL,
    ):
        self._store = store
        self._key = key
        self._removal_policy = IndexRemovalPolicy(removal_policy)
        self._ids: list[str] = []
        self._loaded = False

    @property
    def key(self) -> str:
        return self._key

    @property
    def removal_policy(self) -> IndexRemovalPolicy:
        return self._removal_policy

    @property
    def ids(self) -> list[str]:
        """Copy of the in-memory ids, in insertion order."""
        self._require_loaded()
        return list(self._ids)

    def load(self) -> list[str]:
        """Read the index from the store, replacing any in-memory state."""
        raw = self._store.get(self._key)
        try:
            self._ids = decode_index(raw)
        except CodecError as e:
            raise Corrupt(self._key, str(e)) from e
        self._loaded = True
        return list(self._ids)

    def flush(self) -> None:
        """Write the in-memory ids back to the store."""
        self._require_loaded()
        self._store.put(self._key, encode_index(self._ids))

    def reset(self) -> None:
        """Replace the index with an empty list and write it."""
        self._ids = []
        self._loaded = True
        self.flush()

    def append(self, point_id: str) -> bool:
        """Add ``point_id`` at the end unless it is already indexed.

        Returns:
            True if the id was added
        """
        self._require_loaded()
        if point_id in self._ids:
            logger.warning("Point %s already indexed, not appending again", point_id)
            return False
        self._ids.append(point_id)
        return True

    def remove(self, point_id: str) -> int:
        """Remove ``point_id`` according to the removal policy.

        With ``FIRST`` only the earliest entry goes and any duplicates
        stay in place; with ``ALL`` every occurrence is removed.

        Returns:
            Number of entries removed (0 if the id was not indexed)
        """
        self._require_loaded()
        if self._removal_policy is IndexRemovalPolicy.FIRST:
            try:
                self._ids.remove(point_id)
            except ValueError:
                return 0
            return 1

        before = len(self._ids)
        self._ids = [i for i in self._ids if i != point_id]
        return before - len(self._ids)

    def dedupe(self) -> list[str]:
        """Drop repeated ids, keeping each first occurrence.

        Returns:
            The ids that had duplicates
        """
        self._require_loaded()
        seen: set[str] = set()
        kept: list[str] = []
        duplicated: list[str] = []
        for point_id in self._ids:
            if point_id in seen:
                if point_id not in duplicated:
                    duplicated.append(point_id)
                continue
            seen.add(point_id)
            kept.append(point_id)
        self._ids = kept
        return duplicated

    def retain(self, keep: set[str]) -> list[str]:
        """Drop every id not in ``keep``; returns the dropped ids."""
        self._require_loaded()
        dropped = [i for i in self._ids if i not in keep]
        self._ids = [i for i in self._ids if i in keep]
        return dropped

    def __len__(self) -> int:
        self._require_loaded()
        return len(self._ids)

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise RuntimeError("AssetIndex must be loaded before use")
