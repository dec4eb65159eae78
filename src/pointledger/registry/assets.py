"""Asset Registry - Point records kept consistent with the Asset Index.

Each point is stored under its own id. Creating and deleting a point
touches two keys (the record and the index) and the store cannot commit
them together, so both paths follow a fixed order:

    create:  intent -> record -> index -> clear intent
    delete:  intent -> record -> index -> clear intent

A record without an index entry is recoverable; an index entry without a
record is what ``reconcile()`` cleans up. The intent key tells
``reconcile()`` which point was in flight if a write failed half way;
the next create or delete finishes that write before recording its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..errors import AlreadyExists, Corrupt, InvalidArgumentValue, NotFound
from ..persistence.codec import (
    CodecError,
    Point,
    WriteIntent,
    decode_intent,
    decode_point,
    encode_intent,
    encode_point,
)
from ..persistence.keys import INTENT_KEY, is_reserved
from ..persistence.store import StateStore
from .index import AssetIndex

logger = logging.getLogger(__name__)


def normalize_owner(owner: str) -> str:
    """Owners are compared and stored in lowercase."""
    return owner.lower()


@dataclass
class ReconcileReport:
    """What a reconciliation pass repaired."""

    replayed_intent: dict[str, Any] | None = None
    dangling_removed: list[str] = field(default_factory=list)
    duplicates_removed: list[str] = field(default_factory=list)
    index_size: int = 0

    @property
    def repaired(self) -> bool:
        return bool(
            self.replayed_intent or self.dangling_removed or self.duplicates_removed
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "replayed_intent": self.replayed_intent,
            "dangling_removed": list(self.dangling_removed),
            "duplicates_removed": list(self.duplicates_removed),
            "index_size": self.index_size,
            "repaired": self.repaired,
        }


class AssetRegistry:
    """Creates, reads, mutates and deletes point records.

    Example:
        registry = AssetRegistry(store, AssetIndex(store))
        registry.create("p1", "Alice")
        registry.get("p1")            # Point(id="p1", owner="alice")
        registry.set_owner("p1", "bob")
        registry.delete("p1")
    """

    def __init__(
        self,
        store: StateStore,
        index: AssetIndex,
        *,
        write_intents: bool = True,
    ):
        """Initialize the registry.

        Args:
            store: Backing key-value store
            index: Index repository sharing the same store
            write_intents: Record an intent around two-key writes
        """
        self._store = store
        self._index = index
        self._write_intents = write_intents

    @property
    def index(self) -> AssetIndex:
        return self._index

    # -----------------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------------

    @staticmethod
    def _require_text(value: str, name: str) -> None:
        if not isinstance(value, str) or not value:
            raise InvalidArgumentValue(f"{name} must be a non-empty string")

    @staticmethod
    def _require_point_key(point_id: str) -> None:
        AssetRegistry._require_text(point_id, "point id")
        if is_reserved(point_id):
            raise InvalidArgumentValue(f"'{point_id}' is a reserved key and cannot be a point id")

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def exists(self, point_id: str) -> bool:
        """True if any value is stored under ``point_id``.

        This checks the store directly, not the index.
        """
        raw = self._store.get(point_id)
        return raw is not None and len(raw) > 0

    def read(self, point_id: str) -> bytes:
        """Return the raw stored value for ``point_id``."""
        raw = self._store.get(point_id)
        if raw is None or len(raw) == 0:
            raise NotFound(f"No point stored under {point_id}")
        return raw

    def get(self, point_id: str) -> Point:
        """Return the decoded point.

        Raises:
            NotFound: nothing is stored under ``point_id``
            Corrupt: a value is stored but is not a point record
        """
        raw = self.read(point_id)
        try:
            point = decode_point(raw)
        except CodecError as e:
            raise Corrupt(point_id, str(e)) from e
        if point.id != point_id:
            raise Corrupt(point_id, f"record carries id {point.id!r}")
        return point

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def create(self, point_id: str, owner: str) -> Point:
        """Register a new point.

        Raises:
            InvalidArgumentValue: empty or reserved id, empty owner
            AlreadyExists: a value is already stored under ``point_id``
        """
        self._require_point_key(point_id)
        self._require_text(owner, "owner")

        # Load first so an unreadable index aborts before anything is written
        self._index.load()
        self._settle_pending_intent()

        if self.exists(point_id):
            logger.info(f"Point already exists: {point_id}")
            raise AlreadyExists(point_id)

        point = Point(id=point_id, owner=normalize_owner(owner))

        self._begin_intent("create", point_id)
        self._store.put(point_id, encode_point(point))
        self._index.append(point_id)
        self._index.flush()
        self._end_intent()

        logger.debug(f"Created point {point_id} owned by {point.owner}")
        return point

    def set_owner(self, point_id: str, new_owner: str) -> Point:
        """Transfer ownership of an existing point. The index is untouched."""
        self._require_point_key(point_id)
        self._require_text(new_owner, "owner")

        point = self.get(point_id)
        previous = point.owner
        point.owner = normalize_owner(new_owner)
        self._store.put(point_id, encode_point(point))

        logger.debug(f"Point {point_id} owner changed {previous} -> {point.owner}")
        return point

    def delete(self, point_id: str) -> int:
        """Remove a point record and its index entry.

        Deleting an id that does not exist succeeds; the index is written
        back either way.

        Returns:
            Number of index entries removed
        """
        self._require_point_key(point_id)

        self._index.load()
        self._settle_pending_intent()

        self._begin_intent("delete", point_id)
        self._store.delete(point_id)
        removed = self._index.remove(point_id)
        self._index.flush()
        self._end_intent()

        if removed:
            logger.debug(f"Deleted point {point_id} ({removed} index entries)")
        else:
            logger.debug(f"Delete of {point_id}: not indexed")
        return removed

    def list_ids(self) -> list[str]:
        """Current index contents."""
        return self._index.load()

    # -----------------------------------------------------------------------
    # Reconciliation
    # -----------------------------------------------------------------------

    def pending_intent(self) -> WriteIntent | None:
        raw = self._store.get(INTENT_KEY)
        try:
            return decode_intent(raw)
        except CodecError as e:
            raise Corrupt(INTENT_KEY, str(e)) from e

    def reconcile(self) -> ReconcileReport:
        """Restore the index invariant after an interrupted write.

        1. Finish a pending intent: a created point whose record landed is
           indexed; a deleted point is removed from both record and index.
        2. Drop index ids that have no live record.
        3. Drop duplicate index ids.

        Records that exist but were never indexed and have no intent cannot
        be found, since the store offers no iteration.
        """
        report = ReconcileReport()
        self._index.load()

        intent = self.pending_intent()
        if intent is not None:
            report.replayed_intent = intent.to_dict()
            self._apply_intent(intent)

        live = {point_id for point_id in self._index.ids if self.exists(point_id)}
        report.dangling_removed = self._index.retain(live)
        report.duplicates_removed = self._index.dedupe()
        report.index_size = len(self._index)

        self._index.flush()
        self._store.delete(INTENT_KEY)

        if report.dangling_removed:
            logger.warning(f"Removed dangling index ids: {report.dangling_removed}")
        if report.duplicates_removed:
            logger.warning(f"Removed duplicate index ids: {report.duplicates_removed}")
        return report

    def _apply_intent(self, intent: WriteIntent) -> None:
        """Bring the loaded index in line with an interrupted write."""
        if intent.op == "create" and self.exists(intent.point_id):
            self._index.append(intent.point_id)
        else:
            if intent.op == "delete":
                self._store.delete(intent.point_id)
            self._index.remove(intent.point_id)
        logger.warning(f"Replayed pending {intent.op} intent for {intent.point_id}")

    def _settle_pending_intent(self) -> WriteIntent | None:
        """Finish a write an earlier call left half done.

        The intent slot holds one write at a time, so it must be empty
        before the next two-key write records its own. Expects the index
        to be loaded.
        """
        intent = self.pending_intent()
        if intent is None:
            return None
        self._apply_intent(intent)
        self._index.flush()
        self._store.delete(INTENT_KEY)
        return intent

    def _begin_intent(self, op: str, point_id: str) -> None:
        if self._write_intents:
            self._store.put(INTENT_KEY, encode_intent(WriteIntent(op=op, point_id=point_id)))

    def _end_intent(self) -> None:
        if self._write_intents:
            self._store.delete(INTENT_KEY)
