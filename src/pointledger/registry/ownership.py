"""Ownership Query Service - Points owned by a party.

The one multi-record read path: walk the index, dereference each point,
compare owners case-insensitively. Matches are also written to the
``_tmpRelatedPoint`` scratch slot for callers that read results back from
state; that slot is an output buffer, never a second index.
"""

from __future__ import annotations

import logging

from ..errors import Corrupt, InvalidArgumentValue, NotFound
from ..persistence.codec import CodecError, decode_index, encode_index
from ..persistence.keys import RELATED_POINTS_KEY
from ..persistence.store import StateStore
from .assets import AssetRegistry, normalize_owner

logger = logging.getLogger(__name__)


class OwnershipQueryService:
    """Finds the points owned by a given party."""

    def __init__(
        self,
        store: StateStore,
        registry: AssetRegistry,
        *,
        scratch_key: str = RELATED_POINTS_KEY,
    ):
        self._store = store
        self._registry = registry
        self._scratch_key = scratch_key

    def find_assets_by_owner(self, owner: str) -> list[str]:
        """Return the ids of every indexed point owned by ``owner``.

        Index ids whose record is missing or unreadable are skipped.

        Raises:
            InvalidArgumentValue: empty owner
            NotFound: no indexed point is owned by ``owner``
        """
        if not owner:
            raise InvalidArgumentValue("owner must be a non-empty string")
        wanted = normalize_owner(owner)

        matches: list[str] = []
        for point_id in self._registry.list_ids():
            try:
                point = self._registry.get(point_id)
            except NotFound as e:
                logger.warning(f"Skipping indexed point {point_id}: {e}")
                continue
            if normalize_owner(point.owner) == wanted:
                matches.append(point_id)

        self._store.put(self._scratch_key, encode_index(matches))

        if not matches:
            raise NotFound(f"No points owned by {owner}")

        logger.debug(f"Found {len(matches)} points owned by {wanted}")
        return matches

    def last_result(self) -> list[str]:
        """Ids written by the most recent query (empty if none ran)."""
        try:
            return decode_index(self._store.get(self._scratch_key))
        except CodecError as e:
            raise Corrupt(self._scratch_key, str(e)) from e
