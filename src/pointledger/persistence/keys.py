"""Well-known state keys for the ledger's aggregate values."""

from __future__ import annotations

POINT_INDEX_KEY = "_pointindex"
TRANSACTION_LOG_KEY = "_minimaltx"
RELATED_POINTS_KEY = "_tmpRelatedPoint"
INTENT_KEY = "_pendingIntent"

# Legacy slots that are only ever cleared by a reset
OPEN_TRADES_KEY = "_tx"
SCRATCH_INDEX_KEY = "_tmpIndex"

# Written by a reset so a fresh deployment can be read back immediately
PROBE_KEY = "abc"

RESERVED_KEYS = frozenset(
    {
        POINT_INDEX_KEY,
        TRANSACTION_LOG_KEY,
        RELATED_POINTS_KEY,
        INTENT_KEY,
        OPEN_TRADES_KEY,
        SCRATCH_INDEX_KEY,
        PROBE_KEY,
    }
)


def is_reserved(key: str) -> bool:
    return key in RESERVED_KEYS
