"""Record Codec - Domain entities to and from stored bytes.

Values are UTF-8 JSON. Field names on the wire follow the ledger's
established layout so existing state stays readable:

    Point:        {"id": ..., "owner": ...}
    Index:        ["p1", "p2", ...]
    Transaction:  {"txID", "timestamp", "traderA", "traderB",
                   "pointA", "pointB", "related": [Point, ...]}
    Log:          {"tx": [Transaction, ...]}

Aggregates tolerate ``null`` and empty values (a freshly reset store holds
``null`` slices), everything else that does not match raises ``CodecError``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


class CodecError(ValueError):
    """Raised when stored bytes cannot be decoded into the expected shape."""


@dataclass
class Point:
    """A uniquely identified asset and its current owner."""

    id: str
    owner: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "owner": self.owner}

    @classmethod
    def from_dict(cls, data: Any) -> Point:
        if not isinstance(data, dict):
            raise CodecError(f"Point must be an object, got {type(data).__name__}")
        point_id = data.get("id")
        owner = data.get("owner", "")
        if not isinstance(point_id, str) or not point_id:
            raise CodecError("Point is missing a non-empty 'id'")
        if not isinstance(owner, str):
            raise CodecError("Point 'owner' must be a string")
        return cls(id=point_id, owner=owner)


@dataclass
class Transaction:
    """A proposed ownership exchange between two traders over two points.

    Immutable once appended to the log; nothing in the ledger rewrites or
    removes a transaction.
    """

    id: str
    timestamp: str = ""
    trader_a: str = ""
    trader_b: str = ""
    asset_a: str = ""
    asset_b: str = ""
    related: list[Point] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire dictionary."""
        return {
            "txID": self.id,
            "timestamp": self.timestamp,
            "traderA": self.trader_a,
            "traderB": self.trader_b,
            "pointA": self.asset_a,
            "pointB": self.asset_b,
            "related": [p.to_dict() for p in self.related],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Transaction:
        if not isinstance(data, dict):
            raise CodecError(f"Transaction must be an object, got {type(data).__name__}")

        def _text(name: str) -> str:
            value = data.get(name)
            if value is None:
                return ""
            if not isinstance(value, str):
                raise CodecError(f"Transaction field '{name}' must be a string")
            return value

        related_raw = data.get("related") or []
        if not isinstance(related_raw, list):
            raise CodecError("Transaction 'related' must be a list")

        return cls(
            id=_text("txID"),
            timestamp=_text("timestamp"),
            trader_a=_text("traderA"),
            trader_b=_text("traderB"),
            asset_a=_text("pointA"),
            asset_b=_text("pointB"),
            related=[Point.from_dict(p) for p in related_raw],
        )


def _dumps(payload: Any) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def _loads(raw: bytes | None) -> Any:
    if raw is None or not raw.strip():
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CodecError(f"Invalid JSON: {e}") from e


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------


def encode_point(point: Point) -> bytes:
    return _dumps(point.to_dict())


def decode_point(raw: bytes) -> Point:
    data = _loads(raw)
    if data is None:
        raise CodecError("Point record is empty")
    return Point.from_dict(data)


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


def encode_index(ids: list[str]) -> bytes:
    return _dumps(list(ids))


def decode_index(raw: bytes | None) -> list[str]:
    """Decode the point index; a missing or ``null`` value is an empty index."""
    data = _loads(raw)
    if data is None:
        return []
    if not isinstance(data, list) or not all(isinstance(i, str) for i in data):
        raise CodecError("Point index must be a list of strings")
    return data


# ---------------------------------------------------------------------------
# Transaction log
# ---------------------------------------------------------------------------


def encode_transactions(transactions: list[Transaction]) -> bytes:
    return _dumps({"tx": [tx.to_dict() for tx in transactions]})


def decode_transactions(raw: bytes | None) -> list[Transaction]:
    data = _loads(raw)
    if data is None:
        return []
    if not isinstance(data, dict):
        raise CodecError("Transaction log must be an object with a 'tx' list")
    entries = data.get("tx") or []
    if not isinstance(entries, list):
        raise CodecError("Transaction log 'tx' must be a list")
    return [Transaction.from_dict(entry) for entry in entries]


# ---------------------------------------------------------------------------
# Write-ahead intents
# ---------------------------------------------------------------------------


@dataclass
class WriteIntent:
    """A two-key write that was started but may not have finished."""

    op: str
    point_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.op, "id": self.point_id}


def encode_intent(intent: WriteIntent) -> bytes:
    return _dumps(intent.to_dict())


def decode_intent(raw: bytes | None) -> WriteIntent | None:
    data = _loads(raw)
    if data is None:
        return None
    if not isinstance(data, dict):
        raise CodecError("Write intent must be an object")
    op = data.get("op")
    point_id = data.get("id")
    if op not in ("create", "delete") or not isinstance(point_id, str) or not point_id:
        raise CodecError(f"Unrecognized write intent: {data!r}")
    return WriteIntent(op=op, point_id=point_id)


__all__ = [
    "CodecError",
    "Point",
    "Transaction",
    "WriteIntent",
    "encode_intent",
    "decode_intent",
    "encode_point",
    "decode_point",
    "encode_index",
    "decode_index",
    "encode_transactions",
    "decode_transactions",
]
