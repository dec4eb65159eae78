"""Pydantic models backing the ledger API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ..persistence.codec import Point as PointRecord
from ..persistence.codec import Transaction as TransactionRecord


# ---------------------------------------------------------------------------
# Generic Invocation Models
# ---------------------------------------------------------------------------


class InvokeRequest(BaseModel):
    """A named invocation with ordered string arguments."""

    function: str = Field(..., min_length=1, max_length=64)
    args: list[str] = Field(default_factory=list, max_length=16)


class InvokeResponse(BaseModel):
    """Result of a named invocation.

    ``payload`` is the raw success payload decoded as UTF-8 (often empty).
    """

    function: str
    payload: str = ""


# ---------------------------------------------------------------------------
# Point Models
# ---------------------------------------------------------------------------


class Point(BaseModel):
    """A registered point and its owner."""

    id: str
    owner: str

    @classmethod
    def from_record(cls, record: PointRecord) -> Point:
        return cls(id=record.id, owner=record.owner)


class PointCreateRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=256)
    owner: str = Field(..., min_length=1, max_length=256)


class OwnerUpdateRequest(BaseModel):
    owner: str = Field(..., min_length=1, max_length=256)


class PointIndexResponse(BaseModel):
    """Every indexed point id, in index order."""

    ids: list[str]
    count: int


class PointDeleteResponse(BaseModel):
    id: str
    index_entries_removed: int


class OwnerPointsResponse(BaseModel):
    """Points owned by a party."""

    owner: str
    ids: list[str]


# ---------------------------------------------------------------------------
# Transaction Models
# ---------------------------------------------------------------------------


class Transaction(BaseModel):
    """A proposed exchange between two traders."""

    id: str
    timestamp: str
    trader_a: str
    trader_b: str
    asset_a: str
    asset_b: str
    related: list[Point] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: TransactionRecord) -> Transaction:
        return cls(
            id=record.id,
            timestamp=record.timestamp,
            trader_a=record.trader_a,
            trader_b=record.trader_b,
            asset_a=record.asset_a,
            asset_b=record.asset_b,
            related=[Point.from_record(p) for p in record.related],
        )


class TransactionCreateRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=256)
    trader_a: str
    trader_b: str
    asset_a: str
    asset_b: str


class TransactionListResponse(BaseModel):
    transactions: list[Transaction]
    count: int


# ---------------------------------------------------------------------------
# Raw State Models
# ---------------------------------------------------------------------------


class RawWriteRequest(BaseModel):
    value: str


class RawValueResponse(BaseModel):
    key: str
    value: str


# ---------------------------------------------------------------------------
# Admin Models
# ---------------------------------------------------------------------------


class ResetRequest(BaseModel):
    value: int = 0


class ReconcileResponse(BaseModel):
    replayed_intent: dict[str, Any] | None = None
    dangling_removed: list[str] = Field(default_factory=list)
    duplicates_removed: list[str] = Field(default_factory=list)
    index_size: int = 0
    repaired: bool = False


class InvocationRecord(BaseModel):
    """One entry of the in-memory invocation history."""

    function: str
    kind: str | None = None
    status: str = "ok"
    error_kind: str | None = None
    error: str | None = None
    latency_ms: float
    timestamp: datetime


# ---------------------------------------------------------------------------
# Error Models
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    kind: str
    correlation_id: str | None = None
