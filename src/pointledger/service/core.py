"""Core ledger service - operation dispatch and state ownership."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Callable

from ..errors import LedgerError, NotFound
from ..persistence.codec import Point, Transaction, encode_index, encode_transactions
from ..persistence.keys import (
    INTENT_KEY,
    OPEN_TRADES_KEY,
    PROBE_KEY,
    RELATED_POINTS_KEY,
    SCRATCH_INDEX_KEY,
)
from ..persistence.store import MemoryStateStore, SqliteStateStore, StateStore
from ..registry import (
    AssetIndex,
    AssetRegistry,
    OwnershipQueryService,
    ReconcileReport,
    TransactionLog,
)
from .config import LedgerConfig, StoreBackend
from .models import InvocationRecord
from .operations import (
    CreatePoint,
    DeletePoint,
    FindPointsByOwner,
    FindTransactions,
    Operation,
    OperationKind,
    RawRead,
    RawWrite,
    RecordTransaction,
    ResetLedger,
    TransferPoint,
    parse_invocation,
)

logger = logging.getLogger(__name__)


def build_store(config: LedgerConfig) -> StateStore:
    """Create the state store adapter selected by ``config``."""
    if config.store_backend is StoreBackend.SQLITE:
        return SqliteStateStore(config.db_path)
    return MemoryStateStore()


class LedgerService:
    """Core ledger service.

    Owns the state store and the components layered on it, and runs every
    operation to completion before the next one touching the same state.
    The point registry and its index share one lock; the transaction log
    has its own.

    Example:
        service = LedgerService(LedgerConfig())
        service.invoke("init_point", ["p1", "alice"])
        service.invoke("findPointWithOwner", ["alice"])   # b'["p1"]'
    """

    def __init__(
        self,
        config: LedgerConfig,
        *,
        store: StateStore | None = None,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self._store = store if store is not None else build_store(config)
        self._time_provider = time_provider or (lambda: datetime.now(timezone.utc))

        self._index = AssetIndex(self._store, removal_policy=config.index_removal)
        self._registry = AssetRegistry(
            self._store,
            self._index,
            write_intents=config.write_intents,
        )
        self._log = TransactionLog(self._store, time_provider=self._time_provider)
        self._ownership = OwnershipQueryService(self._store, self._registry)

        self._registry_lock = threading.RLock()
        self._log_lock = threading.RLock()

        self._invocations: list[InvocationRecord] = []

        self._handlers: dict[OperationKind, Callable[[Operation], bytes]] = {
            OperationKind.RESET: self._handle_reset,
            OperationKind.CREATE_POINT: self._handle_create_point,
            OperationKind.TRANSFER_POINT: self._handle_transfer_point,
            OperationKind.DELETE_POINT: self._handle_delete_point,
            OperationKind.RAW_WRITE: self._handle_raw_write,
            OperationKind.RAW_READ: self._handle_raw_read,
            OperationKind.FIND_TRANSACTIONS: self._handle_find_transactions,
            OperationKind.RECORD_TRANSACTION: self._handle_record_transaction,
            OperationKind.FIND_POINTS_BY_OWNER: self._handle_find_points_by_owner,
        }

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def registry(self) -> AssetRegistry:
        return self._registry

    @property
    def transactions(self) -> TransactionLog:
        return self._log

    @property
    def ownership(self) -> OwnershipQueryService:
        return self._ownership

    # -----------------------------------------------------------------------
    # Invocation Boundary
    # -----------------------------------------------------------------------

    def invoke(self, function: str, args: Sequence[str]) -> bytes:
        """Parse and run a named invocation, returning its raw payload.

        Raises:
            LedgerError: any parse or operation failure
        """
        start = time.perf_counter()
        kind: OperationKind | None = None
        try:
            operation = parse_invocation(function, args)
            kind = operation.kind
            payload = self.execute(operation)
        except LedgerError as e:
            self._record_invocation(function, kind, start, error=e)
            raise
        self._record_invocation(function, kind, start)
        return payload

    def execute(self, operation: Operation) -> bytes:
        """Run an already-parsed operation."""
        handler = self._handlers[operation.kind]
        logger.debug(f"Executing {operation.kind.value}: {operation}")
        return handler(operation)

    def _handle_reset(self, op: ResetLedger) -> bytes:
        self.reset(op.value)
        return b""

    def _handle_create_point(self, op: CreatePoint) -> bytes:
        self.create_point(op.point_id, op.owner)
        return b""

    def _handle_transfer_point(self, op: TransferPoint) -> bytes:
        self.transfer_point(op.point_id, op.new_owner)
        return b""

    def _handle_delete_point(self, op: DeletePoint) -> bytes:
        self.delete_point(op.point_id)
        return b""

    def _handle_raw_write(self, op: RawWrite) -> bytes:
        self.write_raw(op.key, op.value.encode("utf-8"))
        return b""

    def _handle_raw_read(self, op: RawRead) -> bytes:
        return self.read_raw(op.key)

    def _handle_find_transactions(self, op: FindTransactions) -> bytes:
        return encode_transactions(self.find_transactions(op.participant))

    def _handle_record_transaction(self, op: RecordTransaction) -> bytes:
        self.record_transaction(
            op.tx_id, op.trader_a, op.trader_b, op.asset_a, op.asset_b
        )
        return b""

    def _handle_find_points_by_owner(self, op: FindPointsByOwner) -> bytes:
        return encode_index(self.find_points_by_owner(op.owner))

    # -----------------------------------------------------------------------
    # Points
    # -----------------------------------------------------------------------

    def create_point(self, point_id: str, owner: str) -> Point:
        with self._registry_lock:
            return self._registry.create(point_id, owner)

    def get_point(self, point_id: str) -> Point:
        with self._registry_lock:
            return self._registry.get(point_id)

    def transfer_point(self, point_id: str, new_owner: str) -> Point:
        with self._registry_lock:
            return self._registry.set_owner(point_id, new_owner)

    def delete_point(self, point_id: str) -> int:
        with self._registry_lock:
            return self._registry.delete(point_id)

    def list_points(self) -> list[str]:
        with self._registry_lock:
            return self._registry.list_ids()

    def find_points_by_owner(self, owner: str) -> list[str]:
        with self._registry_lock:
            return self._ownership.find_assets_by_owner(owner)

    def reconcile(self) -> ReconcileReport:
        with self._registry_lock:
            return self._registry.reconcile()

    # -----------------------------------------------------------------------
    # Transactions
    # -----------------------------------------------------------------------

    def record_transaction(
        self,
        tx_id: str,
        trader_a: str,
        trader_b: str,
        asset_a: str,
        asset_b: str,
    ) -> Transaction:
        with self._log_lock:
            return self._log.record(tx_id, trader_a, trader_b, asset_a, asset_b)

    def find_transactions(self, participant: str) -> list[Transaction]:
        with self._log_lock:
            return self._log.find_by_participant(participant)

    def all_transactions(self) -> list[Transaction]:
        with self._log_lock:
            return self._log.all()

    # -----------------------------------------------------------------------
    # Raw State
    # -----------------------------------------------------------------------

    def read_raw(self, key: str) -> bytes:
        """Raw get by key; fails ``NotFound`` when nothing is stored."""
        with self._registry_lock:
            raw = self._store.get(key)
        if not raw:
            raise NotFound(f"No value stored under key {key}")
        return raw

    def write_raw(self, key: str, value: bytes) -> None:
        """Raw put by key. Bypasses every registry invariant."""
        with self._registry_lock:
            logger.warning(f"Raw write to {key} bypasses index consistency")
            self._store.put(key, value)

    def reset(self, value: int = 0) -> None:
        """Clear every aggregate back to its empty state.

        Point records themselves are left in place, since the store offers
        no way to enumerate them once the index is gone.
        """
        with self._registry_lock, self._log_lock:
            self._store.put(PROBE_KEY, str(value).encode("utf-8"))
            self._index.reset()
            self._store.put(RELATED_POINTS_KEY, encode_index([]))
            self._store.put(SCRATCH_INDEX_KEY, encode_index([]))
            self._log.reset()
            self._store.put(OPEN_TRADES_KEY, encode_transactions([]))
            self._store.delete(INTENT_KEY)
        logger.info("Ledger state reset")

    # -----------------------------------------------------------------------
    # Invocation History
    # -----------------------------------------------------------------------

    def _record_invocation(
        self,
        function: str,
        kind: OperationKind | None,
        start: float,
        error: LedgerError | None = None,
    ) -> None:
        entry = InvocationRecord(
            function=function,
            kind=kind.value if kind else None,
            status="error" if error else "ok",
            error_kind=error.kind if error else None,
            error=error.message if error else None,
            latency_ms=(time.perf_counter() - start) * 1000,
            timestamp=self._time_provider(),
        )
        with self._log_lock:
            self._invocations.append(entry)
            limit = self.config.invocation_log_limit
            if len(self._invocations) > limit:
                self._invocations = self._invocations[-limit:]

        if error:
            logger.info(f"Invocation {function} failed: {error.kind}: {error.message}")

    def recent_invocations(self) -> list[InvocationRecord]:
        with self._log_lock:
            return list(self._invocations)

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    def startup(self) -> ReconcileReport | None:
        """Run startup housekeeping configured for this service."""
        if not self.config.reconcile_on_startup:
            return None
        report = self.reconcile()
        if report.repaired:
            logger.warning(f"Startup reconciliation repaired index: {json.dumps(report.to_dict())}")
        return report

    def close(self) -> None:
        close = getattr(self._store, "close", None)
        if callable(close):
            close()
