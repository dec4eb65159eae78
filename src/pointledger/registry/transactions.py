"""Transaction Log - Append-only history of proposed exchanges.

The whole log is one aggregate value under ``_minimaltx``. Appends load it,
add at the end and write it back; queries load it and scan. Every filtered
read is therefore O(n) in the number of transactions, which is fine for the
small per-ledger state this is meant for.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from ..errors import Corrupt, InvalidArgumentValue
from ..persistence.codec import (
    CodecError,
    Transaction,
    decode_transactions,
    encode_transactions,
)
from ..persistence.keys import TRANSACTION_LOG_KEY
from ..persistence.store import StateStore

logger = logging.getLogger(__name__)


class TransactionLog:
    """Repository for the transaction log aggregate.

    Example:
        log = TransactionLog(store)
        log.record("order-bob-1", "bob", "alice", "p2", "p1")
        log.find_by_participant("bob")   # [Transaction(id="order-bob-1", ...)]
    """

    def __init__(
        self,
        store: StateStore,
        *,
        key: str = TRANSACTION_LOG_KEY,
        time_provider: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self._key = key
        self._time_provider = time_provider or (lambda: datetime.now(timezone.utc))
        self._transactions: list[Transaction] = []

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> list[Transaction]:
        raw = self._store.get(self._key)
        try:
            self._transactions = decode_transactions(raw)
        except CodecError as e:
            raise Corrupt(self._key, str(e)) from e
        return list(self._transactions)

    def flush(self) -> None:
        self._store.put(self._key, encode_transactions(self._transactions))

    def reset(self) -> None:
        self._transactions = []
        self.flush()

    def append(self, transaction: Transaction) -> Transaction:
        """Append ``transaction`` at the end of the log.

        No de-duplication and no check that the referenced points exist.
        """
        self.load()
        self._transactions.append(transaction)
        self.flush()
        logger.debug(
            f"Appended transaction {transaction.id} "
            f"({len(self._transactions)} in log)"
        )
        return transaction

    def record(
        self,
        tx_id: str,
        trader_a: str,
        trader_b: str,
        asset_a: str,
        asset_b: str,
    ) -> Transaction:
        """Build a transaction stamped with the current time and append it."""
        if not tx_id:
            raise InvalidArgumentValue("transaction id must be a non-empty string")
        transaction = Transaction(
            id=tx_id,
            timestamp=self._time_provider().isoformat(),
            trader_a=trader_a,
            trader_b=trader_b,
            asset_a=asset_a,
            asset_b=asset_b,
        )
        return self.append(transaction)

    def find_by_participant(self, token: str) -> list[Transaction]:
        """Transactions whose id contains ``token``, in log order.

        Transaction ids embed participant names, so this is a loose
        substring filter rather than an exact match. Never raises on
        no match; returns an empty list.
        """
        return [tx for tx in self.load() if token in tx.id]

    def all(self) -> list[Transaction]:
        return self.load()

    def count(self) -> int:
        return len(self.load())
