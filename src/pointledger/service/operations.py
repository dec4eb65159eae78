"""Operation parsing - Named invocations to typed operations.

Callers invoke the ledger with a function name and ordered string
arguments. That pair is resolved exactly once, here, into one of a closed
set of operation types; everything downstream dispatches on the type and
never re-inspects raw arguments.

    init                (value)                      -> ResetLedger
    init_point          (id, owner)                  -> CreatePoint
    set_user            (id, new_owner)              -> TransferPoint
    delete              (id)                         -> DeletePoint
    write               (key, value)                 -> RawWrite
    read                ("read", key)                -> RawRead
    read                ("findLatest", token[, ...]) -> FindTransactions
    init_transaction    (id, a, b, point_a, point_b) -> RecordTransaction
    findPointWithOwner  (owner)                      -> FindPointsByOwner
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from ..errors import InvalidArgumentCount, InvalidArgumentValue, UnknownOperation


class OperationKind(str, Enum):
    """Every operation the ledger understands."""

    RESET = "init"
    CREATE_POINT = "init_point"
    TRANSFER_POINT = "set_user"
    DELETE_POINT = "delete"
    RAW_WRITE = "write"
    RAW_READ = "read"
    FIND_TRANSACTIONS = "findLatest"
    RECORD_TRANSACTION = "init_transaction"
    FIND_POINTS_BY_OWNER = "findPointWithOwner"


@dataclass(frozen=True, slots=True)
class ResetLedger:
    kind: ClassVar[OperationKind] = OperationKind.RESET
    value: int


@dataclass(frozen=True, slots=True)
class CreatePoint:
    kind: ClassVar[OperationKind] = OperationKind.CREATE_POINT
    point_id: str
    owner: str


@dataclass(frozen=True, slots=True)
class TransferPoint:
    kind: ClassVar[OperationKind] = OperationKind.TRANSFER_POINT
    point_id: str
    new_owner: str


@dataclass(frozen=True, slots=True)
class DeletePoint:
    kind: ClassVar[OperationKind] = OperationKind.DELETE_POINT
    point_id: str


@dataclass(frozen=True, slots=True)
class RawWrite:
    kind: ClassVar[OperationKind] = OperationKind.RAW_WRITE
    key: str
    value: str


@dataclass(frozen=True, slots=True)
class RawRead:
    kind: ClassVar[OperationKind] = OperationKind.RAW_READ
    key: str


@dataclass(frozen=True, slots=True)
class FindTransactions:
    """Participant filter over the log.

    ``range_hint`` carries the optional trailing argument callers may send;
    it is accepted and ignored, as no range filter exists.
    """

    kind: ClassVar[OperationKind] = OperationKind.FIND_TRANSACTIONS
    participant: str
    range_hint: str | None = None


@dataclass(frozen=True, slots=True)
class RecordTransaction:
    kind: ClassVar[OperationKind] = OperationKind.RECORD_TRANSACTION
    tx_id: str
    trader_a: str
    trader_b: str
    asset_a: str
    asset_b: str


@dataclass(frozen=True, slots=True)
class FindPointsByOwner:
    kind: ClassVar[OperationKind] = OperationKind.FIND_POINTS_BY_OWNER
    owner: str


Operation = Union[
    ResetLedger,
    CreatePoint,
    TransferPoint,
    DeletePoint,
    RawWrite,
    RawRead,
    FindTransactions,
    RecordTransaction,
    FindPointsByOwner,
]


def _expect(function: str, args: Sequence[str], count: int) -> None:
    if len(args) != count:
        raise InvalidArgumentCount(function, str(count), len(args))


def _parse_read(args: Sequence[str]) -> Operation:
    if len(args) < 2:
        raise InvalidArgumentCount("read", "2 or 3", len(args))
    mode = args[0]
    if mode == "read":
        _expect("read", args, 2)
        return RawRead(key=args[1])
    if mode == OperationKind.FIND_TRANSACTIONS.value:
        if len(args) > 3:
            raise InvalidArgumentCount("read", "2 or 3", len(args))
        return FindTransactions(
            participant=args[1],
            range_hint=args[2] if len(args) == 3 else None,
        )
    raise InvalidArgumentValue(f"Unknown read mode: {mode}")


def parse_invocation(function: str, args: Sequence[str]) -> Operation:
    """Resolve a named invocation into a typed operation.

    Raises:
        UnknownOperation: ``function`` is not a ledger operation
        InvalidArgumentCount: wrong number of arguments
        InvalidArgumentValue: an argument has the wrong form
    """
    args = list(args)
    for arg in args:
        if not isinstance(arg, str):
            raise InvalidArgumentValue("All invocation arguments must be strings")

    if function == OperationKind.RESET.value:
        _expect(function, args, 1)
        try:
            value = int(args[0])
        except ValueError as e:
            raise InvalidArgumentValue("Expecting integer value for the probe key") from e
        return ResetLedger(value=value)

    if function == OperationKind.CREATE_POINT.value:
        _expect(function, args, 2)
        return CreatePoint(point_id=args[0], owner=args[1])

    if function == OperationKind.TRANSFER_POINT.value:
        _expect(function, args, 2)
        return TransferPoint(point_id=args[0], new_owner=args[1])

    if function == OperationKind.DELETE_POINT.value:
        _expect(function, args, 1)
        return DeletePoint(point_id=args[0])

    if function == OperationKind.RAW_WRITE.value:
        _expect(function, args, 2)
        return RawWrite(key=args[0], value=args[1])

    if function == OperationKind.RAW_READ.value:
        return _parse_read(args)

    if function == OperationKind.RECORD_TRANSACTION.value:
        _expect(function, args, 5)
        return RecordTransaction(
            tx_id=args[0],
            trader_a=args[1],
            trader_b=args[2],
            asset_a=args[3],
            asset_b=args[4],
        )

    if function == OperationKind.FIND_POINTS_BY_OWNER.value:
        _expect(function, args, 1)
        return FindPointsByOwner(owner=args[0])

    raise UnknownOperation(function)


__all__ = [
    "OperationKind",
    "Operation",
    "ResetLedger",
    "CreatePoint",
    "TransferPoint",
    "DeletePoint",
    "RawWrite",
    "RawRead",
    "FindTransactions",
    "RecordTransaction",
    "FindPointsByOwner",
    "parse_invocation",
]
