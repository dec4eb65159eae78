"""Error kinds raised by the ledger core.

Every error is terminal for the operation that raised it. The HTTP layer
maps ``status_code`` onto the response; other callers can switch on ``kind``.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base exception for all ledger failures."""

    kind = "LedgerError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "detail": self.message}


class InvalidArgumentCount(LedgerError):
    """Wrong number of positional arguments for an operation."""

    kind = "InvalidArgumentCount"
    status_code = 400

    def __init__(self, function: str, expected: str, received: int):
        super().__init__(
            f"Incorrect number of arguments for {function}. "
            f"Expecting {expected}, got {received}"
        )
        self.function = function
        self.expected = expected
        self.received = received


class InvalidArgumentValue(LedgerError):
    kind = "InvalidArgumentValue"
    status_code = 400


class UnknownOperation(LedgerError):
    kind = "UnknownOperation"
    status_code = 400

    def __init__(self, function: str):
        super().__init__(f"Received unknown function invocation: {function}")
        self.function = function


class AlreadyExists(LedgerError):
    kind = "AlreadyExists"
    status_code = 409

    def __init__(self, key: str):
        super().__init__(f"Point already exists: {key}")
        self.key = key


class NotFound(LedgerError):
    kind = "NotFound"
    status_code = 404


class Corrupt(NotFound):
    """A value exists under the key but does not decode.

    Subclasses ``NotFound`` so callers that only care about "usable or not"
    keep working, while callers that need to tell the two apart can.
    """

    kind = "Corrupt"
    status_code = 422

    def __init__(self, key: str, reason: str):
        super().__init__(f"Stored value for {key} is unreadable: {reason}")
        self.key = key
        self.reason = reason


class StoreUnavailable(LedgerError):
    """The backing state store failed; propagated without retry."""

    kind = "StoreUnavailable"
    status_code = 503


__all__ = [
    "LedgerError",
    "InvalidArgumentCount",
    "InvalidArgumentValue",
    "UnknownOperation",
    "AlreadyExists",
    "NotFound",
    "Corrupt",
    "StoreUnavailable",
]
