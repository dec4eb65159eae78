"""Client SDK for the Point Ledger service.

Example:
    >>> from pointledger_client import LedgerClient
    >>> async with LedgerClient("http://localhost:4950") as client:
    ...     await client.create_point("p1", "alice")
    ...     await client.find_points_by_owner("alice")
"""

from .client import (
    LedgerClient,
    LedgerClientConfig,
    LedgerClientError,
    LedgerClientSync,
    LedgerConflictError,
    LedgerConnectionError,
    LedgerNotFoundError,
    LedgerRequestError,
    Point,
    Transaction,
)

__all__ = [
    "LedgerClient",
    "LedgerClientConfig",
    "LedgerClientError",
    "LedgerClientSync",
    "LedgerConflictError",
    "LedgerConnectionError",
    "LedgerNotFoundError",
    "LedgerRequestError",
    "Point",
    "Transaction",
]
__version__ = "0.1.0"
