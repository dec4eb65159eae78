"""Service layer - Operation dispatch, HTTP API and runtime configuration."""

from .config import LedgerConfig, StoreBackend
from .core import LedgerService
from .operations import OperationKind, parse_invocation

__all__ = [
    "LedgerConfig",
    "LedgerService",
    "OperationKind",
    "StoreBackend",
    "parse_invocation",
]
