"""Configuration primitives for the ledger service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from ..registry.index import IndexRemovalPolicy


class StoreBackend(str, Enum):
    """Supported state store adapters."""

    MEMORY = "memory"
    SQLITE = "sqlite"


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(slots=True)
class LedgerConfig:
    """Runtime configuration for the ledger service.

    Configuration Sources (priority order):
    1. Direct constructor arguments
    2. Environment variables (POINTLEDGER_*)
    3. Default values

    Attributes:
        port: Service port (default: 4950)
        store_backend: State store adapter (default: memory)
        db_path: SQLite database path (default: data/pointledger.db)
        index_removal: Remove every matching index entry on delete, or only
            the first (default: all)
        write_intents: Record a write-ahead intent around two-key writes
        reconcile_on_startup: Run a reconciliation pass when the service starts
        invocation_log_limit: In-memory invocation history entries (default: 500)
    """

    port: int = 4950
    store_backend: StoreBackend = StoreBackend.MEMORY
    db_path: str = "data/pointledger.db"
    index_removal: IndexRemovalPolicy = IndexRemovalPolicy.ALL
    write_intents: bool = True
    reconcile_on_startup: bool = True
    invocation_log_limit: int = 500

    @classmethod
    def from_env(cls) -> LedgerConfig:
        """Create configuration from environment variables.

        Optional:
            POINTLEDGER_PORT: Service port (default: 4950)
            POINTLEDGER_STORE: 'memory' or 'sqlite'
            POINTLEDGER_DB_PATH: SQLite database path
            POINTLEDGER_INDEX_REMOVAL: 'all' or 'first'
            POINTLEDGER_WRITE_INTENTS: '1' to record write intents (default)
            POINTLEDGER_RECONCILE_ON_STARTUP: '1' to reconcile at startup (default)
            POINTLEDGER_INVOCATION_LOG_LIMIT: In-memory history size
        """
        return cls(
            port=int(os.environ.get("POINTLEDGER_PORT", "4950")),
            store_backend=StoreBackend(
                os.environ.get("POINTLEDGER_STORE", "memory").lower()
            ),
            db_path=os.environ.get("POINTLEDGER_DB_PATH", "data/pointledger.db"),
            index_removal=IndexRemovalPolicy(
                os.environ.get("POINTLEDGER_INDEX_REMOVAL", "all").lower()
            ),
            write_intents=_env_flag("POINTLEDGER_WRITE_INTENTS", True),
            reconcile_on_startup=_env_flag("POINTLEDGER_RECONCILE_ON_STARTUP", True),
            invocation_log_limit=int(
                os.environ.get("POINTLEDGER_INVOCATION_LOG_LIMIT", "500")
            ),
        )
