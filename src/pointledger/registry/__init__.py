"""Registry layer - Points, their index, ownership queries and the transaction log."""

from .assets import AssetRegistry, ReconcileReport, normalize_owner
from .index import AssetIndex, IndexRemovalPolicy
from .ownership import OwnershipQueryService
from .transactions import TransactionLog

__all__ = [
    "AssetIndex",
    "AssetRegistry",
    "IndexRemovalPolicy",
    "OwnershipQueryService",
    "ReconcileReport",
    "TransactionLog",
    "normalize_owner",
]
