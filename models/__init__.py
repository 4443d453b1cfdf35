"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.stock_import import (
    RowPartition,
    SessionState,
    ChangeReason,
    InventoryRecord,
    CatalogEntry,
    StagedRow,
    ImportSessionResponse,
    DefaultCategoryUpdate,
    RowError,
    ApplyOutcome,
    ApplyResponse,
    AuditRecord,
    ManualStockUpdate,
    StockUpdateResponse,
    StockLevel,
)
from models.stock_sync import (
    SyncStatus,
    SyncItem,
    StockSyncRequest,
    SyncItemError,
    StockSyncResult,
    ApiKeyRecord,
    ApiKeyCreate,
    ApiKeySummary,
    IssuedApiKey,
    SyncLogEntry,
)

__all__ = [
    # Base
    "BaseSchema",

    # Stock import
    "RowPartition",
    "SessionState",
    "ChangeReason",
    "InventoryRecord",
    "CatalogEntry",
    "StagedRow",
    "ImportSessionResponse",
    "DefaultCategoryUpdate",
    "RowError",
    "ApplyOutcome",
    "ApplyResponse",
    "AuditRecord",
    "ManualStockUpdate",
    "StockUpdateResponse",
    "StockLevel",

    # Stock sync
    "SyncStatus",
    "SyncItem",
    "StockSyncRequest",
    "SyncItemError",
    "StockSyncResult",
    "ApiKeyRecord",
    "ApiKeyCreate",
    "ApiKeySummary",
    "IssuedApiKey",
    "SyncLogEntry",
]
