"""
Stock sync schemas: the machine-to-machine endpoint and its API keys.
"""

from pydantic import Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from enum import Enum

from config import settings
from models.base import BaseSchema


class SyncStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncItem(BaseSchema):
    """
    One stock line pushed by an integration.

    Either product_name or sku identifies the product; product_name wins
    when both are present.
    """
    product_name: Optional[str] = Field(None, max_length=200)
    sku: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(..., ge=0, le=10_000_000)
    unit: Optional[str] = Field(None, max_length=50)

    @model_validator(mode="after")
    def require_identifier(self) -> "SyncItem":
        """Item needs product_name or sku."""
        if not (self.product_name or self.sku):
            raise ValueError("Each item requires product_name or sku")
        return self

    @property
    def lookup_name(self) -> str:
        return self.product_name or self.sku or ""


class StockSyncRequest(BaseSchema):
    """Request body for POST /api/stock-sync."""
    source: str = Field(default="api", min_length=1, max_length=50)
    items: list[SyncItem] = Field(..., min_length=1)

    @field_validator("items")
    @classmethod
    def within_item_limit(cls, v: list[SyncItem]) -> list[SyncItem]:
        """Cap batch size to the configured maximum."""
        if len(v) > settings.sync_max_items:
            raise ValueError(f"Maximum {settings.sync_max_items} items per request")
        return v


class SyncItemError(BaseSchema):
    product: str
    error: str


class StockSyncResult(BaseSchema):
    """Summary returned to the integration and written to stock_sync_logs."""
    status: SyncStatus
    products_updated: int = 0
    products_created: int = 0
    errors: int = 0
    error_details: list[SyncItemError] = Field(default_factory=list)
    message: str = ""


class ApiKeyRecord(BaseSchema):
    """Row from supplier_api_keys resolved by key hash."""
    id: str
    supplier_id: str
    is_active: bool = True
    revoked_at: Optional[datetime] = None


# ===================
# API KEY MANAGEMENT
# ===================

class ApiKeyCreate(BaseSchema):
    """Request body for issuing a key."""
    name: str = Field(default="Default Key", min_length=1, max_length=100)


class ApiKeySummary(BaseSchema):
    """Stored key as shown to its owner; never carries the key itself."""
    id: str
    name: Optional[str] = None
    api_key_prefix: str
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None


class IssuedApiKey(BaseSchema):
    """
    A newly issued key.

    api_key is returned once here; only its hash is stored.
    """
    api_key: str
    key: ApiKeySummary


class SyncLogEntry(BaseSchema):
    """Row from stock_sync_logs."""
    id: str
    api_key_id: Optional[str] = None
    source: Optional[str] = None
    status: SyncStatus
    products_updated: int = 0
    products_created: int = 0
    errors: int = 0
    error_details: Optional[list[SyncItemError]] = None
    created_at: Optional[datetime] = None
