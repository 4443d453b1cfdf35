"""
Stock import schemas: catalog snapshot, staged rows, apply outcome, audit.
"""

from pydantic import Field
from typing import Optional
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from models.base import BaseSchema
from parsers.row_normalizer import RowParseWarning


class RowPartition(str, Enum):
    """Which side of the catalog match a staged row landed on."""
    MATCHED = "matched"
    UNMATCHED = "unmatched"


class SessionState(str, Enum):
    """Import session lifecycle: IDLE -> PARSED -> REVIEWING -> APPLYING -> IDLE."""
    IDLE = "idle"
    PARSED = "parsed"
    REVIEWING = "reviewing"
    APPLYING = "applying"


class ChangeReason(str, Enum):
    """Fixed labels stored on audit records."""
    MANUAL = "Manual update"
    BULK_IMPORT = "Bulk import"

    @staticmethod
    def api_sync(source: str) -> str:
        return f"API sync from {source}"


# ===================
# CATALOG SNAPSHOT
# ===================

class InventoryRecord(BaseSchema):
    """
    Current inventory row for a catalog product.

    Read as stored: quantity is not range-checked here so one bad row
    cannot fail a whole catalog snapshot.
    """
    id: str
    quantity: int = 0
    unit: Optional[str] = None
    low_stock_threshold: Optional[int] = None

    @property
    def is_low_stock(self) -> bool:
        """At or below the threshold. Never low without a threshold."""
        return self.low_stock_threshold is not None and self.quantity <= self.low_stock_threshold


class CatalogEntry(BaseSchema):
    """Product in the owner's catalog, with its inventory if any."""
    id: str
    name: str
    category: Optional[str] = None
    current_inventory: Optional[InventoryRecord] = None


# ===================
# STAGING
# ===================

class StagedRow(BaseSchema):
    """
    A parsed row held for review.

    row_id is stable for the life of the session; selection is toggled by id.
    Matched rows carry the catalog entry and the inventory quantity read at
    match time.
    """
    row_id: str = Field(default_factory=lambda: str(uuid4()))
    partition: RowPartition
    product_name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    unit: Optional[str] = None
    category: Optional[str] = None
    row_number: int = 0
    catalog_entry_id: Optional[str] = None
    inventory_id: Optional[str] = None
    previous_quantity: Optional[int] = None
    selected: bool = True


class ImportSessionResponse(BaseSchema):
    """Current review state returned to the caller."""
    session_id: str
    owner_id: str
    state: SessionState
    filename: Optional[str] = None
    default_category: str
    matched: list[StagedRow]
    unmatched: list[StagedRow]
    selection_count: int
    warnings: list[RowParseWarning] = Field(default_factory=list)
    expires_at: datetime


class DefaultCategoryUpdate(BaseSchema):
    """Request body for setting the session default category."""
    default_category: str = Field(..., min_length=1, max_length=100)


# ===================
# APPLY
# ===================

class RowError(BaseSchema):
    """Why one staged row failed to apply."""
    row_id: str
    product_name: str
    error: str


class ApplyOutcome(BaseSchema):
    """
    Counters accumulated over one bulk apply.

    Apply is not atomic: rows applied before a failure stay committed.
    """
    created_count: int = 0
    updated_count: int = 0
    error_count: int = 0
    row_errors: list[RowError] = Field(default_factory=list)
    warnings: list[RowParseWarning] = Field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return self.created_count + self.updated_count + self.error_count

    def summary_message(self) -> str:
        """Single user-facing summary line."""
        message = (
            f"Created {self.created_count}, updated {self.updated_count}, "
            f"failed {self.error_count}"
        )
        if self.warnings:
            message += f" ({len(self.warnings)} row warnings)"
        return message


class ApplyResponse(BaseSchema):
    """Response for POST /session/apply."""
    message: str
    outcome: ApplyOutcome


# ===================
# AUDIT
# ===================

class AuditRecord(BaseSchema):
    """Immutable record of one inventory quantity change."""
    product_id: str
    previous_quantity: int
    new_quantity: int
    updated_by: str
    reason: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ===================
# MANUAL UPDATE
# ===================

class ManualStockUpdate(BaseSchema):
    """Set one product's stock quantity directly."""
    quantity: int = Field(..., ge=0, le=10_000_000)
    unit: Optional[str] = Field(None, max_length=50)


class StockUpdateResponse(BaseSchema):
    """Result of a manual stock update."""
    product_id: str
    inventory_id: str
    previous_quantity: Optional[int] = None
    new_quantity: int
    unit: str
    reason: str


class StockLevel(BaseSchema):
    """Current stock of one catalog product, for the stock listing."""
    product_id: str
    name: str
    category: Optional[str] = None
    inventory_id: Optional[str] = None
    quantity: int = 0
    unit: str
    low_stock_threshold: Optional[int] = None
    is_low_stock: bool = False
