"""
Bulk applier: writes the selected staged rows to the catalog.

The apply is a fold over rows. Each row's writes are wrapped in a RowResult
and accumulated into an ApplyOutcome; a failed row is counted and the fold
moves on.

NOT transactional. Rows written before a failure stay committed and nothing
is retried. A half-finished row (product created, inventory insert failed)
is left as is and counted as an error.

Rows are applied one at a time so that the previous-quantity read at match
time and the audit write for a row are never interleaved with another write
to the same inventory record.
"""

from dataclasses import dataclass
from enum import Enum
from functools import reduce
from typing import Iterable, Optional
import structlog

from config import settings
from models.stock_import import (
    StagedRow,
    RowPartition,
    ChangeReason,
    ApplyOutcome,
    RowError,
)
from parsers.row_normalizer import RowParseWarning
from services.audit_service import AuditLogger
from services.catalog_repository import CatalogRepository, get_catalog_repository
from services.import_session_service import ImportSession
from exceptions import AppError, RowApplyError

logger = structlog.get_logger(__name__)


class RowEffect(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass
class RowResult:
    """Effect of applying one staged row."""
    row: StagedRow
    effect: RowEffect
    error: Optional[RowApplyError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BulkApplier:
    """
    Applies staged rows through the catalog repository.

    Unmatched row: create product, then create its inventory record.
    Matched row with inventory: update quantity, then write an audit record.
    Matched row without inventory: create the inventory record (no audit).
    """

    def __init__(
        self,
        repository: Optional[CatalogRepository] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.repository = repository or get_catalog_repository()
        self.audit_logger = audit_logger or AuditLogger(self.repository)

    def apply(
        self,
        session: ImportSession,
        actor: str,
        reason: str = ChangeReason.BULK_IMPORT.value,
    ) -> ApplyOutcome:
        """Apply every selected row of a session."""
        return self.apply_rows(
            owner_id=session.owner_id,
            rows=session.selected_rows(),
            actor=actor,
            reason=reason,
            default_category=session.default_category,
            warnings=session.warnings,
        )

    def apply_rows(
        self,
        owner_id: str,
        rows: Iterable[StagedRow],
        actor: str,
        reason: str,
        default_category: Optional[str] = None,
        warnings: Optional[list[RowParseWarning]] = None,
    ) -> ApplyOutcome:
        """
        Fold rows into an ApplyOutcome.

        Only rows with selected=True are written.
        """
        category = default_category or settings.default_category
        results = (
            self._apply_row(owner_id, row, actor, reason, category)
            for row in rows
            if row.selected
        )
        outcome = reduce(_accumulate, results, ApplyOutcome(warnings=list(warnings or [])))

        logger.info(
            "bulk_apply_complete",
            owner_id=owner_id,
            reason=reason,
            created=outcome.created_count,
            updated=outcome.updated_count,
            errors=outcome.error_count
        )
        return outcome

    # ===================
    # PER-ROW EFFECTS
    # ===================

    def _apply_row(
        self,
        owner_id: str,
        row: StagedRow,
        actor: str,
        reason: str,
        default_category: str,
    ) -> RowResult:
        try:
            if row.partition == RowPartition.UNMATCHED:
                self._create_product(owner_id, row, default_category)
                return RowResult(row=row, effect=RowEffect.CREATED)
            self._update_stock(row, actor, reason)
            return RowResult(row=row, effect=RowEffect.UPDATED)

        except Exception as e:
            message = e.message if isinstance(e, AppError) else str(e)
            error = RowApplyError(row.row_id, row.product_name, message)
            logger.error(
                "row_apply_failed",
                row_id=row.row_id,
                row_number=row.row_number,
                product_name=row.product_name,
                partition=row.partition.value,
                error=message,
                error_type=type(e).__name__
            )
            return RowResult(row=row, effect=RowEffect.FAILED, error=error)

    def _create_product(self, owner_id: str, row: StagedRow, default_category: str) -> None:
        product_id = self.repository.create_product(
            owner_id=owner_id,
            name=row.product_name,
            category=row.category or default_category,
            description=None,
        )
        self.repository.create_inventory(
            product_id=product_id,
            quantity=row.quantity,
            unit=row.unit or settings.default_unit,
        )

    def _update_stock(self, row: StagedRow, actor: str, reason: str) -> None:
        if not row.catalog_entry_id:
            raise RowApplyError(row.row_id, row.product_name, "Matched row has no catalog entry")

        if row.inventory_id is None:
            # First stock for this product; creation is not audited
            self.repository.create_inventory(
                product_id=row.catalog_entry_id,
                quantity=row.quantity,
                unit=row.unit or settings.default_unit,
            )
            return

        self.repository.update_inventory(row.inventory_id, row.quantity, unit=row.unit)
        self.audit_logger.record(
            product_id=row.catalog_entry_id,
            previous_quantity=row.previous_quantity or 0,
            new_quantity=row.quantity,
            actor=actor,
            reason=reason,
        )


def _accumulate(outcome: ApplyOutcome, result: RowResult) -> ApplyOutcome:
    if result.effect == RowEffect.CREATED:
        outcome.created_count += 1
    elif result.effect == RowEffect.UPDATED:
        outcome.updated_count += 1
    else:
        outcome.error_count += 1
        outcome.row_errors.append(RowError(
            row_id=result.row.row_id,
            product_name=result.row.product_name,
            error=result.error.message if result.error else "unknown error",
        ))
    return outcome
