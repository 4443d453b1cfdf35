"""
Stock sync service for integrations pushing stock over HTTP.

Integrations authenticate with an API key issued by ApiKeyService. Pushed
items go through the same catalog matcher and bulk applier as file
uploads, with two differences:

- Unknown products are reported, never created.
- The audit reason is "API sync from <source>".

Every sync is logged to stock_sync_logs.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client
from models.stock_import import ChangeReason
from models.stock_sync import (
    ApiKeyRecord,
    StockSyncRequest,
    StockSyncResult,
    SyncItemError,
    SyncStatus,
)
from parsers.row_normalizer import ParsedStockRow
from services.api_key_service import hash_api_key, is_well_formed_key, key_prefix
from services.bulk_apply_service import BulkApplier
from services.catalog_matcher import match_rows
from services.catalog_repository import CatalogRepository, get_catalog_repository
from services.import_session_service import ImportSessionManager, get_import_session_manager
from exceptions import InvalidApiKeyError, DatabaseError

logger = structlog.get_logger(__name__)


class StockSyncService:
    """
    Authenticates integrations and applies pushed stock levels.
    """

    def __init__(
        self,
        repository: Optional[CatalogRepository] = None,
        applier: Optional[BulkApplier] = None,
        session_manager: Optional[ImportSessionManager] = None,
        db=None,
    ):
        self.db = db or get_supabase_client()
        self.repository = repository or get_catalog_repository()
        self.applier = applier or BulkApplier(self.repository)
        self.session_manager = session_manager or get_import_session_manager()

    # ===================
    # AUTHENTICATION
    # ===================

    def authenticate(self, api_key: Optional[str]) -> ApiKeyRecord:
        """
        Resolve an active API key.

        Raises:
            InvalidApiKeyError: Missing, malformed, unknown, inactive or revoked key
        """
        if not is_well_formed_key(api_key):
            logger.warning("api_key_malformed")
            raise InvalidApiKeyError("Invalid API key format")

        try:
            result = (
                self.db.table("supplier_api_keys")
                .select("id, supplier_id, is_active, revoked_at")
                .eq("api_key_hash", hash_api_key(api_key))
                .eq("is_active", True)
                .is_("revoked_at", "null")
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("api_key_lookup_failed", error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            logger.warning("api_key_rejected", key_prefix=key_prefix(api_key))
            raise InvalidApiKeyError()

        key = ApiKeyRecord(**result.data[0])
        self._touch_key(key)
        return key

    def _touch_key(self, key: ApiKeyRecord) -> None:
        try:
            (
                self.db.table("supplier_api_keys")
                .update({"last_used_at": datetime.now(timezone.utc).isoformat()})
                .eq("id", key.id)
                .execute()
            )
        except Exception as e:
            logger.warning("api_key_touch_failed", key_id=key.id, error=str(e))

    # ===================
    # SYNC
    # ===================

    def sync(self, request: StockSyncRequest, key: ApiKeyRecord) -> StockSyncResult:
        """
        Apply pushed stock levels to the key owner's catalog.

        Raises:
            SessionBusyError: A bulk apply is running for this owner
            DatabaseError: Catalog snapshot could not be loaded
        """
        owner_id = key.supplier_id
        logger.info(
            "stock_sync_started",
            owner_id=owner_id,
            source=request.source,
            items=len(request.items)
        )

        with self.session_manager.apply_guard(owner_id):
            catalog = self.repository.list_products(owner_id)
            rows = [
                ParsedStockRow(
                    product_name=item.lookup_name,
                    quantity=item.quantity,
                    unit=item.unit,
                    row_number=index,
                )
                for index, item in enumerate(request.items, start=1)
            ]
            match = match_rows(rows, catalog)

            outcome = self.applier.apply_rows(
                owner_id=owner_id,
                rows=match.matched,
                actor=owner_id,
                reason=ChangeReason.api_sync(request.source),
            )

        failed_ids = {e.row_id for e in outcome.row_errors}
        inventory_created = sum(
            1 for row in match.matched
            if row.inventory_id is None and row.row_id not in failed_ids
        )

        error_details = [
            SyncItemError(product=row.product_name, error="Product not found")
            for row in match.unmatched
        ]
        error_details += [
            SyncItemError(product=w.value, error=w.message) for w in match.warnings
        ]
        error_details += [
            SyncItemError(product=e.product_name, error=e.error) for e in outcome.row_errors
        ]

        updated = outcome.updated_count - inventory_created
        result = StockSyncResult(
            status=_sync_status(updated + inventory_created, len(error_details)),
            products_updated=updated,
            products_created=inventory_created,
            errors=len(error_details),
            error_details=error_details,
            message=(
                f"Processed {len(request.items)} items: {updated} updated, "
                f"{inventory_created} created, {len(error_details)} errors"
            ),
        )

        self._log_sync(key, request.source, result)

        logger.info(
            "stock_sync_complete",
            owner_id=owner_id,
            status=result.status.value,
            updated=result.products_updated,
            created=result.products_created,
            errors=result.errors
        )
        return result

    def _log_sync(self, key: ApiKeyRecord, source: str, result: StockSyncResult) -> None:
        row = {
            "supplier_id": key.supplier_id,
            "api_key_id": key.id,
            "source": source,
            "products_updated": result.products_updated,
            "products_created": result.products_created,
            "errors": result.errors,
            "status": result.status.value,
            "error_details": [e.model_dump() for e in result.error_details] or None,
        }
        try:
            self.db.table("stock_sync_logs").insert(row).execute()
        except Exception as e:
            logger.error("stock_sync_log_failed", supplier_id=key.supplier_id, error=str(e))


def _sync_status(applied: int, errors: int) -> SyncStatus:
    if errors == 0:
        return SyncStatus.SUCCESS
    if applied > 0:
        return SyncStatus.PARTIAL
    return SyncStatus.FAILED


# Singleton instance
_stock_sync_service: Optional[StockSyncService] = None


def get_stock_sync_service() -> StockSyncService:
    """Get or create stock sync service instance."""
    global _stock_sync_service
    if _stock_sync_service is None:
        _stock_sync_service = StockSyncService()
    return _stock_sync_service
