"""
Business logic services.

Each service handles one step of stock reconciliation.
"""

from services.catalog_repository import CatalogRepository, get_catalog_repository
from services.catalog_matcher import CatalogMatch, match_rows
from services.import_session_service import (
    ImportSession,
    ImportSessionManager,
    get_import_session_manager,
)
from services.audit_service import AuditLogger
from services.bulk_apply_service import BulkApplier, RowResult
from services.export_service import sanitize_cell, sanitize_row, generate_template, generate_stock_export
from services.stock_import_service import StockImportService, get_stock_import_service
from services.stock_service import StockService, get_stock_service
from services.api_key_service import ApiKeyService, get_api_key_service
from services.stock_sync_service import StockSyncService, get_stock_sync_service

__all__ = [
    "CatalogRepository",
    "get_catalog_repository",
    "CatalogMatch",
    "match_rows",
    "ImportSession",
    "ImportSessionManager",
    "get_import_session_manager",
    "AuditLogger",
    "BulkApplier",
    "RowResult",
    "sanitize_cell",
    "sanitize_row",
    "generate_template",
    "generate_stock_export",
    "StockImportService",
    "get_stock_import_service",
    "StockService",
    "get_stock_service",
    "ApiKeyService",
    "get_api_key_service",
    "StockSyncService",
    "get_stock_sync_service",
]
