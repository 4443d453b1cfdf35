"""
Stock import service: upload -> review -> apply.

Parsing and matching are read-only; nothing is written until apply.
"""

from typing import Optional
import structlog

from models.stock_import import ApplyOutcome, ChangeReason
from parsers.stock_file_parser import parse_stock_file
from services.bulk_apply_service import BulkApplier
from services.catalog_matcher import match_rows
from services.catalog_repository import CatalogRepository, get_catalog_repository
from services.import_session_service import (
    ImportSession,
    ImportSessionManager,
    get_import_session_manager,
)

logger = structlog.get_logger(__name__)


class StockImportService:
    """
    Stock report import workflow for one catalog owner at a time.
    """

    def __init__(
        self,
        repository: Optional[CatalogRepository] = None,
        session_manager: Optional[ImportSessionManager] = None,
        applier: Optional[BulkApplier] = None,
    ):
        self.repository = repository or get_catalog_repository()
        self.sessions = session_manager or get_import_session_manager()
        self.applier = applier or BulkApplier(self.repository)

    def upload(self, owner_id: str, content: bytes, filename: Optional[str]) -> ImportSession:
        """
        Parse a stock report and stage it against the owner's catalog.

        The catalog snapshot is read once per upload.

        Raises:
            UnsupportedFormatError, MalformedInputError, UnresolvableColumnsError:
                File rejected before any write
            SessionBusyError: Owner's apply is running
        """
        parsed = parse_stock_file(content, filename)
        catalog = self.repository.list_products(owner_id)
        match = match_rows(parsed.rows, catalog)

        return self.sessions.start_session(
            owner_id,
            match,
            parse_warnings=parsed.warnings,
            filename=filename,
        )

    def get_session(self, owner_id: str) -> ImportSession:
        return self.sessions.get_session(owner_id)

    def toggle_row(self, owner_id: str, row_id: str) -> ImportSession:
        return self.sessions.toggle_row_selected(owner_id, row_id)

    def set_default_category(self, owner_id: str, value: str) -> ImportSession:
        return self.sessions.set_default_category(owner_id, value)

    def cancel(self, owner_id: str) -> None:
        self.sessions.cancel_session(owner_id)

    def apply(self, owner_id: str, actor: str) -> ApplyOutcome:
        """
        Apply the owner's session and end it.

        Runs to completion; row failures are counted, not raised.

        Raises:
            ImportSessionNotFoundError: Nothing staged
            SessionBusyError: Already applying
        """
        session = self.sessions.begin_apply(owner_id)
        try:
            return self.applier.apply(session, actor, reason=ChangeReason.BULK_IMPORT.value)
        finally:
            self.sessions.finish_apply(owner_id)


# Singleton instance
_stock_import_service: Optional[StockImportService] = None


def get_stock_import_service() -> StockImportService:
    """Get or create stock import service instance."""
    global _stock_import_service
    if _stock_import_service is None:
        _stock_import_service = StockImportService()
    return _stock_import_service
