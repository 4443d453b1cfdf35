"""
Audit logger for inventory quantity changes.

Append-only: records are written once and never read, updated or
summarized here.
"""

from typing import Optional
import structlog

from models.stock_import import AuditRecord
from services.catalog_repository import CatalogRepository, get_catalog_repository

logger = structlog.get_logger(__name__)


class AuditLogger:
    """Writes one AuditRecord per quantity change."""

    def __init__(self, repository: Optional[CatalogRepository] = None):
        self.repository = repository or get_catalog_repository()

    def record(
        self,
        product_id: str,
        previous_quantity: int,
        new_quantity: int,
        actor: str,
        reason: str,
    ) -> AuditRecord:
        """
        Append one audit record.

        Raises:
            DatabaseError: Write failed
        """
        audit = AuditRecord(
            product_id=product_id,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            updated_by=actor,
            reason=reason,
        )
        self.repository.append_audit(audit)

        logger.info(
            "stock_change_audited",
            product_id=product_id,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            updated_by=actor,
            reason=reason
        )
        return audit
