"""
Stock service: stock listing, single-product updates and current-stock export.
"""

from typing import Optional
import structlog

from config import settings
from models.stock_import import ChangeReason, StockLevel, StockUpdateResponse
from services.audit_service import AuditLogger
from services.catalog_repository import CatalogRepository, get_catalog_repository
from services.export_service import ExportFile, generate_stock_export

logger = structlog.get_logger(__name__)


class StockService:
    """
    Manual stock operations on one owner's catalog.
    """

    def __init__(
        self,
        repository: Optional[CatalogRepository] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.repository = repository or get_catalog_repository()
        self.audit_logger = audit_logger or AuditLogger(self.repository)

    def list_stock(self, owner_id: str) -> list[StockLevel]:
        """
        Every catalog product with its current stock.

        A product without inventory shows quantity 0 in the default unit.
        """
        levels = []
        for entry in self.repository.list_products(owner_id):
            inventory = entry.current_inventory
            levels.append(StockLevel(
                product_id=entry.id,
                name=entry.name,
                category=entry.category,
                inventory_id=inventory.id if inventory else None,
                quantity=inventory.quantity if inventory else 0,
                unit=(inventory.unit if inventory else None) or settings.default_unit,
                low_stock_threshold=inventory.low_stock_threshold if inventory else None,
                is_low_stock=inventory.is_low_stock if inventory else False,
            ))

        low_count = sum(1 for level in levels if level.is_low_stock)
        logger.debug("stock_listed", owner_id=owner_id, products=len(levels), low_stock=low_count)
        return levels

    def set_quantity(
        self,
        owner_id: str,
        product_id: str,
        quantity: int,
        actor: str,
        unit: Optional[str] = None,
    ) -> StockUpdateResponse:
        """
        Set a product's stock directly.

        Updates are audited with reason "Manual update"; a product's first
        inventory record is created without an audit entry.

        Raises:
            ProductNotFoundError: Product not in owner's catalog
            DatabaseError: Write failed
        """
        entry = self.repository.get_product(owner_id, product_id)
        inventory = entry.current_inventory
        reason = ChangeReason.MANUAL.value

        if inventory is None:
            new_unit = unit or settings.default_unit
            inventory_id = self.repository.create_inventory(product_id, quantity, new_unit)
            previous = None
        else:
            new_unit = unit or inventory.unit or settings.default_unit
            self.repository.update_inventory(inventory.id, quantity, unit=unit)
            self.audit_logger.record(
                product_id=product_id,
                previous_quantity=inventory.quantity,
                new_quantity=quantity,
                actor=actor,
                reason=reason,
            )
            inventory_id = inventory.id
            previous = inventory.quantity

        logger.info(
            "stock_updated_manually",
            owner_id=owner_id,
            product_id=product_id,
            previous_quantity=previous,
            new_quantity=quantity
        )

        return StockUpdateResponse(
            product_id=product_id,
            inventory_id=inventory_id,
            previous_quantity=previous,
            new_quantity=quantity,
            unit=new_unit,
            reason=reason,
        )

    def export_current_stock(self, owner_id: str, file_format: str = "xlsx") -> ExportFile:
        """Current-stock export for the owner's whole catalog."""
        catalog = self.repository.list_products(owner_id)
        return generate_stock_export(catalog, file_format)


# Singleton instance
_stock_service: Optional[StockService] = None


def get_stock_service() -> StockService:
    """Get or create stock service instance."""
    global _stock_service
    if _stock_service is None:
        _stock_service = StockService()
    return _stock_service
