"""
Catalog repository: the data-access boundary for products, inventory and
audit records.

Tables:
    products          (id, supplier_id, name, category, description)
    stock_inventory   (id, product_id, quantity, unit, low_stock_threshold, last_updated)
    stock_updates     (product_id, previous_quantity, new_quantity, updated_by, change_reason, created_at)

Every method raises DatabaseError on failure so callers can isolate it per row.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client
from models.stock_import import CatalogEntry, InventoryRecord, AuditRecord
from exceptions import DatabaseError, ProductNotFoundError

logger = structlog.get_logger(__name__)

PRODUCT_SELECT = "id, name, category, stock_inventory(id, quantity, unit, low_stock_threshold)"


class CatalogRepository:
    """
    Supabase-backed catalog and inventory store.
    """

    def __init__(self):
        self.db = get_supabase_client()

    # ===================
    # READ OPERATIONS
    # ===================

    def list_products(self, owner_id: str) -> list[CatalogEntry]:
        """
        Catalog snapshot for one owner, with current inventory embedded.
        """
        try:
            result = (
                self.db.table("products")
                .select(PRODUCT_SELECT)
                .eq("supplier_id", owner_id)
                .order("name")
                .execute()
            )
        except Exception as e:
            logger.error("list_products_failed", owner_id=owner_id, error=str(e))
            raise DatabaseError("select", str(e))

        entries = [_to_catalog_entry(row) for row in result.data or []]
        logger.debug("catalog_snapshot_loaded", owner_id=owner_id, products=len(entries))
        return entries

    def get_product(self, owner_id: str, product_id: str) -> CatalogEntry:
        """
        Raises:
            ProductNotFoundError: Product missing or owned by someone else
        """
        try:
            result = (
                self.db.table("products")
                .select(PRODUCT_SELECT)
                .eq("supplier_id", owner_id)
                .eq("id", product_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_product_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ProductNotFoundError(product_id)
        return _to_catalog_entry(result.data[0])

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create_product(
        self,
        owner_id: str,
        name: str,
        category: Optional[str],
        description: Optional[str] = None
    ) -> str:
        """Insert a catalog product and return its id."""
        row = {
            "supplier_id": owner_id,
            "name": name,
            "category": category,
            "description": description,
        }
        return self._insert("products", row)

    def create_inventory(self, product_id: str, quantity: int, unit: str) -> str:
        """Insert the inventory record for a product and return its id."""
        row = {
            "product_id": product_id,
            "quantity": quantity,
            "unit": unit,
            "last_updated": _now_iso(),
        }
        return self._insert("stock_inventory", row)

    def update_inventory(self, inventory_id: str, quantity: int, unit: Optional[str] = None) -> None:
        """Overwrite an inventory quantity."""
        data = {"quantity": quantity, "last_updated": _now_iso()}
        if unit:
            data["unit"] = unit

        try:
            result = (
                self.db.table("stock_inventory")
                .update(data)
                .eq("id", inventory_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_inventory_failed", inventory_id=inventory_id, error=str(e))
            raise DatabaseError("update", str(e), {"inventory_id": inventory_id})

        if not result.data:
            raise DatabaseError("update", "inventory record not found", {"inventory_id": inventory_id})

    def append_audit(self, record: AuditRecord) -> None:
        """Append one stock_updates row. Never updated or deleted afterwards."""
        row = {
            "product_id": record.product_id,
            "previous_quantity": record.previous_quantity,
            "new_quantity": record.new_quantity,
            "updated_by": record.updated_by,
            "change_reason": record.reason,
            "created_at": record.timestamp.isoformat(),
        }
        self._insert("stock_updates", row)

    def _insert(self, table: str, row: dict) -> str:
        try:
            result = self.db.table(table).insert(row).execute()
        except Exception as e:
            logger.error("insert_failed", table=table, error=str(e))
            raise DatabaseError("insert", str(e), {"table": table})

        if not result.data:
            raise DatabaseError("insert", "no row returned", {"table": table})
        return result.data[0]["id"]


# ===================
# HELPERS
# ===================

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_catalog_entry(row: dict) -> CatalogEntry:
    """
    Build a CatalogEntry from a products row.

    The embedded stock_inventory relation comes back as a list, an object,
    or null depending on the foreign key shape.
    """
    inventory = row.get("stock_inventory")
    if isinstance(inventory, list):
        inventory = inventory[0] if inventory else None

    current = None
    if inventory:
        current = InventoryRecord(
            id=inventory["id"],
            quantity=inventory.get("quantity") or 0,
            unit=inventory.get("unit"),
            low_stock_threshold=inventory.get("low_stock_threshold"),
        )

    return CatalogEntry(
        id=row["id"],
        name=row["name"],
        category=row.get("category"),
        current_inventory=current,
    )


# Singleton instance
_catalog_repository: Optional[CatalogRepository] = None


def get_catalog_repository() -> CatalogRepository:
    """Get or create catalog repository instance."""
    global _catalog_repository
    if _catalog_repository is None:
        _catalog_repository = CatalogRepository()
    return _catalog_repository
