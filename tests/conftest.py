"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time; tests never reach a real project
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from datetime import datetime, timezone
from itertools import count
from typing import Optional
from unittest.mock import patch

from models.stock_import import CatalogEntry, InventoryRecord, AuditRecord
from exceptions import DatabaseError, ProductNotFoundError


# ===================
# IN-MEMORY CATALOG
# ===================

class FakeCatalogRepository:
    """
    In-memory stand-in for CatalogRepository.

    Usage:
        repo = FakeCatalogRepository()
        repo.add_product("Steel Rods", quantity=100)
        repo.fail_create_for.add("Bad Row")   # create_product raises for this name
    """

    def __init__(self, owner_id: str = "owner-1"):
        self.owner_id = owner_id
        self.products: dict[str, dict] = {}
        self.inventory: dict[str, dict] = {}
        self.audit: list[AuditRecord] = []
        self.fail_create_for: set[str] = set()
        self.fail_update_for: set[str] = set()
        self.fail_audit = False
        self.list_calls = 0
        self._ids = count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def add_product(
        self,
        name: str,
        category: Optional[str] = None,
        quantity: Optional[int] = None,
        unit: str = "units",
        owner_id: Optional[str] = None,
        low_stock_threshold: Optional[int] = None,
    ) -> str:
        """Seed a product, with inventory when quantity is given."""
        product_id = self._next_id("prod")
        self.products[product_id] = {
            "id": product_id,
            "supplier_id": owner_id or self.owner_id,
            "name": name,
            "category": category,
            "description": None,
        }
        if quantity is not None:
            inventory_id = self.create_inventory(product_id, quantity, unit)
            self.inventory[inventory_id]["low_stock_threshold"] = low_stock_threshold
        return product_id

    def inventory_for(self, product_id: str) -> Optional[dict]:
        for row in self.inventory.values():
            if row["product_id"] == product_id:
                return row
        return None

    def product_named(self, name: str) -> list[dict]:
        return [p for p in self.products.values() if p["name"] == name]

    # CatalogRepository interface

    def list_products(self, owner_id: str) -> list[CatalogEntry]:
        self.list_calls += 1
        return [
            self._entry(p) for p in self.products.values()
            if p["supplier_id"] == owner_id
        ]

    def get_product(self, owner_id: str, product_id: str) -> CatalogEntry:
        product = self.products.get(product_id)
        if product is None or product["supplier_id"] != owner_id:
            raise ProductNotFoundError(product_id)
        return self._entry(product)

    def create_product(self, owner_id, name, category, description=None) -> str:
        if name in self.fail_create_for:
            raise DatabaseError("insert", "duplicate key value violates unique constraint")
        product_id = self._next_id("prod")
        self.products[product_id] = {
            "id": product_id,
            "supplier_id": owner_id,
            "name": name,
            "category": category,
            "description": description,
        }
        return product_id

    def create_inventory(self, product_id: str, quantity: int, unit: str) -> str:
        inventory_id = self._next_id("inv")
        self.inventory[inventory_id] = {
            "id": inventory_id,
            "product_id": product_id,
            "quantity": quantity,
            "unit": unit,
            "low_stock_threshold": None,
        }
        return inventory_id

    def update_inventory(self, inventory_id: str, quantity: int, unit: Optional[str] = None) -> None:
        if inventory_id in self.fail_update_for or inventory_id not in self.inventory:
            raise DatabaseError("update", "connection reset", {"inventory_id": inventory_id})
        self.inventory[inventory_id]["quantity"] = quantity
        if unit:
            self.inventory[inventory_id]["unit"] = unit

    def append_audit(self, record: AuditRecord) -> None:
        if self.fail_audit:
            raise DatabaseError("insert", "audit table unavailable")
        self.audit.append(record)

    def _entry(self, product: dict) -> CatalogEntry:
        inventory = self.inventory_for(product["id"])
        return CatalogEntry(
            id=product["id"],
            name=product["name"],
            category=product["category"],
            current_inventory=InventoryRecord(**inventory) if inventory else None,
        )


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods; records calls."""

    def __init__(self, table: "MockSupabaseTable", data: list = None):
        self._table = table
        self._data = data or []

    def select(self, *args, **kwargs):
        self._table.calls.append(("select", args))
        return self

    def insert(self, data):
        self._table.calls.append(("insert", data))
        rows = [data] if isinstance(data, dict) else data
        inserted = []
        for item in rows:
            row = dict(item)
            row["id"] = f"{self._table.name}-{len(self._table.inserted) + 1}"
            row["created_at"] = datetime.now(timezone.utc).isoformat()
            self._table.inserted.append(row)
            inserted.append(row)
        self._data = inserted
        return self

    def update(self, data):
        self._table.calls.append(("update", data))
        self._data = [{**item, **data} for item in self._data] or [data]
        return self

    def eq(self, column, value):
        self._table.calls.append(("eq", (column, value)))
        return self

    def is_(self, column, value):
        self._table.calls.append(("is", (column, value)))
        return self

    def order(self, column, **kwargs):
        self._table.calls.append(("order", (column, kwargs.get("desc", False))))
        return self

    def limit(self, count):
        self._table.calls.append(("limit", count))
        return self

    def execute(self) -> MockSupabaseResponse:
        return MockSupabaseResponse(data=self._data)


class MockSupabaseTable:
    """Mock Supabase table with configurable rows and a call log."""

    def __init__(self, name: str, data: list = None):
        self.name = name
        self._data = data or []
        self.inserted: list[dict] = []
        self.calls: list[tuple] = []

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, self._data.copy()).select(*args, **kwargs)

    def insert(self, data):
        return MockSupabaseQuery(self, []).insert(data)

    def update(self, data):
        return MockSupabaseQuery(self, self._data.copy()).update(data)


class MockSupabaseClient:
    """Mock Supabase client; tables persist across calls."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list):
        """Configure mock rows for a table."""
        self._tables[table_name] = MockSupabaseTable(table_name, data)

    def table(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable(name)
        return self._tables[name]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def fake_repository() -> FakeCatalogRepository:
    """Empty in-memory catalog for owner-1."""
    return FakeCatalogRepository()


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [...])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase):
    """Patch every get_supabase_client import with the mock."""
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.catalog_repository.get_supabase_client", return_value=mock_supabase):
            with patch("services.stock_sync_service.get_supabase_client", return_value=mock_supabase):
                with patch("services.api_key_service.get_supabase_client", return_value=mock_supabase):
                    yield mock_supabase


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client (lifespan not run, so no DB check).
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
