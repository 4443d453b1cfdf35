"""
Unit tests for the stock sync service.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from config import settings
from models.stock_sync import ApiKeyRecord, StockSyncRequest, SyncItem, SyncStatus
from services.audit_service import AuditLogger
from services.bulk_apply_service import BulkApplier
from services.import_session_service import ImportSessionManager
from services.api_key_service import generate_api_key, hash_api_key
from services.stock_sync_service import StockSyncService
from exceptions import InvalidApiKeyError, SessionBusyError


KEY = ApiKeyRecord(id="key-1", supplier_id="owner-1", is_active=True)


@pytest.fixture
def session_manager():
    return ImportSessionManager(ttl_minutes=30)


@pytest.fixture
def service(fake_repository, mock_supabase, session_manager):
    return StockSyncService(
        repository=fake_repository,
        applier=BulkApplier(fake_repository, AuditLogger(fake_repository)),
        session_manager=session_manager,
        db=mock_supabase,
    )


def request(*items, source="tally"):
    return StockSyncRequest(source=source, items=[SyncItem(**item) for item in items])


# ===================
# AUTHENTICATION
# ===================

class TestAuthenticate:
    """Tests for API key resolution."""

    def test_active_key(self, mock_supabase, service):
        mock_supabase.set_table_data("supplier_api_keys", [
            {"id": "key-1", "supplier_id": "owner-1", "is_active": True}
        ])
        api_key = generate_api_key()

        key = service.authenticate(api_key)

        calls = mock_supabase.table("supplier_api_keys").calls
        assert key.supplier_id == "owner-1"
        assert ("eq", ("api_key_hash", hash_api_key(api_key))) in calls
        assert ("eq", ("is_active", True)) in calls
        assert ("is", ("revoked_at", "null")) in calls
        assert any(name == "update" for name, _ in calls)

    def test_unknown_key(self, mock_supabase, service):
        mock_supabase.set_table_data("supplier_api_keys", [])

        with pytest.raises(InvalidApiKeyError) as exc_info:
            service.authenticate(generate_api_key())
        assert exc_info.value.status_code == 401

    def test_malformed_key_skips_lookup(self, mock_supabase, service):
        with pytest.raises(InvalidApiKeyError):
            service.authenticate("not-a-key")

        assert mock_supabase.table("supplier_api_keys").calls == []


# ===================
# SYNC
# ===================

class TestSync:
    """Tests for StockSyncService.sync."""

    def test_all_known_products(self, fake_repository, mock_supabase, service):
        steel_id = fake_repository.add_product("Steel Rods", quantity=10)

        result = service.sync(request({"product_name": "steel rods", "quantity": 42}), KEY)

        assert result.status == SyncStatus.SUCCESS
        assert result.products_updated == 1
        assert result.products_created == 0
        assert fake_repository.inventory_for(steel_id)["quantity"] == 42
        assert fake_repository.audit[0].reason == "API sync from tally"

    def test_unknown_products_reported_not_created(self, fake_repository, service):
        fake_repository.add_product("Steel Rods", quantity=10)

        result = service.sync(request(
            {"product_name": "Steel Rods", "quantity": 5},
            {"product_name": "Mystery Item", "quantity": 1},
        ), KEY)

        assert result.status == SyncStatus.PARTIAL
        assert result.errors == 1
        assert result.error_details[0].product == "Mystery Item"
        assert result.error_details[0].error == "Product not found"
        assert not fake_repository.product_named("Mystery Item")

    def test_nothing_applied_is_failed(self, service):
        result = service.sync(request({"sku": "SKU-404", "quantity": 1}), KEY)

        assert result.status == SyncStatus.FAILED
        assert result.error_details[0].product == "SKU-404"

    def test_first_inventory_counted_as_created(self, fake_repository, service):
        product_id = fake_repository.add_product("Copper Wire")

        result = service.sync(request({"product_name": "Copper Wire", "quantity": 7, "unit": "rolls"}), KEY)

        assert result.products_created == 1
        assert result.products_updated == 0
        assert fake_repository.inventory_for(product_id)["unit"] == "rolls"

    def test_sync_logged(self, fake_repository, mock_supabase, service):
        fake_repository.add_product("Steel Rods", quantity=10)

        service.sync(request({"product_name": "Steel Rods", "quantity": 5}), KEY)

        log = mock_supabase.table("stock_sync_logs").inserted[0]
        assert log["supplier_id"] == "owner-1"
        assert log["api_key_id"] == "key-1"
        assert log["status"] == "success"
        assert log["error_details"] is None

    def test_busy_while_import_applying(self, session_manager, service):
        with session_manager.apply_guard("owner-1"):
            with pytest.raises(SessionBusyError):
                service.sync(request({"product_name": "Steel Rods", "quantity": 5}), KEY)


class TestSyncRequestValidation:
    """Tests for request schema limits."""

    def test_item_needs_identifier(self):
        with pytest.raises(PydanticValidationError):
            SyncItem(quantity=5)

    def test_product_name_preferred_over_sku(self):
        assert SyncItem(product_name="Steel", sku="ST-1", quantity=1).lookup_name == "Steel"

    def test_negative_quantity_rejected(self):
        with pytest.raises(PydanticValidationError):
            SyncItem(product_name="Steel", quantity=-1)

    def test_empty_items_rejected(self):
        with pytest.raises(PydanticValidationError):
            StockSyncRequest(items=[])

    def test_item_limit(self):
        items = [{"product_name": f"P{i}", "quantity": 1} for i in range(3)]

        with patch.object(settings, "sync_max_items", 2):
            with pytest.raises(PydanticValidationError):
                StockSyncRequest(items=items)
