"""
Unit tests for the upload -> review -> apply workflow.
"""

from unittest.mock import MagicMock

import pytest

from models.stock_import import SessionState
from services.audit_service import AuditLogger
from services.bulk_apply_service import BulkApplier
from services.import_session_service import ImportSessionManager
from services.stock_import_service import StockImportService
from exceptions import (
    ImportSessionNotFoundError,
    UnresolvableColumnsError,
    UnsupportedFormatError,
)


OWNER = "owner-1"


@pytest.fixture
def manager():
    return ImportSessionManager(ttl_minutes=30)


@pytest.fixture
def service(fake_repository, manager):
    return StockImportService(
        repository=fake_repository,
        session_manager=manager,
        applier=BulkApplier(fake_repository, AuditLogger(fake_repository)),
    )


class TestUpload:
    """Tests for StockImportService.upload."""

    def test_stages_against_catalog(self, fake_repository, service, manager):
        fake_repository.add_product("Steel Rods", quantity=3)

        session = service.upload(OWNER, b"Item,Qty\nSteel Rods,9\nNew Alloy,4\n", "stock.csv")

        assert len(session.matched) == 1
        assert len(session.unmatched) == 1
        assert manager.state_of(OWNER) == SessionState.PARSED
        assert fake_repository.list_calls == 1

    def test_nothing_written_before_apply(self, fake_repository, service):
        service.upload(OWNER, b"Item,Qty\nNew Alloy,4\n", "stock.csv")

        assert fake_repository.products == {}

    def test_rejected_file_keeps_previous_session(self, service):
        first = service.upload(OWNER, b"Item,Qty\nNew Alloy,4\n", "stock.csv")

        with pytest.raises(UnresolvableColumnsError):
            service.upload(OWNER, b"Code,Rate\nA,1\n", "stock.csv")
        with pytest.raises(UnsupportedFormatError):
            service.upload(OWNER, b"Item,Qty\n", "stock.pdf")

        assert service.get_session(OWNER) is first


class TestApply:
    """Tests for StockImportService.apply."""

    def test_apply_ends_session(self, fake_repository, service, manager):
        service.upload(OWNER, b"Item,Qty\nNew Alloy,4\n", "stock.csv")

        outcome = service.apply(OWNER, actor="user-1")

        assert outcome.created_count == 1
        assert manager.state_of(OWNER) == SessionState.IDLE
        with pytest.raises(ImportSessionNotFoundError):
            service.apply(OWNER, actor="user-1")

    def test_session_released_when_applier_raises(self, fake_repository, manager):
        applier = MagicMock()
        applier.apply.side_effect = RuntimeError("boom")
        service = StockImportService(fake_repository, manager, applier)
        service.upload(OWNER, b"Item,Qty\nNew Alloy,4\n", "stock.csv")

        with pytest.raises(RuntimeError):
            service.apply(OWNER, actor="user-1")

        assert manager.state_of(OWNER) == SessionState.IDLE
        service.upload(OWNER, b"Item,Qty\nNew Alloy,4\n", "stock.csv")

    def test_cancel_discards(self, fake_repository, service, manager):
        service.upload(OWNER, b"Item,Qty\nNew Alloy,4\n", "stock.csv")

        service.cancel(OWNER)

        assert manager.state_of(OWNER) == SessionState.IDLE
        assert fake_repository.products == {}
