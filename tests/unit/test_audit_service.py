"""
Unit tests for the audit logger.
"""

import pytest

from services.audit_service import AuditLogger
from exceptions import DatabaseError


class TestAuditLogger:
    """Tests for AuditLogger.record."""

    def test_record_appended(self, fake_repository):
        audit = AuditLogger(fake_repository)

        record = audit.record("prod-1", 10, 25, actor="user-1", reason="Manual update")

        assert fake_repository.audit == [record]
        assert record.previous_quantity == 10
        assert record.new_quantity == 25
        assert record.updated_by == "user-1"
        assert record.timestamp.tzinfo is not None

    def test_write_failure_propagates(self, fake_repository):
        fake_repository.fail_audit = True

        with pytest.raises(DatabaseError):
            AuditLogger(fake_repository).record("prod-1", 1, 2, actor="user-1", reason="Bulk import")
