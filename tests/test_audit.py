"""Tests for the audit logger."""

import logging
from unittest.mock import MagicMock
from uuid import UUID

import pytest

from expense_extraction.audit import AuditLogger, configure_logging, create_correlation_id
from expense_extraction.models.audit import AuditEventBuilder


@pytest.fixture
def audit():
    audit = AuditLogger()
    audit._logger = MagicMock()
    return audit


class TestEmit:
    """Tests for severity routing."""

    def test_info_event(self, audit):
        """Test that informational events are logged at info."""
        audit.emit(AuditEventBuilder.ocr_document_processed(item_count=2, currency="TWD"))

        audit._logger.info.assert_called_once()
        event_name = audit._logger.info.call_args.args[0]
        fields = audit._logger.info.call_args.kwargs
        assert event_name == "audit_event"
        assert fields["event_type"] == "ocr_document_processed"
        assert fields["details"] == {"item_count": 2, "currency": "TWD"}

    def test_warning_event(self, audit):
        """Test that mismatches are logged at warning."""
        audit.emit(AuditEventBuilder.reconciliation_mismatch(
            total_amount=500, sum_from_items=65, difference=435, missing_items=True,
        ))

        audit._logger.warning.assert_called_once()
        audit._logger.info.assert_not_called()

    def test_error_event(self, audit):
        """Test that circuit trips are logged at error."""
        audit.circuit_opened("zero_shot", 3)

        audit._logger.error.assert_called_once()
        fields = audit._logger.error.call_args.kwargs
        assert fields["event_type"] == "circuit_opened"
        assert fields["details"] == {"service": "zero_shot", "failures": 3}


class TestAsyncHelpers:
    """Tests for the awaitable log_* helpers."""

    @pytest.mark.asyncio
    async def test_external_service_error(self, audit):
        """Test that the error message is carried on the event."""
        correlation_id = create_correlation_id()

        await audit.log_external_service_error(
            service="fx_rates", error_message="timeout", correlation_id=correlation_id,
        )

        fields = audit._logger.error.call_args.kwargs
        assert fields["error_message"] == "timeout"
        assert fields["correlation_id"] == str(correlation_id)

    @pytest.mark.asyncio
    async def test_classification_degraded_truncates_text(self, audit):
        """Test that long texts are cut in the event details."""
        await audit.log_classification_degraded(text="咖" * 200, reason="circuit_open")

        fields = audit._logger.warning.call_args.kwargs
        assert len(fields["details"]["text"]) == 80
        assert fields["details"]["reason"] == "circuit_open"

    def test_spoken_expense_parsed(self, audit):
        """Test the synchronous spoken expense event."""
        audit.spoken_expense_parsed(confidence=90, has_amount=True)

        fields = audit._logger.info.call_args.kwargs
        assert fields["details"] == {"confidence": 90, "has_amount": True}


class TestHelpers:
    """Tests for module helpers."""

    def test_correlation_ids_are_unique(self):
        """Test that each call gives a new UUID."""
        first, second = create_correlation_id(), create_correlation_id()
        assert isinstance(first, UUID)
        assert first != second

    def test_configure_logging_level(self):
        """Test that the root level follows the setting."""
        root = logging.getLogger()
        previous = root.level
        try:
            configure_logging("debug")
            assert root.level == logging.DEBUG
            configure_logging("nonsense")
            assert root.level == logging.INFO
        finally:
            root.setLevel(previous)
