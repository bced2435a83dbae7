"""
Audit Models for Expense Extraction

Significant pipeline events are logged as structured audit events:
1. Traceability of how a receipt or utterance was parsed
2. Visibility into degraded classifications (remote model skipped or failed)
3. Early warning when an external dependency trips its circuit breaker

DESIGN DECISION: Audit events are plain values. Emitting them is the job
of ``expense_extraction.audit.AuditLogger``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class PipelineEventType(str, Enum):
    """Types of events we audit."""
    # Receipts
    RECEIPT_PARSED = "receipt_parsed"
    RECONCILIATION_MISMATCH = "reconciliation_mismatch"
    OCR_DOCUMENT_PROCESSED = "ocr_document_processed"

    # Classification
    CLASSIFICATION_DEGRADED = "classification_degraded"
    UNCLASSIFIED_NOTE_RECORDED = "unclassified_note_recorded"

    # Spoken input
    SPOKEN_EXPENSE_PARSED = "spoken_expense_parsed"

    # External dependencies
    CIRCUIT_OPENED = "circuit_opened"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )
    event_type: PipelineEventType
    severity: AuditSeverity = AuditSeverity.INFO
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Ties together the events of one parse request"
    )
    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.receipt_parsed(item_count=3, ...)
        event = AuditEventBuilder.circuit_opened("zero_shot", failures=3)
    """

    @staticmethod
    def receipt_parsed(
        item_count: int,
        total_amount: float,
        filtered_count: int,
        total_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=PipelineEventType.RECEIPT_PARSED,
            correlation_id=correlation_id,
            description=f"Receipt parsed with {item_count} item(s)",
            details={
                "item_count": item_count,
                "total_amount": total_amount,
                "filtered_count": filtered_count,
                "total_count": total_count,
            },
        )

    @staticmethod
    def reconciliation_mismatch(
        total_amount: float,
        sum_from_items: float,
        difference: float,
        missing_items: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=PipelineEventType.RECONCILIATION_MISMATCH,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=(
                f"Item sum {sum_from_items} does not match total {total_amount}"
            ),
            details={
                "total_amount": total_amount,
                "sum_from_items": sum_from_items,
                "difference": difference,
                "missing_items": missing_items,
            },
        )

    @staticmethod
    def ocr_document_processed(
        item_count: int,
        currency: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=PipelineEventType.OCR_DOCUMENT_PROCESSED,
            correlation_id=correlation_id,
            description=f"OCR document enriched with {item_count} item(s)",
            details={"item_count": item_count, "currency": currency},
        )

    @staticmethod
    def classification_degraded(
        text: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=PipelineEventType.CLASSIFICATION_DEGRADED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Remote classification unavailable, used local result",
            details={"text": text[:80], "reason": reason},
        )

    @staticmethod
    def unclassified_note_recorded(
        user_id: int,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=PipelineEventType.UNCLASSIFIED_NOTE_RECORDED,
            correlation_id=correlation_id,
            description="Recorded a note the classifier could not place",
            details={"user_id": user_id, "text": text[:80]},
        )

    @staticmethod
    def spoken_expense_parsed(
        confidence: int,
        has_amount: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=PipelineEventType.SPOKEN_EXPENSE_PARSED,
            correlation_id=correlation_id,
            description=f"Spoken expense parsed (confidence {confidence})",
            details={"confidence": confidence, "has_amount": has_amount},
        )

    @staticmethod
    def circuit_opened(
        service: str,
        failures: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=PipelineEventType.CIRCUIT_OPENED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Circuit opened for {service} after {failures} failures",
            details={"service": service, "failures": failures},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=PipelineEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"External service error: {service}",
            details={"service": service},
            error_message=error_message,
        )
