"""
Audit Logger

DESIGN DECISION: Every significant pipeline event is logged.
This provides:
1. Traceability of how a receipt or utterance was parsed
2. Visibility into degraded classifications
3. A signal when an external dependency keeps failing

The audit logger:
- Only writes structured local logs; nothing here is persisted
- Never raises into the pipeline
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_extraction.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditSeverity,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root logger at ``log_level``.

    Safe to call more than once; only the level changes after the first call.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)


class AuditLogger:
    """
    Central audit logging service.

    Turns pipeline events into ``AuditEvent`` values and logs them at
    their severity.
    """

    def __init__(self):
        self._logger = structlog.get_logger(__name__)

    def emit(self, event: AuditEvent) -> None:
        """Log an audit event synchronously."""
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    async def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self.emit(event)

    async def log_receipt_parsed(
        self,
        item_count: int,
        total_amount: float,
        filtered_count: int,
        total_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a parsed receipt."""
        event = AuditEventBuilder.receipt_parsed(
            item_count=item_count,
            total_amount=total_amount,
            filtered_count=filtered_count,
            total_count=total_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_reconciliation_mismatch(
        self,
        total_amount: float,
        sum_from_items: float,
        difference: float,
        missing_items: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a receipt whose items don't add up to its total."""
        event = AuditEventBuilder.reconciliation_mismatch(
            total_amount=total_amount,
            sum_from_items=sum_from_items,
            difference=difference,
            missing_items=missing_items,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ocr_document_processed(
        self,
        item_count: int,
        currency: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.ocr_document_processed(
            item_count=item_count,
            currency=currency,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_classification_degraded(
        self,
        text: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a classification that fell back to the local result."""
        event = AuditEventBuilder.classification_degraded(
            text=text,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_unclassified_note_recorded(
        self,
        user_id: int,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.unclassified_note_recorded(
            user_id=user_id,
            text=text,
            correlation_id=correlation_id,
        )
        await self.log(event)

    def spoken_expense_parsed(
        self,
        confidence: int,
        has_amount: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a parsed utterance. Synchronous, like the parser itself."""
        self.emit(AuditEventBuilder.spoken_expense_parsed(
            confidence=confidence,
            has_amount=has_amount,
            correlation_id=correlation_id,
        ))

    def circuit_opened(self, service: str, failures: int) -> None:
        """
        Log a circuit breaker trip.

        Synchronous so it can be handed to ``CircuitBreaker`` as its
        ``on_open`` callback.
        """
        self.emit(AuditEventBuilder.circuit_opened(service=service, failures=failures))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request (e.g., one receipt parse).
    Pass it through all subsequent operations.
    """
    return uuid4()
