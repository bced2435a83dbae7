"""
Data Models Package

This package contains all Pydantic models used by the extraction pipeline.
All data flowing between stages must conform to these schemas.
"""

from expense_extraction.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditSeverity,
    PipelineEventType,
)
from expense_extraction.models.classification import (
    Category,
    CategoryCandidate,
    ClassificationOutcome,
    ClassificationResult,
    ClassificationSource,
    LabelScore,
    OutcomeStatus,
    UnclassifiedNote,
    ZeroShotResult,
)
from expense_extraction.models.fx import FxConversion
from expense_extraction.models.receipt import (
    CandidateItemLine,
    EnrichedOcrDocument,
    EnrichedOcrLineItem,
    ExtractedAmount,
    OcrDocument,
    OcrLineItem,
    ParsedLineItem,
    ParsedReceipt,
    ReconciliationResult,
    SegmentationReport,
)
from expense_extraction.models.spoken import (
    SpeechTranscript,
    SpokenExpenseResult,
    VoiceExpenseResult,
)

__all__ = [
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditSeverity",
    "PipelineEventType",
    # Classification models
    "Category",
    "CategoryCandidate",
    "ClassificationOutcome",
    "ClassificationResult",
    "ClassificationSource",
    "LabelScore",
    "OutcomeStatus",
    "UnclassifiedNote",
    "ZeroShotResult",
    # FX
    "FxConversion",
    # Receipt models
    "CandidateItemLine",
    "EnrichedOcrDocument",
    "EnrichedOcrLineItem",
    "ExtractedAmount",
    "OcrDocument",
    "OcrLineItem",
    "ParsedLineItem",
    "ParsedReceipt",
    "ReconciliationResult",
    "SegmentationReport",
    # Spoken models
    "SpeechTranscript",
    "SpokenExpenseResult",
    "VoiceExpenseResult",
]
