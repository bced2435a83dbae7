"""
Expense Extraction Pipeline

This module ties together all the components and defines the public
entry points for:
1. Receipt text       (OCR text -> items, total, store, date)
2. OCR documents      (structured line items -> repaired, classified items)
3. Free text          (single or batch classification)
4. Spoken input       (utterance or STT transcript -> amount, note, category)
5. Currency           (rate lookup and conversion)

DESIGN DECISION: The pipeline owns no logic of its own. Every operation
delegates to one component; the pipeline adds correlation IDs, audit
events, and the lifetime of the HTTP clients underneath.

``create_pipeline()`` is the only place that reads settings.
"""

from typing import Optional, Sequence, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from expense_extraction.audit import (
    AuditLogger,
    configure_logging,
    create_correlation_id,
)
from expense_extraction.classification.orchestrator import ClassificationOrchestrator
from expense_extraction.config import get_settings
from expense_extraction.models.classification import (
    ClassificationResult,
    ClassificationSource,
)
from expense_extraction.models.fx import FxConversion
from expense_extraction.models.receipt import (
    EnrichedOcrDocument,
    OcrDocument,
    ParsedReceipt,
)
from expense_extraction.models.spoken import (
    SpeechTranscript,
    SpokenExpenseResult,
    VoiceExpenseResult,
)
from expense_extraction.parsing.amounts import AmountExtractor
from expense_extraction.receipts import OcrDocumentPostprocessor, ReceiptAssembler
from expense_extraction.services.fx import CurrencyConverter, FxError
from expense_extraction.services.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    ResilientCaller,
    TTLCache,
)
from expense_extraction.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsUnclassifiedNoteStore,
    InMemoryUnclassifiedNoteStore,
    UnclassifiedNoteStore,
)
from expense_extraction.services.zero_shot import RemoteZeroShotClassifier
from expense_extraction.spoken import SpokenExpenseParser


logger = structlog.get_logger(__name__)

RECORDING_TIPS = [
    "請確保語音清晰",
    "請在安靜環境下錄製",
    "請說出具體的金額和項目",
    "例如：「麥當勞 120 元」或「計程車 200 塊」",
]


class ExpenseExtractionPipeline:
    """
    Public facade over the extraction components.

    Usage:
        pipeline = create_pipeline()
        receipt = await pipeline.parse_receipt_from_text(ocr_text, user_id=42)
        await pipeline.aclose()
    """

    def __init__(
        self,
        orchestrator: Optional[ClassificationOrchestrator] = None,
        assembler: Optional[ReceiptAssembler] = None,
        postprocessor: Optional[OcrDocumentPostprocessor] = None,
        spoken_parser: Optional[SpokenExpenseParser] = None,
        converter: Optional[CurrencyConverter] = None,
        remote: Optional[RemoteZeroShotClassifier] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit = audit_logger
        self._remote = remote
        self._orchestrator = orchestrator or ClassificationOrchestrator(
            remote=remote,
            audit_logger=audit_logger,
        )
        self._assembler = assembler or ReceiptAssembler(
            self._orchestrator,
            audit_logger=audit_logger,
        )
        self._postprocessor = postprocessor or OcrDocumentPostprocessor(
            self._orchestrator,
            audit_logger=audit_logger,
        )
        self._spoken_parser = spoken_parser or SpokenExpenseParser()
        self._converter = converter

    @property
    def orchestrator(self) -> ClassificationOrchestrator:
        return self._orchestrator

    # =========================================================================
    # RECEIPTS
    # =========================================================================

    async def parse_receipt_from_text(
        self,
        text: str,
        user_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ParsedReceipt:
        """Parse raw OCR text of one receipt."""
        correlation_id = correlation_id or create_correlation_id()
        return await self._assembler.assemble(text, user_id, correlation_id)

    async def parse_receipt_from_ocr_document(
        self,
        document: Union[OcrDocument, dict],
        user_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> EnrichedOcrDocument:
        """
        Repair and classify a structured OCR document.

        Raises:
            pydantic.ValidationError: If a dict document is malformed
        """
        correlation_id = correlation_id or create_correlation_id()
        return await self._postprocessor.process(document, user_id, correlation_id)

    # =========================================================================
    # CLASSIFICATION
    # =========================================================================

    async def classify_text(
        self,
        text: str,
        user_id: Optional[int] = None,
    ) -> ClassificationResult:
        return await self._orchestrator.classify(text, user_id)

    async def classify_batch(
        self,
        texts: Sequence[str],
        user_id: Optional[int] = None,
    ) -> list[ClassificationResult]:
        return await self._orchestrator.classify_batch(texts, user_id)

    # =========================================================================
    # SPOKEN INPUT
    # =========================================================================

    def parse_spoken_expense(
        self,
        text: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> SpokenExpenseResult:
        """Parse one utterance. Never raises."""
        result = self._spoken_parser.parse(text)
        if self._audit is not None:
            self._audit.spoken_expense_parsed(
                confidence=result.confidence,
                has_amount=result.amount is not None,
                correlation_id=correlation_id,
            )
        return result

    async def parse_voice_transcript(
        self,
        transcript: Union[SpeechTranscript, dict],
        user_id: Optional[int] = None,
    ) -> VoiceExpenseResult:
        """
        Parse a speech-to-text transcript.

        When the utterance names no category but has a note, the note is
        classified (hybrid) and ``category_source`` says which stage
        decided. ``overall_confidence`` averages transcript quality and
        parse confidence.
        """
        if not isinstance(transcript, SpeechTranscript):
            transcript = SpeechTranscript.model_validate(transcript)

        text = transcript.text.strip()
        stt_confidence = round(transcript.confidence * 100)

        if not text:
            return VoiceExpenseResult(
                text="",
                stt_confidence=stt_confidence,
                category_source=ClassificationSource.UNKNOWN,
                suggestions=list(RECORDING_TIPS),
                alternatives=transcript.alternatives,
            )

        correlation_id = create_correlation_id()
        parsed = self.parse_spoken_expense(text, correlation_id)

        category = parsed.category
        category_source = ClassificationSource.LOCAL
        if category is None:
            if parsed.note:
                classified = await self._orchestrator.classify_hybrid(parsed.note, user_id)
                category = classified.category
                category_source = classified.source
            else:
                category_source = ClassificationSource.UNKNOWN

        overall = round((transcript.confidence * 100 + parsed.confidence) / 2)

        logger.info(
            "voice_transcript_parsed",
            stt_confidence=stt_confidence,
            parse_confidence=parsed.confidence,
            overall_confidence=overall,
            category_source=category_source.value,
        )

        return VoiceExpenseResult(
            **parsed.model_dump(exclude={"category"}),
            category=category,
            text=text,
            overall_confidence=overall,
            stt_confidence=stt_confidence,
            category_source=category_source,
            alternatives=transcript.alternatives,
        )

    # =========================================================================
    # CURRENCY
    # =========================================================================

    async def convert_currency(
        self,
        from_currency: str,
        to_currency: str,
        amount: Optional[float] = None,
    ) -> FxConversion:
        """
        Convert between currencies.

        Raises:
            InvalidCurrencyError: Malformed currency code or amount
            CircuitOpenError: Rate providers failed too often recently
            FxProviderError: Every provider failed
        """
        if self._converter is None:
            self._converter = CurrencyConverter()
        try:
            return await self._converter.convert(from_currency, to_currency, amount)
        except (FxError, CircuitOpenError) as e:
            if self._audit is not None:
                await self._audit.log_external_service_error(
                    service=CurrencyConverter.SERVICE_NAME,
                    error_message=str(e),
                )
            raise

    async def aclose(self) -> None:
        """Close HTTP clients owned by the services."""
        if self._remote is not None:
            await self._remote.aclose()
        if self._converter is not None:
            await self._converter.aclose()


def _build_note_store() -> UnclassifiedNoteStore:
    """Google Sheets when configured, otherwise in memory."""
    try:
        sheets = get_settings().google_sheets
    except ValidationError:
        logger.info("note_store_in_memory", reason="google_sheets_not_configured")
        return InMemoryUnclassifiedNoteStore()

    client = GoogleSheetsClient(
        credentials_path=sheets.credentials_path,
        spreadsheet_id=sheets.spreadsheet_id,
        sheet_name=sheets.unclassified_sheet_name,
    )
    return GoogleSheetsUnclassifiedNoteStore(client)


def create_pipeline(
    note_store: Optional[UnclassifiedNoteStore] = None,
) -> ExpenseExtractionPipeline:
    """
    Build a pipeline from environment settings.

    One cache and one circuit breaker per external service, shared by
    every request this pipeline serves.
    """
    settings = get_settings()
    app = settings.app
    zero_shot = settings.zero_shot
    circuit = settings.circuit_breaker
    fx = settings.fx

    configure_logging(app.log_level)
    audit_logger = AuditLogger()

    remote = RemoteZeroShotClassifier(
        api_token=zero_shot.api_token,
        model_name=zero_shot.model_name,
        api_base_url=zero_shot.api_base_url,
        hypothesis_template=zero_shot.hypothesis_template,
        timeout_seconds=zero_shot.timeout_seconds,
        max_attempts=zero_shot.max_attempts,
        backoff_base_seconds=zero_shot.backoff_base_seconds,
        cache=TTLCache(
            ttl_seconds=zero_shot.cache_ttl_seconds,
            max_entries=zero_shot.cache_max_entries,
        ),
        breaker=CircuitBreaker(
            RemoteZeroShotClassifier.SERVICE_NAME,
            failure_threshold=circuit.failure_threshold,
            cooldown_seconds=circuit.cooldown_seconds,
            on_open=audit_logger.circuit_opened,
        ),
    )

    converter = CurrencyConverter(
        timeout_seconds=fx.timeout_seconds,
        caller=ResilientCaller(
            TTLCache(
                ttl_seconds=fx.cache_ttl_seconds,
                max_entries=fx.cache_max_entries,
            ),
            CircuitBreaker(
                CurrencyConverter.SERVICE_NAME,
                failure_threshold=circuit.failure_threshold,
                cooldown_seconds=circuit.cooldown_seconds,
                on_open=audit_logger.circuit_opened,
            ),
        ),
    )

    orchestrator = ClassificationOrchestrator(
        remote=remote,
        note_store=note_store or _build_note_store(),
        audit_logger=audit_logger,
        local_confidence_threshold=app.local_confidence_threshold,
        hybrid_confidence_threshold=app.hybrid_confidence_threshold,
        ai_accept_threshold=app.ai_accept_threshold,
        batch_size=zero_shot.batch_size,
        batch_delay_seconds=zero_shot.batch_delay_seconds,
    )

    assembler = ReceiptAssembler(
        orchestrator,
        extractor=AmountExtractor(money_max=app.money_max),
        audit_logger=audit_logger,
        reconciliation_tolerance=app.reconciliation_tolerance,
        missing_items_ratio=app.missing_items_ratio,
    )

    logger.info(
        "pipeline_created",
        environment=app.app_environment,
        remote_enabled=bool(zero_shot.api_token),
    )

    return ExpenseExtractionPipeline(
        orchestrator=orchestrator,
        assembler=assembler,
        postprocessor=OcrDocumentPostprocessor(orchestrator, audit_logger=audit_logger),
        spoken_parser=SpokenExpenseParser(amount_max=app.spoken_amount_max),
        converter=converter,
        remote=remote,
        audit_logger=audit_logger,
    )
