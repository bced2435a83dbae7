"""Tests for the public pipeline facade and its factory."""

from unittest.mock import AsyncMock

import pytest

from expense_extraction.config import get_settings
from expense_extraction.models.classification import Category, ClassificationSource
from expense_extraction.models.fx import FxConversion
from expense_extraction.models.spoken import SpeechTranscript
from expense_extraction.pipeline import (
    RECORDING_TIPS,
    ExpenseExtractionPipeline,
    create_pipeline,
)
from expense_extraction.services.fx import FxProviderError
from expense_extraction.services.storage import (
    GoogleSheetsUnclassifiedNoteStore,
    InMemoryUnclassifiedNoteStore,
)


@pytest.fixture
def pipeline(orchestrator, audit_logger):
    return ExpenseExtractionPipeline(orchestrator=orchestrator, audit_logger=audit_logger)


class TestReceiptsAndClassification:
    """Tests for the receipt and classification entry points."""

    @pytest.mark.asyncio
    async def test_parse_receipt_from_text(self, pipeline, audit_logger):
        """Test that receipt text goes through the assembler."""
        receipt = await pipeline.parse_receipt_from_text("拿鐵 $65\n總計：$65")

        assert [item.name for item in receipt.items] == ["拿鐵"]
        assert receipt.total_amount == 65
        audit_logger.log_receipt_parsed.assert_awaited_once()
        assert audit_logger.log_receipt_parsed.call_args.kwargs["correlation_id"] is not None

    @pytest.mark.asyncio
    async def test_parse_ocr_document(self, pipeline):
        """Test that OCR documents go through the post-processor."""
        enriched = await pipeline.parse_receipt_from_ocr_document(
            {"currency": "NT$", "lineItems": [{"description": "拿鐵", "amount": 65}]}
        )

        assert enriched.currency == "TWD"
        assert enriched.line_items[0].category == Category.BEVERAGE

    @pytest.mark.asyncio
    async def test_classify_text(self, pipeline):
        """Test single text classification."""
        result = await pipeline.classify_text("衛生紙")
        assert result.category == Category.DAILY_GOODS

    @pytest.mark.asyncio
    async def test_classify_batch(self, pipeline):
        """Test batch classification keeps order."""
        results = await pipeline.classify_batch(["拿鐵", "衛生紙"])
        assert [r.category for r in results] == [Category.BEVERAGE, Category.DAILY_GOODS]


class TestSpokenInput:
    """Tests for utterances and speech transcripts."""

    def test_parse_spoken_expense_is_audited(self, pipeline, audit_logger):
        """Test that parsing an utterance emits an audit event."""
        result = pipeline.parse_spoken_expense("計程車 200 塊")

        assert result.amount == 200
        audit_logger.spoken_expense_parsed.assert_called_once_with(
            confidence=90, has_amount=True, correlation_id=None,
        )

    @pytest.mark.asyncio
    async def test_empty_transcript(self, pipeline):
        """Test that an empty transcript gives recording tips."""
        result = await pipeline.parse_voice_transcript({"text": "  ", "confidence": 0.9})

        assert result.amount is None
        assert result.stt_confidence == 90
        assert result.overall_confidence == 0
        assert result.category_source == ClassificationSource.UNKNOWN
        assert result.suggestions == RECORDING_TIPS

    @pytest.mark.asyncio
    async def test_category_from_utterance(self, pipeline, fake_remote):
        """Test that a category named in the utterance is used directly."""
        transcript = SpeechTranscript(text="計程車 200 塊", confidence=0.8, alternatives=["計程車 兩百塊"])

        result = await pipeline.parse_voice_transcript(transcript)

        assert result.category == Category.TRANSPORT
        assert result.category_source == ClassificationSource.LOCAL
        assert result.text == "計程車 200 塊"
        assert result.stt_confidence == 80
        assert result.confidence == 90
        assert result.overall_confidence == 85
        assert result.alternatives == ["計程車 兩百塊"]
        assert fake_remote.calls == []

    @pytest.mark.asyncio
    async def test_note_classified_locally(self, pipeline):
        """Test that a note without a spoken category is classified."""
        result = await pipeline.parse_voice_transcript({"text": "拿鐵 65", "confidence": 1.0})

        assert result.amount == 65
        assert result.note == "拿鐵"
        assert result.category == Category.BEVERAGE
        assert result.category_source == ClassificationSource.LOCAL
        assert result.overall_confidence == 90

    @pytest.mark.asyncio
    async def test_note_classified_remotely(self, pipeline, fake_remote):
        """Test that an unknown note falls through to the remote model."""
        fake_remote.answers["神秘商品"] = [("交通", 0.8)]

        result = await pipeline.parse_voice_transcript(
            {"text": "神秘商品 50", "confidence": 0.6}, user_id=7,
        )

        assert result.category == Category.TRANSPORT
        assert result.category_source == ClassificationSource.AI
        assert fake_remote.calls == ["神秘商品"]

    @pytest.mark.asyncio
    async def test_no_note_no_category(self, pipeline):
        """Test that an amount alone leaves the category unknown."""
        result = await pipeline.parse_voice_transcript({"text": "500", "confidence": 0.9})

        assert result.amount == 500
        assert result.category is None
        assert result.category_source == ClassificationSource.UNKNOWN


class TestCurrency:
    """Tests for currency conversion through the pipeline."""

    @pytest.mark.asyncio
    async def test_conversion_passed_through(self, orchestrator, audit_logger):
        """Test that the converter's answer is returned unchanged."""
        converter = AsyncMock()
        converter.convert.return_value = FxConversion(
            from_currency="USD", to_currency="TWD", rate=31.5, amount=2, result=63,
            provider="open.er-api.com",
        )
        pipeline = ExpenseExtractionPipeline(
            orchestrator=orchestrator, converter=converter, audit_logger=audit_logger,
        )

        conversion = await pipeline.convert_currency("USD", "TWD", 2)

        assert conversion.result == 63
        converter.convert.assert_awaited_once_with("USD", "TWD", 2)
        audit_logger.log_external_service_error.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_audited_and_raised(self, orchestrator, audit_logger):
        """Test that provider failures are audited and re-raised."""
        converter = AsyncMock()
        converter.convert.side_effect = FxProviderError("all providers failed")
        pipeline = ExpenseExtractionPipeline(
            orchestrator=orchestrator, converter=converter, audit_logger=audit_logger,
        )

        with pytest.raises(FxProviderError):
            await pipeline.convert_currency("USD", "TWD")

        audit_logger.log_external_service_error.assert_awaited_once_with(
            service="fx_rates", error_message="all providers failed",
        )

    @pytest.mark.asyncio
    async def test_aclose(self, orchestrator):
        """Test that closing the pipeline closes its services."""
        remote = AsyncMock()
        converter = AsyncMock()
        pipeline = ExpenseExtractionPipeline(
            orchestrator=orchestrator, remote=remote, converter=converter,
        )

        await pipeline.aclose()

        remote.aclose.assert_awaited_once()
        converter.aclose.assert_awaited_once()


class TestCreatePipeline:
    """Tests for the settings-driven factory."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in (
            "HF_API_TOKEN",
            "GOOGLE_SHEETS_CREDENTIALS_PATH",
            "GOOGLE_SHEETS_SPREADSHEET_ID",
        ):
            monkeypatch.delenv(name, raising=False)
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    @pytest.mark.asyncio
    async def test_unconfigured_sheets_fall_back_to_memory(self):
        """Test that missing sheet settings give an in-memory note store."""
        pipeline = create_pipeline()

        assert isinstance(pipeline.orchestrator._note_store, InMemoryUnclassifiedNoteStore)
        await pipeline.aclose()

    @pytest.mark.asyncio
    async def test_configured_sheets(self, monkeypatch, tmp_path):
        """Test that sheet settings give the Google Sheets note store."""
        credentials = tmp_path / "service-account.json"
        credentials.write_text("{}")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-id")

        pipeline = create_pipeline()

        assert isinstance(pipeline.orchestrator._note_store, GoogleSheetsUnclassifiedNoteStore)
        await pipeline.aclose()

    @pytest.mark.asyncio
    async def test_settings_reach_components(self, monkeypatch, note_store):
        """Test that amount limits from the environment are applied."""
        monkeypatch.setenv("SPOKEN_AMOUNT_MAX", "1000")

        pipeline = create_pipeline(note_store=note_store)

        assert pipeline.orchestrator._note_store is note_store
        assert pipeline.parse_spoken_expense("電腦 30000").amount is None
        assert pipeline.parse_spoken_expense("電腦 800").amount == 800
        await pipeline.aclose()

    @pytest.mark.asyncio
    async def test_degrades_without_token(self, note_store):
        """Test that a pipeline without an API token still classifies."""
        pipeline = create_pipeline(note_store=note_store)

        result = await pipeline.classify_text("神秘商品")

        assert result.category == Category.OTHER
        assert result.source == ClassificationSource.LOCAL
        await pipeline.aclose()
