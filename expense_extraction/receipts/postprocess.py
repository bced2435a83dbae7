"""
OCR Document Post-processing

Structured OCR providers return line items, but they often split one
product across rows: the name on one row, ``2 96`` or ``96TX`` on the next,
and a barcode in between. This module repairs that and classifies the
resulting items.

Steps:
1. Normalize currency ($, NT$, NTD or missing -> TWD)
2. Stitch price rows onto the item waiting for them; drop barcodes
3. Fill in unit price or amount from the other two fields
4. Classify each description (hybrid classification)
5. Keep items with a usable description or an amount
"""

import re
from typing import Optional, Union
from uuid import UUID

import structlog

from expense_extraction.audit.logger import AuditLogger
from expense_extraction.classification.orchestrator import ClassificationOrchestrator
from expense_extraction.models.classification import Category
from expense_extraction.models.receipt import (
    EnrichedOcrDocument,
    EnrichedOcrLineItem,
    OcrDocument,
    OcrLineItem,
)


logger = structlog.get_logger(__name__)

DEFAULT_CURRENCY = "TWD"

BARCODE = re.compile(r"^[0-9]{8,14}$")
QTY_PRICE = re.compile(r"^(\d{1,3})\s+([\d,.]+)(?:\s*(?:TX|T|元)?)$", re.IGNORECASE)
JUST_PRICE = re.compile(r"^([\d,.]+)(?:\s*(?:TX|T|元)?)$", re.IGNORECASE)


def _to_number(value: str) -> Optional[float]:
    try:
        return float(re.sub(r"[^\d.-]", "", value))
    except ValueError:
        return None


def normalize_currency(currency: Optional[str]) -> str:
    if not currency or not currency.strip():
        return DEFAULT_CURRENCY
    value = currency.strip()
    if value == "$" or "NT" in value.upper():
        return DEFAULT_CURRENCY
    return value


def _parse_price_row(description: str) -> Optional[tuple[Optional[float], float]]:
    """``(quantity, price)`` for a row that is only a price; None otherwise."""
    match = QTY_PRICE.match(description)
    if match:
        quantity = _to_number(match.group(1))
        price = _to_number(match.group(2))
        if quantity and price is not None:
            return quantity, price
    match = JUST_PRICE.match(description)
    if match:
        price = _to_number(match.group(1))
        if price is not None:
            return None, price
    return None


def stitch_line_items(items: list[OcrLineItem]) -> list[OcrLineItem]:
    """Merge price-only rows into the previous item and drop barcodes."""
    stitched: list[OcrLineItem] = []
    for item in items:
        description = (item.description or "").strip()
        if not description:
            continue
        if BARCODE.match(re.sub(r"\s+", "", description)):
            continue

        parsed = _parse_price_row(description)
        if parsed is not None and stitched:
            last = stitched[-1]
            if not last.quantity and not last.unit_price and not last.amount:
                quantity, price = parsed
                if quantity is not None:
                    last.quantity = quantity
                if last.quantity and not last.unit_price:
                    last.unit_price = price
                else:
                    last.amount = price
                if not last.amount and last.quantity is not None and last.unit_price is not None:
                    last.amount = round(last.quantity * last.unit_price, 2)
                continue

        stitched.append(item.model_copy(update={"description": description}))
    return stitched


def finalize_amounts(items: list[OcrLineItem]) -> list[OcrLineItem]:
    """Derive the missing one of unit price / amount, rounded to cents."""
    finalized = []
    for item in items:
        item = item.model_copy()
        if item.unit_price is None and item.amount is not None and item.quantity:
            item.unit_price = round(item.amount / item.quantity, 2)
        if item.amount is None and item.unit_price is not None and item.quantity is not None:
            item.amount = round(item.unit_price * item.quantity, 2)
        finalized.append(item)
    return finalized


class OcrDocumentPostprocessor:
    """Repairs and classifies structured OCR documents."""

    def __init__(
        self,
        orchestrator: ClassificationOrchestrator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._orchestrator = orchestrator
        self._audit = audit_logger

    async def process(
        self,
        document: Union[OcrDocument, dict],
        user_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> EnrichedOcrDocument:
        """
        Post-process one OCR document.

        Raises:
            pydantic.ValidationError: If ``document`` is a dict that doesn't
                look like an OCR document
        """
        if not isinstance(document, OcrDocument):
            document = OcrDocument.model_validate(document)

        currency = normalize_currency(document.currency)
        items = finalize_amounts(stitch_line_items(document.line_items))

        results = await self._orchestrator.classify_batch(
            [item.description for item in items],
            user_id,
            hybrid=True,
        )

        enriched: list[EnrichedOcrLineItem] = []
        for item, result in zip(items, results):
            enriched_item = EnrichedOcrLineItem(
                **item.model_dump(),
                category=result.category if result.is_product else Category.OTHER,
                confidence=result.confidence,
                source=result.source,
            )
            if len(enriched_item.description) >= 2 or enriched_item.amount is not None:
                enriched.append(enriched_item)

        logger.info(
            "ocr_document_processed",
            input_items=len(document.line_items),
            output_items=len(enriched),
            currency=currency,
        )
        if self._audit is not None:
            await self._audit.log_ocr_document_processed(
                item_count=len(enriched),
                currency=currency,
                correlation_id=correlation_id,
            )

        return EnrichedOcrDocument(
            vendor=document.vendor,
            date=document.date,
            currency=currency,
            subtotal=document.subtotal,
            tax=document.tax,
            total=document.total,
            line_items=enriched,
        )
