"""
Receipt Assembler

Turns raw receipt text into a ``ParsedReceipt``:

    segment -> extract amounts -> classify names -> total -> reconcile

DESIGN DECISION: Reconciliation is informational. A receipt whose items
don't add up is still returned as parsed; the mismatch is attached as
suggestions and logged, never "corrected".
"""

from typing import Optional
from uuid import UUID

import structlog

from expense_extraction.audit.logger import AuditLogger
from expense_extraction.classification.orchestrator import ClassificationOrchestrator
from expense_extraction.models.classification import Category
from expense_extraction.models.receipt import (
    ParsedLineItem,
    ParsedReceipt,
    ReconciliationResult,
)
from expense_extraction.parsing.amounts import AmountExtractor
from expense_extraction.parsing.fields import (
    extract_date,
    extract_store_name,
    extract_total_amount,
)
from expense_extraction.parsing.segmenter import LineSegmenter


logger = structlog.get_logger(__name__)


def _format_amount(value: float) -> str:
    return f"{value:g}"


def reconcile(
    total_amount: float,
    sum_from_items: float,
    item_count: int,
    tolerance: float = 2.0,
    missing_items_ratio: float = 0.8,
) -> ReconciliationResult:
    """Compare the printed total with the item sum."""
    difference = round(abs(total_amount - sum_from_items), 2)
    is_valid = difference <= tolerance
    missing_items = sum_from_items < total_amount * missing_items_ratio

    suggestions: list[str] = []
    if not is_valid:
        suggestions.append(
            f"總額驗算不符：項目總和 {_format_amount(sum_from_items)} 元，"
            f"收據總額 {_format_amount(total_amount)} 元，"
            f"差異 {_format_amount(difference)} 元"
        )
    if missing_items:
        suggestions.append("可能遺漏了某些商品項目，請檢查收據")
    if item_count == 0:
        suggestions.append("未能識別任何商品項目，請檢查收據格式或手動輸入")

    return ReconciliationResult(
        is_valid=is_valid,
        difference=difference,
        sum_from_items=sum_from_items,
        total_amount=total_amount,
        missing_items=missing_items,
        suggestions=suggestions,
    )


class ReceiptAssembler:
    """Parses one receipt's OCR text end to end."""

    def __init__(
        self,
        orchestrator: ClassificationOrchestrator,
        segmenter: Optional[LineSegmenter] = None,
        extractor: Optional[AmountExtractor] = None,
        audit_logger: Optional[AuditLogger] = None,
        reconciliation_tolerance: float = 2.0,
        missing_items_ratio: float = 0.8,
    ):
        self._orchestrator = orchestrator
        self._segmenter = segmenter or LineSegmenter()
        self._extractor = extractor or AmountExtractor()
        self._audit = audit_logger
        self._tolerance = reconciliation_tolerance
        self._missing_ratio = missing_items_ratio

    async def assemble(
        self,
        raw_text: str,
        user_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ParsedReceipt:
        """
        Parse ``raw_text`` into items, total, store name and date.

        Never raises for bad input: an unreadable receipt comes back with
        no items and a suggestion saying so.
        """
        report = self._segmenter.analyze(raw_text)

        # Candidates no amount pattern accepts count as filtered too.
        extracted = []
        rejected = 0
        for candidate in report.candidates:
            amount = self._extractor.extract(candidate.text)
            if amount is None:
                rejected += 1
            else:
                extracted.append(amount)
        filtered_count = report.filtered_count + rejected

        classifications = await self._orchestrator.classify_batch(
            [amount.name for amount in extracted],
            user_id,
        )

        items: list[ParsedLineItem] = []
        for amount, result in zip(extracted, classifications):
            if result.is_product:
                category, confidence = result.category, result.confidence
            else:
                category, confidence = Category.OTHER, 0.0
            items.append(ParsedLineItem(
                name=amount.name,
                quantity=amount.quantity,
                price=amount.price,
                unit_price=amount.unit_price,
                category=category,
                confidence=confidence,
                source=result.source,
            ))

        sum_from_items = round(sum(item.price for item in items), 2)
        printed_total = extract_total_amount(
            report.lines,
            self._extractor.is_reasonable_money,
            skip_lines=report.stitched_line_numbers,
        )
        total_amount = printed_total if printed_total is not None else sum_from_items

        reconciliation = reconcile(
            total_amount,
            sum_from_items,
            len(items),
            tolerance=self._tolerance,
            missing_items_ratio=self._missing_ratio,
        )

        receipt = ParsedReceipt(
            items=items,
            total_amount=total_amount,
            store_name=extract_store_name(report.lines),
            date=extract_date(report.lines),
            filtered_count=filtered_count,
            total_count=report.total_count,
            reconciliation=reconciliation,
        )

        logger.info(
            "receipt_assembled",
            item_count=len(items),
            total_amount=total_amount,
            printed_total=printed_total is not None,
        )
        if self._audit is not None:
            await self._audit.log_receipt_parsed(
                item_count=len(items),
                total_amount=total_amount,
                filtered_count=filtered_count,
                total_count=report.total_count,
                correlation_id=correlation_id,
            )
            if not reconciliation.is_valid or reconciliation.missing_items:
                await self._audit.log_reconciliation_mismatch(
                    total_amount=total_amount,
                    sum_from_items=sum_from_items,
                    difference=reconciliation.difference,
                    missing_items=reconciliation.missing_items,
                    correlation_id=correlation_id,
                )
        return receipt
