"""Receipt assembly from raw OCR text and from structured OCR documents."""

from expense_extraction.receipts.assembler import ReceiptAssembler, reconcile
from expense_extraction.receipts.postprocess import (
    OcrDocumentPostprocessor,
    finalize_amounts,
    normalize_currency,
    stitch_line_items,
)

__all__ = [
    "OcrDocumentPostprocessor",
    "ReceiptAssembler",
    "finalize_amounts",
    "normalize_currency",
    "reconcile",
    "stitch_line_items",
]
