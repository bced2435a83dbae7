"""
Receipt Models for Expense Extraction

These models define the schemas for everything between raw OCR text and a
parsed receipt:
1. Segmentation output (candidate item lines and filtering statistics)
2. Line amounts pulled out by the pattern cascade
3. Classified line items and the assembled receipt
4. Structured OCR documents and their enriched counterpart

DESIGN DECISION: ``price`` on a line item is the line subtotal.
The unit price is carried separately when a receipt prints it, so the
item sum is simply the sum of prices.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from expense_extraction.models.classification import (
    Category,
    ClassificationSource,
)


# =============================================================================
# SEGMENTATION
# =============================================================================

class CandidateItemLine(BaseModel):
    """
    A normalized line that survived segmentation.

    When a price arrived on the line after the item name, ``pending_name``
    holds the name line and ``text`` holds both joined together.
    """

    text: str = Field(..., min_length=1)
    line_numbers: list[int] = Field(
        default_factory=list,
        description="Indexes of the normalized lines that make up this candidate"
    )
    pending_name: Optional[str] = Field(
        default=None,
        description="Name line that was waiting for a price fragment"
    )

    @property
    def stitched(self) -> bool:
        return self.pending_name is not None


class SegmentationReport(BaseModel):
    """Everything the segmenter learned about one document."""

    lines: list[str] = Field(
        default_factory=list,
        description="All normalized non-empty lines"
    )
    candidates: list[CandidateItemLine] = Field(default_factory=list)
    total_count: int = Field(ge=0)
    filtered_count: int = Field(ge=0)
    stitched_line_numbers: set[int] = Field(
        default_factory=set,
        description="Price fragment lines merged into a previous candidate"
    )


class ExtractedAmount(BaseModel):
    """Name, quantity and price pulled out of one line."""

    name: str = Field(..., min_length=2, max_length=200)
    quantity: int = Field(default=1, gt=0)
    price: float = Field(..., gt=0, description="Line subtotal")
    unit_price: Optional[float] = Field(default=None, gt=0)
    pattern: str = Field(
        ...,
        description="Name of the matcher that produced this result"
    )


# =============================================================================
# PARSED RECEIPT
# =============================================================================

class ParsedLineItem(BaseModel):
    """A classified receipt line item."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=2,
        max_length=200,
        description="Item name after cleaning"
    )
    quantity: int = Field(default=1, gt=0)
    price: float = Field(..., gt=0, description="Line subtotal")
    unit_price: Optional[float] = Field(default=None, gt=0)
    category: Category = Field(default=Category.OTHER)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source: ClassificationSource = Field(default=ClassificationSource.UNKNOWN)


class ReconciliationResult(BaseModel):
    """
    Printed total versus the sum of parsed items.

    Informational: it estimates parse completeness and never changes
    the items or the total.
    """

    is_valid: bool
    difference: float = Field(ge=0)
    sum_from_items: float = Field(ge=0)
    total_amount: float = Field(ge=0)
    missing_items: bool
    suggestions: list[str] = Field(default_factory=list)


class ParsedReceipt(BaseModel):
    """
    One receipt, parsed.

    ``reconciliation`` is available on the object but excluded from
    ``model_dump()``, which is the shape handed to the HTTP layer.
    """

    items: list[ParsedLineItem] = Field(default_factory=list)
    total_amount: float = Field(ge=0)
    store_name: Optional[str] = None
    date: Optional[str] = Field(
        default=None,
        description="ISO date (YYYY-MM-DD)"
    )
    filtered_count: int = Field(ge=0)
    total_count: int = Field(ge=0)
    reconciliation: Optional[ReconciliationResult] = Field(
        default=None,
        exclude=True,
    )


# =============================================================================
# STRUCTURED OCR DOCUMENTS
# =============================================================================

class OcrLineItem(BaseModel):
    """A line item as returned by a structured OCR provider."""
    model_config = ConfigDict(populate_by_name=True)

    description: str = ""
    quantity: Optional[float] = None
    unit_price: Optional[float] = Field(default=None, alias="unitPrice")
    amount: Optional[float] = None


class OcrDocument(BaseModel):
    """Structured OCR output: header fields plus raw line items."""
    model_config = ConfigDict(populate_by_name=True)

    vendor: Optional[str] = None
    date: Optional[str] = None
    currency: Optional[str] = None
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    line_items: list[OcrLineItem] = Field(default_factory=list, alias="lineItems")


class EnrichedOcrLineItem(OcrLineItem):
    """OCR line item after stitching, amount filling and classification."""

    category: Category = Category.OTHER
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source: ClassificationSource = ClassificationSource.UNKNOWN


class EnrichedOcrDocument(BaseModel):
    """OCR document with a normalized currency and classified line items."""

    vendor: Optional[str] = None
    date: Optional[str] = None
    currency: str = "TWD"
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    line_items: list[EnrichedOcrLineItem] = Field(default_factory=list)
