"""
Parsing Package

Pure, synchronous text processing: normalization, line segmentation,
amount extraction and receipt header fields.
"""

from expense_extraction.parsing.amounts import (
    DEFAULT_MONEY_MAX,
    MATCHERS,
    AmountExtractor,
    clean_name,
)
from expense_extraction.parsing.fields import (
    extract_date,
    extract_store_name,
    extract_total_amount,
)
from expense_extraction.parsing.normalizer import match_key, normalize, normalize_lines
from expense_extraction.parsing.segmenter import (
    LineSegmenter,
    is_hard_blacklisted,
    is_price_fragment,
    is_soft_blacklisted,
)

__all__ = [
    # Normalizer
    "match_key",
    "normalize",
    "normalize_lines",
    # Segmenter
    "LineSegmenter",
    "is_hard_blacklisted",
    "is_price_fragment",
    "is_soft_blacklisted",
    # Amounts
    "DEFAULT_MONEY_MAX",
    "MATCHERS",
    "AmountExtractor",
    "clean_name",
    # Fields
    "extract_date",
    "extract_store_name",
    "extract_total_amount",
]
