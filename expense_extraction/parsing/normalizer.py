"""
Text Normalizer

Canonicalizes OCR and speech text before any pattern matching:
full-width folding, zero-width stripping, drink modifier removal,
currency prefixes and a few brand typos.

DESIGN DECISION: ``normalize`` applies one step repeatedly until the text
stops changing. Individual rules can then stay simple while the function
as a whole is idempotent.
"""

import re
from typing import Optional


_MAX_PASSES = 8

# U+FF01..U+FF5E -> U+0021..U+007E, ideographic space -> space
_WIDTH_TABLE = {code: code - 0xFEE0 for code in range(0xFF01, 0xFF5F)}
_WIDTH_TABLE[0x3000] = ord(" ")
_WIDTH_TABLE[ord("×")] = ord("x")
for _zero_width in (0x200B, 0x200C, 0x200D, 0xFEFF):
    _WIDTH_TABLE[_zero_width] = None

# Sweetness, ice and cup size printed on drink receipts
_DRINK_MODIFIERS = re.compile(
    r"正常糖|微糖|少糖|半糖|全糖|無糖|去冰|微冰|少冰|常溫|大杯|中杯|小杯"
)
# Single-character temperature and size tokens, only when standalone
_STANDALONE_MODIFIERS = re.compile(r"(?<!\S)(?:熱|溫|[LMS])(?!\S)")
_CURRENCY_PREFIX = re.compile(r"NT\$|NTD|TWD", re.IGNORECASE)
_BRAND_FIXES = (
    (re.compile(r"麥當當"), "麥當勞"),
    (re.compile(r"7\s*-\s*eleven|seven[\s-]*eleven", re.IGNORECASE), "7-11"),
)
_WHITESPACE = re.compile(r"\s+")
_MATCH_KEY_STRIP = re.compile(r"[\s，。,.]+")
_LINE_BREAK = re.compile(r"\r?\n")


def _normalize_once(text: str) -> str:
    text = text.translate(_WIDTH_TABLE)
    text = _DRINK_MODIFIERS.sub(" ", text)
    text = _STANDALONE_MODIFIERS.sub(" ", text)
    text = _CURRENCY_PREFIX.sub("$", text)
    for pattern, replacement in _BRAND_FIXES:
        text = pattern.sub(replacement, text)
    return _WHITESPACE.sub(" ", text).strip()


def normalize(text: Optional[str]) -> str:
    """
    Canonicalize one piece of text.

    Pure and total: ``None`` and empty input give ``""``, and
    ``normalize(normalize(x)) == normalize(x)``.
    """
    if not text:
        return ""

    current = text
    for _ in range(_MAX_PASSES):
        step = _normalize_once(current)
        if step == current:
            break
        current = step
    return current


def normalize_lines(document: Optional[str]) -> list[str]:
    """Split a document on line breaks and normalize each non-empty line."""
    if not document:
        return []
    lines = (normalize(line) for line in _LINE_BREAK.split(document))
    return [line for line in lines if line]


def match_key(text: Optional[str]) -> str:
    """Lower-cased key without whitespace or punctuation, for dictionary lookups."""
    return _MATCH_KEY_STRIP.sub("", normalize(text).lower())
