"""
Rule Classifier

Synchronous, dictionary-based classification with no I/O.

Two steps:
1. ``gate``   - is this text a purchasable item at all?
2. ``lookup`` - which category does the keyword dictionary suggest, and how sure?

DESIGN DECISION: The gate only rejects on clear evidence (boilerplate
words, digits, symbols, half-typed IME input). Anything it lets through
still gets a lookup result, even if that result is OTHER at 0.5.
"""

import re
from typing import NamedTuple, Optional

from expense_extraction.classification.keywords import (
    CATEGORY_KEYWORDS,
    DRINK_PATTERN,
    DRINK_TOKENS,
    NON_PRODUCT_KEYWORDS,
)
from expense_extraction.models.classification import (
    Category,
    ClassificationResult,
    ClassificationSource,
)
from expense_extraction.parsing.normalizer import match_key, normalize


# Confidence levels
KEYWORD_CONFIDENCE = 0.9
PRODUCT_CODE_CONFIDENCE = 0.6
NO_MATCH_CONFIDENCE = 0.5

MIN_KEY_LENGTH = 2
MAX_KEY_LENGTH = 100

_BOPOMOFO_ONLY = re.compile(r"^[\u3105-\u3129\u02ca\u02c7\u02cb\u02d9\s]+$")
_DIGITS_ONLY = re.compile(r"^\d+$")
_SYMBOLS_ONLY = re.compile(r"^[^\w\u4e00-\u9fa5]+$")
_PRODUCT_CODE = re.compile(r"^[a-z0-9]{2,6}\s+\d+(?:tx|元)?$", re.IGNORECASE)
_CODE_LIKE_KEY = re.compile(r"^[a-z0-9]{2,6}\d+(?:tx|元)?$")

_NON_PRODUCT_KEYS = tuple(match_key(keyword) for keyword in NON_PRODUCT_KEYWORDS)
_CATEGORY_KEYS = {
    category: tuple(match_key(keyword) for keyword in keywords)
    for category, keywords in CATEGORY_KEYWORDS.items()
}
_DRINK_KEYS = tuple(match_key(token) for token in DRINK_TOKENS)


class GateDecision(NamedTuple):
    is_product: bool
    reason: Optional[str] = None


class LookupResult(NamedTuple):
    category: Category
    confidence: float


def is_drink(key: str) -> bool:
    return any(token in key for token in _DRINK_KEYS) or bool(DRINK_PATTERN.search(key))


def refine_dining(key: str) -> Category:
    """Split the generic dining bucket into drinks and food."""
    return Category.BEVERAGE if is_drink(key) else Category.FOOD


class RuleClassifier:
    """Product gate plus keyword lookup."""

    def gate(self, text: Optional[str]) -> GateDecision:
        """Decide whether ``text`` can be a product at all."""
        normalized = normalize(text)
        if not normalized:
            return GateDecision(False, "空白")
        if _BOPOMOFO_ONLY.match(normalized):
            return GateDecision(False, "注音輸入")
        if _PRODUCT_CODE.match(normalized):
            return GateDecision(True, "商品代碼格式")

        key = match_key(normalized)
        if any(keyword in key for keyword in _NON_PRODUCT_KEYS):
            return GateDecision(False, "黑名單關鍵字")
        if _DIGITS_ONLY.match(key):
            return GateDecision(False, "純數字")
        if _SYMBOLS_ONLY.match(key):
            return GateDecision(False, "僅特殊符號")
        if len(key) < MIN_KEY_LENGTH:
            return GateDecision(False, "文字過短")
        if len(key) > MAX_KEY_LENGTH:
            return GateDecision(False, "文字過長")
        return GateDecision(True)

    def lookup(self, text: Optional[str]) -> LookupResult:
        """Dictionary category for ``text``; OTHER at 0.5 when nothing matches."""
        key = match_key(text)
        if not key:
            return LookupResult(Category.OTHER, NO_MATCH_CONFIDENCE)

        if _CODE_LIKE_KEY.match(key):
            return LookupResult(Category.OTHER, PRODUCT_CODE_CONFIDENCE)

        for category, keywords in _CATEGORY_KEYS.items():
            if any(keyword in key for keyword in keywords):
                if category == Category.DINING:
                    category = refine_dining(key)
                return LookupResult(category, KEYWORD_CONFIDENCE)

        if is_drink(key):
            return LookupResult(Category.BEVERAGE, KEYWORD_CONFIDENCE)

        return LookupResult(Category.OTHER, NO_MATCH_CONFIDENCE)

    def classify(self, text: Optional[str]) -> ClassificationResult:
        """Gate, then lookup. Never raises."""
        decision = self.gate(text)
        if not decision.is_product:
            return ClassificationResult(
                is_product=False,
                category=Category.OTHER,
                confidence=1.0,
                source=ClassificationSource.RULE,
                reason=decision.reason,
            )

        category, confidence = self.lookup(text)
        return ClassificationResult(
            is_product=True,
            category=category,
            confidence=confidence,
            source=ClassificationSource.LOCAL,
            reason=decision.reason,
        )
