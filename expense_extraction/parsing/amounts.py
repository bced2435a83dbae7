"""
Amount Extractor

Pulls name, quantity and price out of a single receipt line by trying an
ordered cascade of matchers. The first matcher whose candidate passes
validation wins; a rejected candidate falls through to the next matcher.

Order:
    mul_sum          名稱 $48 x 2 $96   (subtotal optional, defaults to unit x qty)
    name_qty_price   名稱 x 2 $96
    code_name_price  A12 名稱 $48
    qty_name_price   2 名稱 $96
    name_price       名稱 $48
    heuristic        leading text, last short number as price

DESIGN DECISION: ``price`` is always the line subtotal. Only the
mul_sum matcher knows a unit price and reports it separately.
"""

import re
from typing import Callable, NamedTuple, Optional

from expense_extraction.models.receipt import ExtractedAmount
from expense_extraction.parsing.normalizer import normalize


DEFAULT_MONEY_MAX = 20000.0
MAX_NAME_LENGTH = 200

_NUM = r"(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"
_SUFFIX = r"\s*(?:元|TX|T)?\s*$"
_TIMES = r"[xX×*＊]"

_MUL_SUM = re.compile(
    rf"^(.+?)\s*\$?\s*{_NUM}\s*{_TIMES}\s*(\d+)\s*(?:\$?\s*{_NUM})?{_SUFFIX}",
    re.IGNORECASE,
)
_NAME_QTY_PRICE = re.compile(
    rf"^(.+?)\s*{_TIMES}\s*(\d+)\s*\$?\s*{_NUM}{_SUFFIX}",
    re.IGNORECASE,
)
_CODE_NAME_PRICE = re.compile(
    rf"^[A-Z0-9]{{2,6}}\s+(.+?)\s*\$?\s*{_NUM}{_SUFFIX}",
    re.IGNORECASE,
)
_QTY_NAME_PRICE = re.compile(
    rf"^(\d{{1,3}})\s+(.+?)\s*\$?\s*{_NUM}{_SUFFIX}",
    re.IGNORECASE,
)
_NAME_PRICE = re.compile(rf"^(.+?)\s*\$?\s*{_NUM}{_SUFFIX}", re.IGNORECASE)

# Never longer than 6 digits, so transaction numbers are not read as prices
_SHORT_NUMBER = re.compile(r"(?<!\d)\d{1,6}(?:\.\d{1,2})?(?!\d)")
_LEADING_NAME = re.compile(r"^([^\d$]+)")

_BULLET = re.compile(r"^[\s*•·‧\-+>]+")
_STARS = re.compile(r"\*{2,}")
_TRAILING_QTY = re.compile(rf"\s*{_TIMES}\s*\d+\s*$")
_TRAILING_JUNK = re.compile(r"[\s$:：,，.。;；\-]+$")


class _Candidate(NamedTuple):
    name: str
    quantity: int
    price: float
    unit_price: Optional[float] = None


def _to_float(value: str) -> float:
    return float(value.replace(",", ""))


def clean_name(name: str) -> str:
    """Strip bullets, ``**`` runs, a trailing ``x N`` and trailing punctuation."""
    name = _BULLET.sub("", name)
    name = _STARS.sub("", name)
    name = _TRAILING_QTY.sub("", name)
    name = _TRAILING_JUNK.sub("", name)
    return name.strip()


# =============================================================================
# MATCHERS - pure functions, line -> candidate or None
# =============================================================================

def match_mul_sum(line: str) -> Optional[_Candidate]:
    m = _MUL_SUM.match(line)
    if not m:
        return None
    unit = _to_float(m.group(2))
    qty = int(m.group(3))
    subtotal = _to_float(m.group(4)) if m.group(4) else unit * qty
    return _Candidate(m.group(1), qty, subtotal, unit)


def match_name_qty_price(line: str) -> Optional[_Candidate]:
    m = _NAME_QTY_PRICE.match(line)
    if not m:
        return None
    return _Candidate(m.group(1), int(m.group(2)), _to_float(m.group(3)))


def match_code_name_price(line: str) -> Optional[_Candidate]:
    m = _CODE_NAME_PRICE.match(line)
    if not m:
        return None
    return _Candidate(m.group(1), 1, _to_float(m.group(2)))


def match_qty_name_price(line: str) -> Optional[_Candidate]:
    m = _QTY_NAME_PRICE.match(line)
    if not m:
        return None
    return _Candidate(m.group(2), int(m.group(1)), _to_float(m.group(3)))


def match_name_price(line: str) -> Optional[_Candidate]:
    m = _NAME_PRICE.match(line)
    if not m:
        return None
    return _Candidate(m.group(1), 1, _to_float(m.group(2)))


def match_heuristic(line: str) -> Optional[_Candidate]:
    numbers = _SHORT_NUMBER.findall(line)
    if not numbers:
        return None
    name = _LEADING_NAME.match(line)
    if not name:
        return None

    price = float(numbers[-1])
    quantity = 1
    if len(numbers) > 1:
        first = float(numbers[0])
        if not first.is_integer():
            return None
        quantity = int(first)
    return _Candidate(name.group(1), quantity, price)


Matcher = Callable[[str], Optional[_Candidate]]

MATCHERS: tuple[tuple[str, Matcher], ...] = (
    ("mul_sum", match_mul_sum),
    ("name_qty_price", match_name_qty_price),
    ("code_name_price", match_code_name_price),
    ("qty_name_price", match_qty_name_price),
    ("name_price", match_name_price),
    ("heuristic", match_heuristic),
)


class AmountExtractor:
    """Runs the matcher cascade and validates each candidate."""

    def __init__(self, money_max: float = DEFAULT_MONEY_MAX):
        self._money_max = money_max

    def is_reasonable_money(self, value: Optional[float]) -> bool:
        return value is not None and 0 < value < self._money_max

    def _validate(self, candidate: _Candidate, pattern: str) -> Optional[ExtractedAmount]:
        name = clean_name(candidate.name)
        if not 2 <= len(name) <= MAX_NAME_LENGTH or candidate.quantity <= 0:
            return None
        if not self.is_reasonable_money(candidate.price):
            return None
        if candidate.unit_price is not None and not self.is_reasonable_money(candidate.unit_price):
            return None
        return ExtractedAmount(
            name=name,
            quantity=candidate.quantity,
            price=candidate.price,
            unit_price=candidate.unit_price,
            pattern=pattern,
        )

    def extract(self, line: str) -> Optional[ExtractedAmount]:
        """
        Extract an amount from one line.

        Returns None when no matcher produces a valid candidate.
        """
        text = normalize(line)
        if not text:
            return None

        for pattern, matcher in MATCHERS:
            candidate = matcher(text)
            if candidate is None:
                continue
            extracted = self._validate(candidate, pattern)
            if extracted is not None:
                return extracted
        return None
