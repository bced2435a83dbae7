"""
Receipt Field Extractors

Printed total, store name and date. Each extractor walks the normalized
lines with an ordered family of patterns and returns None when nothing
plausible is found.
"""

import re
from datetime import date
from typing import Callable, Iterable, Optional

_NUM = r"(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"

TOTAL_PATTERNS = (
    re.compile(rf"總計\s*[：:]\s*\$?\s*{_NUM}", re.IGNORECASE),
    re.compile(rf"合計\s*[：:]\s*\$?\s*{_NUM}", re.IGNORECASE),
    re.compile(rf"應收\s*[：:]\s*\$?\s*{_NUM}", re.IGNORECASE),
    re.compile(rf"實收\s*[：:]\s*\$?\s*{_NUM}", re.IGNORECASE),
    re.compile(rf"總金額\s*[：:]\s*\$?\s*{_NUM}", re.IGNORECASE),
    re.compile(rf"\btotal\s*[：:]\s*\$?\s*{_NUM}", re.IGNORECASE),
)
LONE_AMOUNT = re.compile(r"^\$?\s*(\d{1,6}(?:\.\d{1,2})?)\s*(?:元|TX)?$", re.IGNORECASE)

STORE_PATTERNS = (
    re.compile(r"^(.+?)(?:股份有限公司|有限公司|公司|企業|商行|商店)"),
    re.compile(r"^(.+?)(?:統一編號|統編)"),
)

_GREGORIAN = re.compile(r"(?<!\d)(\d{4})\s*[年/.-]\s*(\d{1,2})\s*[月/.-]\s*(\d{1,2})\s*日?")
_ROC = re.compile(r"(?:民國)?\s*(?<!\d)(\d{2,3})\s*[年/.-]\s*(\d{1,2})\s*[月/.-]\s*(\d{1,2})\s*日?")
_MONTH_DAY = (
    re.compile(r"(?<!\d)(\d{1,2})\s*月\s*(\d{1,2})\s*日?"),
    re.compile(r"(?<![\d/])(\d{1,2})/(\d{1,2})(?![\d/])"),
)

ROC_OFFSET = 1911
_ID_LINE = re.compile(r"^(?:tel|no)[:：]?", re.IGNORECASE)


def _to_float(value: str) -> float:
    return float(value.replace(",", ""))


def extract_total_amount(
    lines: list[str],
    is_reasonable: Callable[[float], bool],
    skip_lines: Iterable[int] = (),
) -> Optional[float]:
    """
    Printed total of the receipt.

    Labelled totals win. Otherwise the first line holding nothing but an
    amount is used, ignoring lines in ``skip_lines`` (price fragments that
    were stitched onto an item).
    """
    for line in lines:
        for pattern in TOTAL_PATTERNS:
            match = pattern.search(line)
            if match:
                value = _to_float(match.group(1))
                if is_reasonable(value):
                    return value

    skipped = set(skip_lines)
    for index, line in enumerate(lines):
        if index in skipped:
            continue
        match = LONE_AMOUNT.match(line.strip())
        if match:
            value = float(match.group(1))
            if is_reasonable(value):
                return value
    return None


def extract_store_name(lines: list[str]) -> Optional[str]:
    """Text in front of a company suffix or tax ID label, if longer than 2 chars."""
    for line in lines:
        for pattern in STORE_PATTERNS:
            match = pattern.match(line)
            if match:
                name = match.group(1).strip()
                if len(name) > 2:
                    return name
    return None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def extract_date(lines: list[str], today: Optional[date] = None) -> Optional[str]:
    """
    First valid date on the receipt, as ISO ``YYYY-MM-DD``.

    Accepts Gregorian dates, ROC dates (3-digit year + 1911) and
    month/day pairs, which get the current year. Phone lines are skipped
    so numbers like ``TEL:02-2629`` are never read as dates.
    """
    current_year = (today or date.today()).year

    for line in lines:
        if _ID_LINE.match(line):
            continue

        match = _GREGORIAN.search(line)
        if match:
            parsed = _safe_date(*(int(g) for g in match.groups()))
            if parsed:
                return parsed.isoformat()

        match = _ROC.search(line)
        if match:
            year, month, day = (int(g) for g in match.groups())
            if year >= 100 or "民國" in line:
                parsed = _safe_date(year + ROC_OFFSET, month, day)
                if parsed:
                    return parsed.isoformat()

        for pattern in _MONTH_DAY:
            match = pattern.search(line)
            if match:
                parsed = _safe_date(current_year, int(match.group(1)), int(match.group(2)))
                if parsed:
                    return parsed.isoformat()
    return None
