"""
Spoken Expense Parser

Parses short utterances such as 「麥當勞 120 元 晚餐」 or
「幫我記 計程車 兩百塊」 into an amount, a note and optional account and
category hints.

DESIGN DECISION: Confidence is a transparent additive score, not a model
output. Each signal the parser found adds a fixed number of points, so a
user-facing "please repeat" decision can be explained line by line.

    amount found            40
    note found              20
    note length 2-20        10
    account found           10
    category found          10
    input length 5-50       10
"""

import re
from typing import NamedTuple, Optional

from expense_extraction.classification.keywords import (
    ACCOUNT_KEYWORDS,
    SPOKEN_CATEGORY_KEYWORDS,
)
from expense_extraction.models.classification import Category
from expense_extraction.models.spoken import SpokenExpenseResult


DEFAULT_AMOUNT_MAX = 999999.0
LARGE_AMOUNT = 10000
LONG_NOTE = 30
LOW_CONFIDENCE = 50

SUGGEST_SAY_AMOUNT = "未能識別金額，請明確說出數字，例如：「一百元」或「100元」"
SUGGEST_SAY_ITEM = "未能識別商品或服務名稱，請說出具體項目，例如：「麥當勞」或「計程車」"
SUGGEST_CHECK_AMOUNT = "金額較大，請確認是否正確"
SUGGEST_SHORTER_NOTE = "備註較長，建議簡化描述"
SUGGEST_RETRY = "語音識別信心度較低，建議重新錄製或手動輸入"


# =============================================================================
# NORMALIZATION
# =============================================================================

_THOUSANDS_COMMA = re.compile(r"(?<=\d),(?=\d{3})")
_PUNCTUATION = re.compile(r"[，。,]|(?<!\d)\.|\.(?!\d)")
_CURRENCY_WORDS = re.compile(r"塊錢|元錢|塊")
_COMMAND_PREFIXES = (
    re.compile(r"請(?:幫我)?(?:記|新增|輸入|記錄)"),
    re.compile(r"幫我(?:記|新增|輸入|記錄)"),
    re.compile(r"我要(?:記|新增|輸入|記錄)"),
)
_CHINESE_AMOUNT = re.compile(r"([零〇一二兩三四五六七八九十百千萬]+)\s*元")
_CHINESE_STANDALONE = re.compile(
    r"(?:^|(?<=\s))([零〇一二兩三四五六七八九十百千萬]{2,})(?=\s|$)"
)
_WHITESPACE = re.compile(r"\s+")

_CHINESE_DIGITS = {
    "零": 0, "〇": 0, "一": 1, "二": 2, "兩": 2, "三": 3, "四": 4,
    "五": 5, "六": 6, "七": 7, "八": 8, "九": 9,
}
_CHINESE_UNITS = {"十": 10, "百": 100, "千": 1000}


def chinese_to_number(text: str) -> Optional[int]:
    """
    Convert a Chinese numeral such as 一百二十 or 三萬五千 to an int.

    A single digit after 百, 千 or 萬 is read as the next place value, the
    way it is spoken: 兩千五 is 2500 and 三萬五 is 35000. After 零 it is
    read as units (一百零二 is 102).

    Returns None for anything that isn't a numeral.
    """
    if not text:
        return None

    total = 0
    section = 0
    number = 0
    last_unit = 0
    for char in text:
        if char in _CHINESE_DIGITS:
            number = _CHINESE_DIGITS[char]
            if number == 0:
                last_unit = 0
        elif char in _CHINESE_UNITS:
            if number == 0 and char == "十":
                number = 1
            section += number * _CHINESE_UNITS[char]
            number = 0
            last_unit = _CHINESE_UNITS[char]
        elif char == "萬":
            section += number
            total += section * 10000
            section = 0
            number = 0
            last_unit = 10000
        else:
            return None
    if number and last_unit >= 100:
        number *= last_unit // 10
    return total + section + number


def _replace_chinese_amount(match: re.Match) -> str:
    value = chinese_to_number(match.group(1))
    if not value:
        return match.group(0)
    return f"{value}元"


def _replace_chinese_number(match: re.Match) -> str:
    value = chinese_to_number(match.group(1))
    if not value:
        return match.group(0)
    return str(value)


def normalize_utterance(text: Optional[str]) -> str:
    if not text:
        return ""
    text = _THOUSANDS_COMMA.sub("", text)
    text = _PUNCTUATION.sub(" ", text)
    text = _CURRENCY_WORDS.sub("元", text)
    for prefix in _COMMAND_PREFIXES:
        text = prefix.sub("", text)
    text = _CHINESE_AMOUNT.sub(_replace_chinese_amount, text)
    text = _CHINESE_STANDALONE.sub(_replace_chinese_number, text)
    return _WHITESPACE.sub(" ", text).strip()


# =============================================================================
# AMOUNT
# =============================================================================

_N = r"(\d+(?:\.\d+)?)"

# An optional second group is a trailing digit at the next place value.
AMOUNT_PATTERNS: tuple[tuple[re.Pattern, int], ...] = (
    (re.compile(rf"{_N}\s*萬(?:(\d)(?![\d.])\s*千?)?\s*元?"), 10000),
    (re.compile(rf"{_N}\s*千(?:(\d)(?![\d.])\s*百?)?\s*元?"), 1000),
    (re.compile(rf"{_N}\s*百\s*元?"), 100),
    (re.compile(rf"{_N}\s*[kK](?![a-zA-Z])\s*元?"), 1000),
    (re.compile(rf"{_N}\s*[wW](?![a-zA-Z])\s*元?"), 10000),
    (re.compile(rf"{_N}\s*元"), 1),
    (re.compile(rf"^{_N}$"), 1),
    (re.compile(rf"^{_N}\s+"), 1),
    (re.compile(rf"\s+{_N}$"), 1),
    # Not part of a code such as 7-11 or A4.
    (re.compile(rf"(?<![A-Za-z\d.-]){_N}(?![A-Za-z\d.-])"), 1),
)


class AmountMatch(NamedTuple):
    amount: float
    used_text: str


# =============================================================================
# NOTE
# =============================================================================

_FILLER_PREFIXES = (
    re.compile(r"^(?:記帳|記錄|記|新增|輸入)"),
    re.compile(r"^(?:請幫我|幫我|我要)"),
    re.compile(r"^(?:今天|昨天|明天)"),
    re.compile(r"^(?:現金|信用卡|轉帳|付款)"),
    re.compile(r"^(?:支出|收入|花費|消費)"),
    re.compile(r"^元$"),
)


class SpokenExpenseParser:
    """Pure, synchronous parser for spoken expense notes."""

    def __init__(self, amount_max: float = DEFAULT_AMOUNT_MAX):
        self._amount_max = amount_max

    def extract_amount(self, text: str) -> Optional[AmountMatch]:
        for pattern, multiplier in AMOUNT_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            groups = match.groups()
            amount = float(groups[0]) * multiplier
            if len(groups) > 1 and groups[1]:
                amount += int(groups[1]) * multiplier / 10
            if 0 < amount <= self._amount_max:
                if amount.is_integer():
                    amount = float(int(amount))
                return AmountMatch(amount=amount, used_text=match.group(0))
        return None

    @staticmethod
    def extract_note(text: str, used_text: str = "") -> str:
        note = text
        if used_text:
            note = note.replace(used_text, " ", 1)
        note = _WHITESPACE.sub(" ", note).strip()
        for pattern in _FILLER_PREFIXES:
            note = pattern.sub("", note).strip()
        return _WHITESPACE.sub(" ", note).strip()

    @staticmethod
    def extract_account(text: str) -> Optional[str]:
        lowered = text.lower()
        for account, keywords in ACCOUNT_KEYWORDS.items():
            if any(keyword in lowered for keyword in keywords):
                return account
        return None

    @staticmethod
    def extract_category(text: str) -> Optional[Category]:
        lowered = text.lower()
        for category, keywords in SPOKEN_CATEGORY_KEYWORDS.items():
            if any(keyword in lowered for keyword in keywords):
                return category
        return None

    @staticmethod
    def score(result: SpokenExpenseResult, normalized: str) -> int:
        confidence = 0
        if result.amount:
            confidence += 40
        if result.note:
            confidence += 20
            if 2 <= len(result.note) <= 20:
                confidence += 10
        if result.account:
            confidence += 10
        if result.category:
            confidence += 10
        if 5 <= len(normalized) <= 50:
            confidence += 10
        return min(confidence, 100)

    @staticmethod
    def suggest(result: SpokenExpenseResult) -> list[str]:
        suggestions = []
        if not result.amount:
            suggestions.append(SUGGEST_SAY_AMOUNT)
        if not result.note:
            suggestions.append(SUGGEST_SAY_ITEM)
        if result.amount and result.amount > LARGE_AMOUNT:
            suggestions.append(SUGGEST_CHECK_AMOUNT)
        if result.note and len(result.note) > LONG_NOTE:
            suggestions.append(SUGGEST_SHORTER_NOTE)
        if result.confidence < LOW_CONFIDENCE:
            suggestions.append(SUGGEST_RETRY)
        return suggestions

    def parse(self, text: Optional[str]) -> SpokenExpenseResult:
        """
        Parse one utterance.

        Never raises; an empty or unreadable utterance gives a result with
        no amount, zero confidence and suggestions for the user.
        """
        normalized = normalize_utterance(text)
        amount = self.extract_amount(normalized)

        result = SpokenExpenseResult(
            amount=amount.amount if amount else None,
            note=self.extract_note(normalized, amount.used_text if amount else ""),
            account=self.extract_account(normalized),
            category=self.extract_category(normalized),
        )
        result.confidence = self.score(result, normalized)
        result.suggestions = self.suggest(result)
        return result
