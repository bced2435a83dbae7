"""
Line Segmenter

Splits a normalized receipt into candidate item lines.

Filtering layers, applied in order:
1. Column headers and separator rules
2. Hard blacklist (invoice numbers, phone lines, timestamps) - unconditional
3. Soft blacklist (boilerplate words) - unless the line looks like a product code
4. Barcode-only lines
5. Price fragments are stitched onto the name line waiting for them
6. Lines without any letter, CJK character or digit

DESIGN DECISION: The segmenter only decides which lines are worth
extracting from. It never parses amounts itself beyond recognizing a
bare price fragment.
"""

import re
from typing import Optional

import structlog

from expense_extraction.models.receipt import CandidateItemLine, SegmentationReport
from expense_extraction.parsing.normalizer import normalize_lines


logger = structlog.get_logger(__name__)


# =============================================================================
# PATTERNS
# =============================================================================

HEADER_LINE = re.compile(
    r"^(?:(?:品名|名稱|品項|數量|單價|金額|小計|售價|qty|item|items|price|amount|total|description)[\s:：/|]*)+$",
    re.IGNORECASE,
)
SEPARATOR_LINE = re.compile(r"^[-=_*~.#\s]{3,}$")

HARD_BLACKLIST = (
    re.compile(r"^no[.:：]?\s*[A-Z]{0,2}-?\d{4,}", re.IGNORECASE),
    re.compile(r"^tel[:：]?\s*\d+", re.IGNORECASE),
    re.compile(r"交易單號[:：]?\s*\w+"),
    re.compile(r"電子發票號碼[:：]?\s*\w+"),
    re.compile(r"(?:統一編號|統編)\s*[:：]?\s*\d+"),
    # Timestamps
    re.compile(r"\d{2,4}\s*[/.-]\s*\d{1,2}\s*[/.-]\s*\d{1,2}"),
    re.compile(r"\d{2,4}\s*年\s*\d{1,2}\s*月(?:\s*\d{1,2}\s*日)?"),
    re.compile(r"民國\s*\d{2,3}"),
    re.compile(r"(?<!\d)\d{1,2}:\d{2}(?::\d{2})?(?!\d)"),
)

SOFT_BLACKLIST = (
    "公司", "有限公司", "股份有限公司", "企業", "商行", "商店",
    "發票", "序號", "收據", "憑證", "日期", "時間",
    "總計", "合計", "小計", "稅額", "稅金", "折扣", "優惠",
    "信用卡", "現金", "收現", "找零", "刷卡", "電子支付",
    "地址", "電話", "傳真", "網址", "email", "信箱",
    "備註", "說明", "注意事項", "謝謝", "歡迎", "營業時間",
    "中華民國", "收銀機", "收執聯", "統編", "回饋金", "應收", "實收",
)

PRODUCT_CODE_LINE = re.compile(r"^[A-Za-z0-9]{2,6}\s+\d+(?:TX|元)?$", re.IGNORECASE)
BARCODE_LINE = re.compile(r"^\d{8,14}$")

_AMOUNT = r"(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{1,2})?"
PRICE_FRAGMENT = re.compile(
    rf"^(?:\d{{1,3}}\s+)?\$?\s*{_AMOUNT}\s*(?:元|TX|T)?$",
    re.IGNORECASE,
)
_ENDS_WITH_PRICE = re.compile(rf"{_AMOUNT}\s*(?:元|TX|T)?$", re.IGNORECASE)
_MEANINGFUL = re.compile(r"[A-Za-z0-9\u3400-\u9fff]")


def is_hard_blacklisted(line: str) -> bool:
    return any(pattern.search(line) for pattern in HARD_BLACKLIST)


def is_soft_blacklisted(line: str) -> bool:
    """Boilerplate word present and not shaped like a product code."""
    if PRODUCT_CODE_LINE.match(line):
        return False
    lowered = line.lower()
    return any(keyword in lowered for keyword in SOFT_BLACKLIST)


def is_price_fragment(line: str) -> bool:
    return bool(PRICE_FRAGMENT.match(line))


class LineSegmenter:
    """
    Turns a receipt document into candidate item lines.

    Pure and synchronous; one instance can be shared freely.
    """

    def analyze(self, document: Optional[str]) -> SegmentationReport:
        """Segment ``document`` and report what was kept and what was dropped."""
        lines = normalize_lines(document)
        candidates: list[CandidateItemLine] = []
        stitched: set[int] = set()

        for index, line in enumerate(lines):
            if HEADER_LINE.match(line) or SEPARATOR_LINE.match(line):
                continue
            if is_hard_blacklisted(line):
                continue
            if is_soft_blacklisted(line):
                continue
            if BARCODE_LINE.match(line.replace(" ", "")):
                continue

            if is_price_fragment(line):
                previous = candidates[-1] if candidates else None
                if previous is not None and not _ENDS_WITH_PRICE.search(previous.text):
                    candidates[-1] = CandidateItemLine(
                        text=f"{previous.text} {line}",
                        line_numbers=[*previous.line_numbers, index],
                        pending_name=previous.text,
                    )
                    stitched.add(index)
                continue

            if not _MEANINGFUL.search(line):
                continue

            candidates.append(CandidateItemLine(text=line, line_numbers=[index]))

        report = SegmentationReport(
            lines=lines,
            candidates=candidates,
            total_count=len(lines),
            filtered_count=len(lines) - len(candidates),
            stitched_line_numbers=stitched,
        )
        logger.debug(
            "receipt_segmented",
            total_count=report.total_count,
            candidate_count=len(candidates),
            stitched_count=len(stitched),
        )
        return report

    def segment(self, document: Optional[str]) -> list[CandidateItemLine]:
        """Candidate item lines of ``document``, in document order."""
        return self.analyze(document).candidates
