"""
Spoken Expense Models

Short utterances such as 「麥當勞 120 元 晚餐」 are parsed into an amount,
a note and optional account/category hints. Confidence here is a 0-100
quality score, not a probability.
"""

from typing import Optional

from pydantic import BaseModel, Field

from expense_extraction.models.classification import Category, ClassificationSource


class SpokenExpenseResult(BaseModel):
    """Result of parsing one utterance."""

    amount: Optional[float] = Field(default=None, gt=0)
    note: str = ""
    account: Optional[str] = Field(
        default=None,
        description="Payment method (現金/信用卡/轉帳/電子支付)"
    )
    category: Optional[Category] = None
    confidence: int = Field(default=0, ge=0, le=100)
    suggestions: list[str] = Field(default_factory=list)


class SpeechTranscript(BaseModel):
    """What a speech-to-text provider hands us."""

    text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    alternatives: list[str] = Field(default_factory=list)


class VoiceExpenseResult(SpokenExpenseResult):
    """Spoken result combined with transcript quality and classifier fallback."""

    text: str = ""
    overall_confidence: int = Field(default=0, ge=0, le=100)
    stt_confidence: int = Field(default=0, ge=0, le=100)
    category_source: ClassificationSource = ClassificationSource.LOCAL
    alternatives: list[str] = Field(default_factory=list)
