"""
Classification Models for Expense Extraction

These models describe what a classifier says about a piece of text:
is it a purchasable item at all, which spending category does it belong
to, how sure are we, and which stage of the pipeline decided.

DESIGN DECISION: Uncertainty is data, not an exception.
Every classification path returns a result (possibly a degraded one),
so the boundary layer decides when to ask the user.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Spending categories.

    DINING is the generic bucket coming out of the keyword dictionary and
    the remote classifier; it is refined into BEVERAGE or FOOD before it
    reaches a receipt line item.
    """
    DINING = "餐飲"
    BEVERAGE = "飲品"
    FOOD = "食物"
    TRANSPORT = "交通"
    ENTERTAINMENT = "娛樂"
    DAILY_GOODS = "日用品"
    MEDICAL = "醫療"
    EDUCATION = "教育"
    TRAVEL = "旅遊"
    SHOPPING = "購物"
    APPAREL = "服飾"
    PET = "寵物"
    HOUSEHOLD = "家庭"
    BILLS = "帳單"
    LODGING = "住宿"
    OTHER = "其他"


class ClassificationSource(str, Enum):
    """Which stage produced a classification."""
    RULE = "rule"          # Product gate rejected the text
    LOCAL = "local"        # Keyword dictionary
    AI = "ai"              # Remote zero-shot model
    UNKNOWN = "unknown"    # Nothing to classify
    ERROR = "error"        # Classification raised; item kept with defaults


class OutcomeStatus(str, Enum):
    """Whether a classification ran the intended path."""
    OK = "ok"
    DEGRADED = "degraded"


# =============================================================================
# RESULTS
# =============================================================================

class CategoryCandidate(BaseModel):
    """One ranked suggestion the user can pick from."""

    category: Category
    score: float = Field(ge=0.0, le=1.0)


class ClassificationResult(BaseModel):
    """
    Result of classifying one text.

    Produced fresh per input and never persisted by this package.
    """

    is_product: bool = Field(
        ...,
        description="False when the text is receipt boilerplate rather than an item"
    )
    category: Category = Field(
        default=Category.OTHER,
        description="Resolved spending category"
    )
    confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Heuristic trust in the category, not a probability"
    )
    source: ClassificationSource = Field(
        default=ClassificationSource.UNKNOWN,
        description="Stage that decided"
    )
    reason: Optional[str] = Field(
        default=None,
        description="Why the text was rejected or degraded"
    )

    # Hints for the boundary layer
    need_user: bool = Field(
        default=False,
        description="True when the user should pick the category"
    )
    candidates: list[CategoryCandidate] = Field(
        default_factory=list,
        description="Top ranked non-OTHER suggestions when need_user is set"
    )


class ClassificationOutcome(BaseModel):
    """
    Tagged classification outcome used inside the pipeline.

    A degraded outcome still carries a usable result; the reason says
    which stage was skipped or failed. Public entry points return
    ``outcome.result`` only.
    """

    status: OutcomeStatus
    result: ClassificationResult
    reason: Optional[str] = None

    @classmethod
    def ok(cls, result: ClassificationResult) -> "ClassificationOutcome":
        return cls(status=OutcomeStatus.OK, result=result)

    @classmethod
    def degraded(
        cls,
        result: ClassificationResult,
        reason: str,
    ) -> "ClassificationOutcome":
        return cls(status=OutcomeStatus.DEGRADED, result=result, reason=reason)

    @property
    def is_degraded(self) -> bool:
        return self.status == OutcomeStatus.DEGRADED


class LabelScore(BaseModel):
    """A raw label/score pair as ranked by the zero-shot model."""

    label: str
    score: float


class ZeroShotResult(BaseModel):
    """
    Top label from the remote zero-shot classifier.

    ``score == 0`` means "no signal", never a confident negative.
    """

    label: str = Field(default=Category.OTHER.value)
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    ranking: list[LabelScore] = Field(default_factory=list)
    cached: bool = False
    degraded: bool = False
    reason: Optional[str] = None

    @classmethod
    def neutral(cls, reason: str) -> "ZeroShotResult":
        """Fallback used whenever the remote model gave no answer."""
        return cls(
            label=Category.OTHER.value,
            score=0.0,
            degraded=True,
            reason=reason,
        )


class UnclassifiedNote(BaseModel):
    """
    A note the classifier could not place.

    Collected per user so the keyword dictionaries can be extended later.
    """

    user_id: int
    text: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
