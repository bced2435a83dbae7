"""
Classification Package

Rule gate and keyword lookup (local, synchronous) plus the orchestrator
that escalates unresolved text to the remote zero-shot model.
"""

from expense_extraction.classification.keywords import (
    ACCOUNT_KEYWORDS,
    CATEGORY_KEYWORDS,
    DRINK_TOKENS,
    NON_PRODUCT_KEYWORDS,
    SPOKEN_CATEGORY_KEYWORDS,
)
from expense_extraction.classification.orchestrator import (
    REMOTE_LABELS,
    ClassificationOrchestrator,
)
from expense_extraction.classification.rules import (
    GateDecision,
    LookupResult,
    RuleClassifier,
    is_drink,
    refine_dining,
)

__all__ = [
    # Dictionaries
    "ACCOUNT_KEYWORDS",
    "CATEGORY_KEYWORDS",
    "DRINK_TOKENS",
    "NON_PRODUCT_KEYWORDS",
    "SPOKEN_CATEGORY_KEYWORDS",
    # Rules
    "GateDecision",
    "LookupResult",
    "RuleClassifier",
    "is_drink",
    "refine_dining",
    # Orchestration
    "REMOTE_LABELS",
    "ClassificationOrchestrator",
]
