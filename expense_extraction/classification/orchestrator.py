"""
Classification Orchestrator

Decides the category of a piece of text by escalating through stages:

    1. Product gate        - reject receipt boilerplate        (source=rule)
    2. Keyword dictionary  - confident local hit               (source=local)
    3. Remote zero-shot    - only for what is still unresolved (source=ai)

DESIGN DECISION: The remote model is an optional improvement, never a
dependency. If it is unavailable the local result is returned and the
outcome is tagged degraded; callers still get a usable answer.

Low-confidence OTHER results are recorded per user so the dictionaries
can grow. Recording is best effort and can never fail a classification.
"""

import asyncio
from typing import Optional, Sequence

import structlog

from expense_extraction.audit.logger import AuditLogger
from expense_extraction.classification.rules import (
    LookupResult,
    RuleClassifier,
    refine_dining,
)
from expense_extraction.models.classification import (
    Category,
    CategoryCandidate,
    ClassificationOutcome,
    ClassificationResult,
    ClassificationSource,
    ZeroShotResult,
)
from expense_extraction.parsing.normalizer import match_key
from expense_extraction.services.storage.interface import UnclassifiedNoteStore
from expense_extraction.services.zero_shot.huggingface_service import (
    RemoteZeroShotClassifier,
)


logger = structlog.get_logger(__name__)

# BEVERAGE and FOOD are derived locally from DINING, never asked for remotely
REMOTE_LABELS: tuple[str, ...] = tuple(
    category.value
    for category in Category
    if category not in (Category.BEVERAGE, Category.FOOD)
)
_REMOTE_LABEL_SET = frozenset(REMOTE_LABELS)

MAX_USER_CANDIDATES = 3
UNCLASSIFIED_CONFIDENCE = 0.5


class ClassificationOrchestrator:
    """
    Rule, local and remote classification in one place.

    IMPORTANT BOUNDARIES:
    1. Rejected text never reaches the remote model
    2. Remote calls in a batch are bounded by ``batch_size``
    3. Public methods return plain ``ClassificationResult`` values
    """

    def __init__(
        self,
        rules: Optional[RuleClassifier] = None,
        remote: Optional[RemoteZeroShotClassifier] = None,
        note_store: Optional[UnclassifiedNoteStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        local_confidence_threshold: float = 0.7,
        hybrid_confidence_threshold: float = 0.8,
        ai_accept_threshold: float = 0.5,
        batch_size: int = 5,
        batch_delay_seconds: float = 1.0,
    ):
        self._rules = rules or RuleClassifier()
        self._remote = remote
        self._note_store = note_store
        self._audit = audit_logger
        self._local_threshold = local_confidence_threshold
        self._hybrid_threshold = hybrid_confidence_threshold
        self._accept_threshold = ai_accept_threshold
        self._batch_size = max(1, batch_size)
        self._batch_delay = batch_delay_seconds

    # =========================================================================
    # STAGES
    # =========================================================================

    @staticmethod
    def _local_result(lookup: LookupResult) -> ClassificationResult:
        return ClassificationResult(
            is_product=True,
            category=lookup.category,
            confidence=lookup.confidence,
            source=ClassificationSource.LOCAL,
        )

    def _resolve_locally(
        self,
        text: str,
    ) -> tuple[Optional[ClassificationOutcome], ClassificationResult]:
        """
        Run the rule and dictionary stages.

        Returns the final outcome when they are conclusive (otherwise None),
        plus the local result to fall back on.
        """
        ruled = self._rules.classify(text)
        if not ruled.is_product:
            return ClassificationOutcome.ok(ruled), ruled
        if ruled.confidence > self._local_threshold:
            return ClassificationOutcome.ok(ruled), ruled
        return None, ruled

    def _hybrid_shortcut(self, text: str) -> Optional[ClassificationResult]:
        lookup = self._rules.lookup(text)
        if lookup.confidence > self._hybrid_threshold:
            return self._local_result(lookup)
        return None

    async def _classify_remotely(
        self,
        text: str,
        fallback: ClassificationResult,
    ) -> ClassificationOutcome:
        if self._remote is None:
            zero_shot = ZeroShotResult.neutral("remote_disabled")
        else:
            zero_shot = await self._remote.classify(text, REMOTE_LABELS)

        if zero_shot.degraded:
            reason = zero_shot.reason or "remote_unavailable"
            if self._audit is not None:
                await self._audit.log_classification_degraded(text=text, reason=reason)
            return ClassificationOutcome.degraded(fallback, reason)

        key = match_key(text)
        if zero_shot.label in _REMOTE_LABEL_SET and zero_shot.score >= self._accept_threshold:
            category = Category(zero_shot.label)
            if category == Category.DINING:
                category = refine_dining(key)
            return ClassificationOutcome.ok(ClassificationResult(
                is_product=True,
                category=category,
                confidence=zero_shot.score,
                source=ClassificationSource.AI,
            ))

        candidates: list[CategoryCandidate] = []
        for entry in zero_shot.ranking:
            if entry.label not in _REMOTE_LABEL_SET or entry.label == Category.OTHER.value:
                continue
            category = Category(entry.label)
            if category == Category.DINING:
                category = refine_dining(key)
            candidates.append(CategoryCandidate(category=category, score=entry.score))
            if len(candidates) == MAX_USER_CANDIDATES:
                break

        return ClassificationOutcome.ok(ClassificationResult(
            is_product=True,
            category=Category.OTHER,
            confidence=zero_shot.score,
            source=ClassificationSource.AI,
            reason="low_confidence",
            need_user=True,
            candidates=candidates,
        ))

    async def _record_if_unclassified(
        self,
        text: str,
        result: ClassificationResult,
        user_id: Optional[int],
    ) -> None:
        """Best-effort side effect; failures are logged and dropped."""
        if user_id is None or self._note_store is None:
            return
        if result.category != Category.OTHER or result.confidence >= UNCLASSIFIED_CONFIDENCE:
            return
        try:
            await self._note_store.record(user_id, text)
        except Exception as e:
            logger.warning(
                "unclassified_note_record_failed",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        if self._audit is not None:
            await self._audit.log_unclassified_note_recorded(user_id=user_id, text=text)

    async def _escalate(
        self,
        text: str,
        fallback: ClassificationResult,
        user_id: Optional[int],
    ) -> ClassificationOutcome:
        outcome = await self._classify_remotely(text, fallback)
        await self._record_if_unclassified(text, outcome.result, user_id)
        return outcome

    @staticmethod
    def _error_result(text: str, error: BaseException) -> ClassificationResult:
        logger.error(
            "classification_failed",
            text=text[:80],
            error=str(error),
            error_type=type(error).__name__,
        )
        return ClassificationResult(
            is_product=True,
            category=Category.OTHER,
            confidence=0.0,
            source=ClassificationSource.ERROR,
            reason=str(error),
        )

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def classify_outcome(
        self,
        text: str,
        user_id: Optional[int] = None,
    ) -> ClassificationOutcome:
        """Classify ``text`` and keep the ok/degraded tag."""
        outcome, fallback = self._resolve_locally(text)
        if outcome is not None:
            return outcome
        return await self._escalate(text, fallback, user_id)

    async def classify(
        self,
        text: str,
        user_id: Optional[int] = None,
    ) -> ClassificationResult:
        """Full classification: gate, dictionary, then remote if needed."""
        outcome = await self.classify_outcome(text, user_id)
        return outcome.result

    async def classify_hybrid(
        self,
        text: str,
        user_id: Optional[int] = None,
    ) -> ClassificationResult:
        """
        Dictionary first, skipping the gate.

        A dictionary hit above the hybrid threshold is returned as is;
        anything else goes through ``classify``.
        """
        shortcut = self._hybrid_shortcut(text)
        if shortcut is not None:
            return shortcut
        return await self.classify(text, user_id)

    def quick_classify(self, text: str) -> ClassificationResult:
        """Local stages only. No I/O."""
        return self._rules.classify(text)

    async def classify_batch(
        self,
        texts: Sequence[str],
        user_id: Optional[int] = None,
        *,
        hybrid: bool = False,
    ) -> list[ClassificationResult]:
        """
        Classify many texts, escalating only the unresolved ones.

        Local stages run for every text first. The rest go to the remote
        model ``batch_size`` at a time, with a pause between batches.
        Results come back in input order. An exception while classifying
        one text gives that text an ERROR result instead of failing the batch.
        """
        results: list[Optional[ClassificationResult]] = [None] * len(texts)
        pending: list[tuple[int, ClassificationResult]] = []

        for index, text in enumerate(texts):
            try:
                if hybrid:
                    shortcut = self._hybrid_shortcut(text)
                    if shortcut is not None:
                        results[index] = shortcut
                        continue
                outcome, fallback = self._resolve_locally(text)
            except Exception as e:
                results[index] = self._error_result(str(text), e)
                continue
            if outcome is not None:
                results[index] = outcome.result
            else:
                pending.append((index, fallback))

        for start in range(0, len(pending), self._batch_size):
            if start > 0 and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)
            chunk = pending[start:start + self._batch_size]
            outcomes = await asyncio.gather(
                *(self._escalate(texts[index], fallback, user_id) for index, fallback in chunk),
                return_exceptions=True,
            )
            for (index, _), outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    results[index] = self._error_result(texts[index], outcome)
                else:
                    results[index] = outcome.result

        logger.debug(
            "batch_classified",
            total=len(texts),
            escalated=len(pending),
            hybrid=hybrid,
        )
        return [result for result in results if result is not None]
