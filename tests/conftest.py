"""
Shared fixtures.

No test talks to the network: remote services are either faked here or
driven through ``httpx.MockTransport``. Clocks are fake and every delay
is zero.
"""

import asyncio
from typing import Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from expense_extraction.audit import AuditLogger
from expense_extraction.classification import ClassificationOrchestrator
from expense_extraction.models.classification import LabelScore, ZeroShotResult
from expense_extraction.services.storage import InMemoryUnclassifiedNoteStore


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeZeroShot:
    """
    Stand-in for ``RemoteZeroShotClassifier``.

    Answers from a text -> ranking table; unknown texts get a degraded
    neutral result. Tracks how many calls were in flight at once.
    """

    def __init__(self, answers: Optional[dict[str, list[tuple[str, float]]]] = None):
        self.answers = answers or {}
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail_for: set[str] = set()

    async def classify(self, text: str, labels: Sequence[str], **kwargs) -> ZeroShotResult:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if text in self.fail_for:
                raise RuntimeError(f"boom: {text}")
            ranking = self.answers.get(text)
            if ranking is None:
                return ZeroShotResult.neutral("remote_error: HTTPStatusError")
            scores = [LabelScore(label=label, score=score) for label, score in ranking]
            return ZeroShotResult(label=scores[0].label, score=scores[0].score, ranking=scores)
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_remote():
    return FakeZeroShot()


@pytest.fixture
def note_store():
    return InMemoryUnclassifiedNoteStore()


@pytest.fixture
def audit_logger():
    """AuditLogger whose async methods are recorded instead of logged."""
    audit = MagicMock(spec=AuditLogger)
    for name in (
        "log",
        "log_receipt_parsed",
        "log_reconciliation_mismatch",
        "log_ocr_document_processed",
        "log_classification_degraded",
        "log_unclassified_note_recorded",
        "log_external_service_error",
    ):
        setattr(audit, name, AsyncMock())
    return audit


@pytest.fixture
def orchestrator(fake_remote, note_store, audit_logger):
    return ClassificationOrchestrator(
        remote=fake_remote,
        note_store=note_store,
        audit_logger=audit_logger,
        batch_size=2,
        batch_delay_seconds=0,
    )
