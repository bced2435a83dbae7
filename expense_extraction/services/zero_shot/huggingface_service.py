"""
Zero-Shot Classification using the Hugging Face Inference API

DESIGN DECISION: We use an NLI zero-shot model because:
1. Categories change without retraining anything
2. The multilingual model handles Traditional Chinese item names
3. Scores are comparable across labels, so a threshold is meaningful

This service handles:
1. Building the inference request (labels, hypothesis template)
2. Caching results per (text, labels, template, multi_label)
3. Retrying transient failures with exponential backoff
4. Circuit breaking when the endpoint keeps failing

CRITICAL: ``classify`` never raises. Every failure becomes a degraded,
neutral result (OTHER, score 0) and the caller falls back to local rules.
"""

from typing import Any, Optional, Sequence

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_extraction.config.settings import (
    DEFAULT_HYPOTHESIS_TEMPLATE,
    DEFAULT_ZERO_SHOT_MODEL,
)
from expense_extraction.models.classification import LabelScore, ZeroShotResult
from expense_extraction.parsing.normalizer import normalize
from expense_extraction.services.resilience import CircuitBreaker, TTLCache


logger = structlog.get_logger(__name__)

DEFAULT_API_BASE_URL = "https://router.huggingface.co/hf-inference/models"


class ZeroShotError(Exception):
    """Base exception for zero-shot classification errors."""
    pass


class ZeroShotResponseError(ZeroShotError):
    """The endpoint answered with a body we could not read."""
    pass


def parse_zero_shot_response(payload: Any) -> list[LabelScore]:
    """
    Read a zero-shot response into a ranking sorted by score (descending).

    Accepted shapes:
        {"labels": [...], "scores": [...]}
        [{"labels": [...], "scores": [...]}]
        [{"label": ..., "score": ...}, ...]

    Raises:
        ZeroShotResponseError: For any other shape or an empty ranking
    """
    if isinstance(payload, list) and payload and isinstance(payload[0], dict) and "labels" in payload[0]:
        payload = payload[0]

    pairs: list[tuple[Any, Any]]
    if isinstance(payload, dict) and "labels" in payload and "scores" in payload:
        labels, scores = payload["labels"], payload["scores"]
        if not isinstance(labels, list) or not isinstance(scores, list):
            raise ZeroShotResponseError("labels and scores must be lists")
        pairs = list(zip(labels, scores))
    elif isinstance(payload, list) and all(
        isinstance(entry, dict) and "label" in entry and "score" in entry
        for entry in payload
    ):
        pairs = [(entry["label"], entry["score"]) for entry in payload]
    else:
        raise ZeroShotResponseError(f"Unexpected response shape: {type(payload).__name__}")

    try:
        ranking = [
            LabelScore(label=str(label), score=min(max(float(score), 0.0), 1.0))
            for label, score in pairs
        ]
    except (TypeError, ValueError) as e:
        raise ZeroShotResponseError(f"Unreadable score: {e}") from e

    if not ranking:
        raise ZeroShotResponseError("Empty ranking")

    ranking.sort(key=lambda item: item.score, reverse=True)
    return ranking


class RemoteZeroShotClassifier:
    """
    Zero-shot text classifier backed by the Hugging Face Inference API.

    IMPORTANT BOUNDARIES:
    1. This service ONLY ranks labels - it does not decide categories
    2. Remote failures are reported as degraded results, never as exceptions
    3. Cache and circuit breaker are injected so tests control them
    """

    SERVICE_NAME = "huggingface_zero_shot"

    def __init__(
        self,
        api_token: Optional[str],
        model_name: str = DEFAULT_ZERO_SHOT_MODEL,
        api_base_url: str = DEFAULT_API_BASE_URL,
        hypothesis_template: str = DEFAULT_HYPOTHESIS_TEMPLATE,
        timeout_seconds: float = 20.0,
        max_attempts: int = 3,
        backoff_base_seconds: float = 0.3,
        cache: Optional[TTLCache[ZeroShotResult]] = None,
        breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_token = api_token
        self._url = f"{api_base_url.rstrip('/')}/{model_name}"
        self._template = hypothesis_template
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base_seconds
        self._cache = cache if cache is not None else TTLCache(ttl_seconds=300.0)
        self._breaker = breaker or CircuitBreaker(self.SERVICE_NAME)
        self._client = client
        self._owns_client = client is None

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _resolve_template(self, template: Optional[str]) -> str:
        if template and "{}" in template:
            return template
        return self._template

    @staticmethod
    def _log_attempt_failure(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "zero_shot_attempt_failed",
            attempt=retry_state.attempt_number,
            error=str(error),
        )

    async def _post(self, body: dict) -> Any:
        """POST with retries; returns the decoded JSON body."""
        headers = {
            "Authorization": f"Bearer {self._api_token}",
            "Content-Type": "application/json",
        }
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff_base),
            retry=retry_if_exception_type(httpx.HTTPError),
            before_sleep=self._log_attempt_failure,
            reraise=True,
        ):
            with attempt:
                response = await self._get_client().post(
                    self._url,
                    json=body,
                    headers=headers,
                    timeout=self._timeout,
                )
                response.raise_for_status()
        return response.json()

    async def classify(
        self,
        text: Optional[str],
        labels: Sequence[str],
        *,
        hypothesis_template: Optional[str] = None,
        multi_label: bool = False,
    ) -> ZeroShotResult:
        """
        Rank ``labels`` for ``text``.

        Returns:
            ZeroShotResult with the top label, or a degraded neutral result
            (``degraded=True``) when the remote model could not answer
        """
        inputs = normalize(text)
        candidate_labels = [label.strip() for label in labels if label and label.strip()]
        template = self._resolve_template(hypothesis_template)

        if not inputs:
            return ZeroShotResult.neutral("empty_text")
        if not candidate_labels:
            return ZeroShotResult.neutral("no_labels")
        if not self._api_token:
            return ZeroShotResult.neutral("missing_api_token")

        key = (inputs, tuple(candidate_labels), template, multi_label)
        cached = self._cache.get(key)
        if cached is not None:
            return cached.model_copy(update={"cached": True})

        if not self._breaker.allow_request():
            logger.info(
                "zero_shot_skipped",
                reason="circuit_open",
                retry_after=self._breaker.seconds_until_retry(),
            )
            return ZeroShotResult.neutral("circuit_open")

        body = {
            "inputs": inputs,
            "parameters": {
                "candidate_labels": candidate_labels,
                "multi_label": multi_label,
                "hypothesis_template": template,
            },
            "options": {
                "wait_for_model": True,
                "use_cache": True,
            },
        }

        try:
            payload = await self._post(body)
            ranking = parse_zero_shot_response(payload)
        except (httpx.HTTPError, RetryError, ValueError, ZeroShotError) as e:
            self._breaker.record_failure()
            logger.error(
                "zero_shot_degraded",
                error=str(e),
                error_type=type(e).__name__,
                text=inputs[:80],
                failures=self._breaker.failure_count,
            )
            return ZeroShotResult.neutral(f"remote_error: {type(e).__name__}")

        self._breaker.record_success()
        top = ranking[0]
        result = ZeroShotResult(label=top.label, score=top.score, ranking=ranking)
        self._cache.set(key, result)
        return result
