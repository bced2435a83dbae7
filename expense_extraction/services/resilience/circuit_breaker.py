"""
Circuit Breaker

Stops calling an external service after repeated failures and lets a
trial call through once the cooldown has passed.

States:
    closed  - calls allowed, failures counted
    open    - failure_count >= threshold and the cooldown has not elapsed
    half-open - open, but the cooldown elapsed; the next call decides

A success from any state resets the breaker.
"""

import time
from typing import Callable, Optional

import structlog


logger = structlog.get_logger(__name__)


class ResilienceError(Exception):
    """Base exception for resilience wrappers."""
    pass


class CircuitOpenError(ResilienceError):
    """The circuit is open; the call was not attempted."""

    def __init__(self, service: str, retry_after: float):
        self.service = service
        self.retry_after = retry_after
        super().__init__(
            f"Circuit open for {service}, retry in {retry_after:.1f}s"
        )


class CircuitBreaker:
    """
    Per-dependency failure counter.

    Instances are plain objects; inject a fresh one per service (and per
    test) rather than sharing module state.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        cooldown_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        on_open: Optional[Callable[[str, int], None]] = None,
    ):
        self.name = name
        self._threshold = failure_threshold
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._on_open = on_open

        self.failure_count = 0
        self.circuit_open = False
        self.last_failure_time: Optional[float] = None

    def allow_request(self) -> bool:
        """False while open and still cooling down."""
        if not self.circuit_open:
            return True
        return self.seconds_until_retry() <= 0

    def seconds_until_retry(self) -> float:
        if not self.circuit_open or self.last_failure_time is None:
            return 0.0
        elapsed = self._clock() - self.last_failure_time
        return max(0.0, self._cooldown - elapsed)

    def record_success(self) -> None:
        if self.circuit_open:
            logger.info("circuit_closed", service=self.name)
        self.failure_count = 0
        self.circuit_open = False
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self.failure_count >= self._threshold:
            was_open = self.circuit_open
            self.circuit_open = True
            if not was_open:
                logger.warning(
                    "circuit_opened",
                    service=self.name,
                    failures=self.failure_count,
                    cooldown_seconds=self._cooldown,
                )
                if self._on_open is not None:
                    self._on_open(self.name, self.failure_count)
