"""
Resilient Caller

Cache first, then circuit, then the real call:

1. Fresh cache entry  -> returned, marked as cached
2. Circuit open       -> CircuitOpenError, nothing is called
3. Otherwise          -> await fetch(); success closes the circuit and
                         fills the cache, an exception counts a failure
                         and propagates
"""

from typing import Awaitable, Callable, Generic, Hashable, TypeVar

from expense_extraction.services.resilience.cache import TTLCache
from expense_extraction.services.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
)


T = TypeVar("T")


class ResilientCaller(Generic[T]):
    """Combines a ``TTLCache`` and a ``CircuitBreaker`` around one dependency."""

    def __init__(self, cache: TTLCache[T], breaker: CircuitBreaker):
        self.cache = cache
        self.breaker = breaker

    async def call(
        self,
        key: Hashable,
        fetch: Callable[[], Awaitable[T]],
    ) -> tuple[T, bool]:
        """
        Return ``(value, cached)``.

        Raises:
            CircuitOpenError: If the circuit is open
            Exception: Whatever ``fetch`` raised
        """
        cached = self.cache.get(key)
        if cached is not None:
            return cached, True

        if not self.breaker.allow_request():
            raise CircuitOpenError(self.breaker.name, self.breaker.seconds_until_retry())

        try:
            value = await fetch()
        except Exception:
            self.breaker.record_failure()
            raise

        self.breaker.record_success()
        self.cache.set(key, value)
        return value, False
