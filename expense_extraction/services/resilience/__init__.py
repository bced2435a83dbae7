"""Caching and circuit breaking for external services."""

from expense_extraction.services.resilience.cache import CacheEntry, TTLCache
from expense_extraction.services.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    ResilienceError,
)
from expense_extraction.services.resilience.client import ResilientCaller

__all__ = [
    "CacheEntry",
    "CircuitBreaker",
    "CircuitOpenError",
    "ResilienceError",
    "ResilientCaller",
    "TTLCache",
]
