"""Tests for the TTL cache, circuit breaker and resilient caller."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from expense_extraction.services.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    ResilientCaller,
    TTLCache,
)


class TestTTLCache:
    """Tests for TTLCache."""

    def test_get_within_ttl(self, clock):
        """Test that a fresh entry is returned."""
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("USD_TWD", 31.5)
        clock.advance(59)
        assert cache.get("USD_TWD") == 31.5

    def test_expires_after_ttl(self, clock):
        """Test that an expired entry is dropped on read."""
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("USD_TWD", 31.5)
        clock.advance(60)
        assert cache.get("USD_TWD") is None
        assert len(cache) == 0

    def test_sweeps_when_over_size(self, clock):
        """Test that expired entries are swept once the size bound is passed."""
        cache = TTLCache(ttl_seconds=10, max_entries=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        clock.advance(11)
        cache.set("c", 3)
        assert len(cache) == 1
        assert cache.get("c") == 3

    def test_live_entries_not_evicted(self, clock):
        """Test that going over the size bound never drops live entries."""
        cache = TTLCache(ttl_seconds=10, max_entries=1, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        assert len(cache) == 2

    def test_clear(self, clock):
        """Test that clear empties the cache."""
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        cache.clear()
        assert cache.get("a") is None


class TestCircuitBreaker:
    """Tests for CircuitBreaker."""

    def test_opens_at_threshold(self, clock):
        """Test that the circuit opens after the configured failures."""
        on_open = MagicMock()
        breaker = CircuitBreaker("svc", failure_threshold=3, cooldown_seconds=30, clock=clock, on_open=on_open)

        breaker.record_failure()
        breaker.record_failure()
        assert breaker.allow_request()
        breaker.record_failure()

        assert breaker.circuit_open
        assert not breaker.allow_request()
        on_open.assert_called_once_with("svc", 3)

    def test_on_open_called_once_per_trip(self, clock):
        """Test that further failures while open don't re-announce the trip."""
        on_open = MagicMock()
        breaker = CircuitBreaker("svc", failure_threshold=1, clock=clock, on_open=on_open)
        breaker.record_failure()
        breaker.record_failure()
        assert on_open.call_count == 1

    def test_trial_call_after_cooldown(self, clock):
        """Test that a call is allowed once the cooldown has passed."""
        breaker = CircuitBreaker("svc", failure_threshold=1, cooldown_seconds=30, clock=clock)
        breaker.record_failure()

        clock.advance(10)
        assert not breaker.allow_request()
        assert breaker.seconds_until_retry() == pytest.approx(20)

        clock.advance(20)
        assert breaker.allow_request()

    def test_success_resets(self, clock):
        """Test that a success closes the circuit and clears the count."""
        breaker = CircuitBreaker("svc", failure_threshold=1, clock=clock)
        breaker.record_failure()
        breaker.record_success()

        assert not breaker.circuit_open
        assert breaker.failure_count == 0
        assert breaker.last_failure_time is None
        assert breaker.seconds_until_retry() == 0.0

    def test_failed_trial_call_reopens(self, clock):
        """Test that a failing trial call restarts the cooldown."""
        breaker = CircuitBreaker("svc", failure_threshold=1, cooldown_seconds=30, clock=clock)
        breaker.record_failure()
        clock.advance(30)
        assert breaker.allow_request()

        breaker.record_failure()
        assert not breaker.allow_request()


class TestResilientCaller:
    """Tests for ResilientCaller."""

    @pytest.mark.asyncio
    async def test_cache_hit_skips_fetch(self, clock):
        """Test that a cached value is returned without calling fetch."""
        caller = ResilientCaller(TTLCache(ttl_seconds=60, clock=clock), CircuitBreaker("svc", clock=clock))
        fetch = AsyncMock(return_value=31.5)

        assert await caller.call("USD_TWD", fetch) == (31.5, False)
        assert await caller.call("USD_TWD", fetch) == (31.5, True)
        fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_recorded_and_raised(self, clock):
        """Test that a failing fetch counts against the breaker and propagates."""
        breaker = CircuitBreaker("svc", failure_threshold=2, clock=clock)
        caller = ResilientCaller(TTLCache(ttl_seconds=60, clock=clock), breaker)
        fetch = AsyncMock(side_effect=ValueError("bad"))

        with pytest.raises(ValueError):
            await caller.call("k", fetch)
        assert breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_open_circuit_raises(self, clock):
        """Test that an open circuit raises without calling fetch."""
        breaker = CircuitBreaker("svc", failure_threshold=1, cooldown_seconds=30, clock=clock)
        breaker.record_failure()
        caller = ResilientCaller(TTLCache(ttl_seconds=60, clock=clock), breaker)
        fetch = AsyncMock(return_value=1)

        with pytest.raises(CircuitOpenError) as exc_info:
            await caller.call("k", fetch)

        assert exc_info.value.service == "svc"
        assert exc_info.value.retry_after == pytest.approx(30)
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_served_while_open(self, clock):
        """Test that cached values are still served with the circuit open."""
        breaker = CircuitBreaker("svc", failure_threshold=1, clock=clock)
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("k", 7)
        breaker.record_failure()
        caller = ResilientCaller(cache, breaker)

        assert await caller.call("k", AsyncMock()) == (7, True)
