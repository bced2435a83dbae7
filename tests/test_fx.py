"""Tests for the currency conversion service."""

import httpx
import pytest

from expense_extraction.services.fx import (
    CurrencyConverter,
    FxProviderError,
    InvalidCurrencyError,
)
from expense_extraction.services.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    ResilientCaller,
    TTLCache,
)


CONVERT_URL = "https://api.exchangerate.host/convert"
LATEST_URL = "https://api.exchangerate.host/latest"
OPEN_ER_URL = "https://open.er-api.com/v6/latest/USD"
JSDELIVR_URL = "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest/v1/currencies/usd.json"


class ProviderRoutes:
    """MockTransport handler answering by URL; unknown URLs get a 503."""

    def __init__(self, routes: dict[str, tuple[int, object]]):
        self.routes = routes
        self.requested: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        self.requested.append(url)
        status, body = self.routes.get(url, (503, None))
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)


def make_converter(routes, clock, failure_threshold=3):
    return CurrencyConverter(
        caller=ResilientCaller(
            TTLCache(ttl_seconds=60, clock=clock),
            CircuitBreaker(
                CurrencyConverter.SERVICE_NAME,
                failure_threshold=failure_threshold,
                cooldown_seconds=30,
                clock=clock,
            ),
        ),
        client=httpx.AsyncClient(transport=httpx.MockTransport(routes)),
    )


class TestCurrencyConverter:
    """Tests for CurrencyConverter.convert()."""

    @pytest.mark.asyncio
    async def test_first_provider(self, clock):
        """Test a conversion answered by the first provider."""
        routes = ProviderRoutes({CONVERT_URL: (200, {"info": {"rate": 31.5}})})
        converter = make_converter(routes, clock)

        conversion = await converter.convert("usd", "twd", amount=10)

        assert conversion.from_currency == "USD"
        assert conversion.to_currency == "TWD"
        assert conversion.rate == 31.5
        assert conversion.result == 315
        assert conversion.provider == "exchangerate.host/convert"
        assert not conversion.cached
        assert routes.requested == [CONVERT_URL]

    @pytest.mark.asyncio
    async def test_rate_only(self, clock):
        """Test that a missing amount gives the rate with no result."""
        routes = ProviderRoutes({CONVERT_URL: (200, {"info": {"rate": 31.5}})})
        converter = make_converter(routes, clock)

        conversion = await converter.convert("USD", "TWD")

        assert conversion.rate == 31.5
        assert conversion.amount is None
        assert conversion.result is None

    @pytest.mark.asyncio
    async def test_falls_back_in_order(self, clock):
        """Test that failing providers are skipped in order."""
        routes = ProviderRoutes({
            CONVERT_URL: (200, {"info": {"rate": 0}}),
            LATEST_URL: (200, {"rates": {}}),
            OPEN_ER_URL: (200, {"result": "success", "rates": {"TWD": 32.0}}),
        })
        converter = make_converter(routes, clock)

        conversion = await converter.convert("USD", "TWD", amount=2)

        assert conversion.rate == 32.0
        assert conversion.result == 64
        assert conversion.provider == "open.er-api.com"
        assert routes.requested == [CONVERT_URL, LATEST_URL, OPEN_ER_URL]

    @pytest.mark.asyncio
    async def test_last_provider(self, clock):
        """Test the jsDelivr provider with lower-case keys."""
        routes = ProviderRoutes({JSDELIVR_URL: (200, {"usd": {"twd": 32.1}})})
        converter = make_converter(routes, clock)

        conversion = await converter.convert("USD", "TWD")

        assert conversion.rate == 32.1
        assert conversion.provider == "jsdelivr-currency-api"

    @pytest.mark.asyncio
    async def test_all_providers_fail(self, clock):
        """Test that every failure is reported."""
        routes = ProviderRoutes({OPEN_ER_URL: (200, {"result": "error"})})
        converter = make_converter(routes, clock)

        with pytest.raises(FxProviderError) as exc_info:
            await converter.convert("USD", "TWD")

        failures = exc_info.value.failures
        assert len(failures) == 4
        assert failures["open.er-api.com"] == "no_rate"
        assert failures["exchangerate.host/convert"].startswith("HTTPStatusError")

    @pytest.mark.asyncio
    async def test_cached_second_call(self, clock):
        """Test that a repeated pair is answered from the cache."""
        routes = ProviderRoutes({CONVERT_URL: (200, {"info": {"rate": 31.5}})})
        converter = make_converter(routes, clock)

        await converter.convert("USD", "TWD")
        conversion = await converter.convert("usd", "twd", amount=1)

        assert conversion.cached
        assert conversion.provider == "cache"
        assert conversion.rate == 31.5
        assert len(routes.requested) == 1

    @pytest.mark.asyncio
    async def test_cache_expires(self, clock):
        """Test that an expired rate is fetched again."""
        routes = ProviderRoutes({CONVERT_URL: (200, {"info": {"rate": 31.5}})})
        converter = make_converter(routes, clock)

        await converter.convert("USD", "TWD")
        clock.advance(61)
        conversion = await converter.convert("USD", "TWD")

        assert not conversion.cached
        assert len(routes.requested) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("from_currency, to_currency, amount, message", [
        ("US", "TWD", None, "invalid_currency_code"),
        ("USD", "TW1", None, "invalid_currency_code"),
        ("", "TWD", None, "invalid_currency_code"),
        ("USD", "TWD", float("nan"), "invalid_amount"),
        ("USD", "TWD", float("inf"), "invalid_amount"),
    ])
    async def test_invalid_input(self, clock, from_currency, to_currency, amount, message):
        """Test that bad input is rejected before any request."""
        routes = ProviderRoutes({})
        converter = make_converter(routes, clock)

        with pytest.raises(InvalidCurrencyError, match=message):
            await converter.convert(from_currency, to_currency, amount=amount)

        assert routes.requested == []

    @pytest.mark.asyncio
    async def test_open_circuit(self, clock):
        """Test that an open circuit fails fast without requests."""
        routes = ProviderRoutes({})
        converter = make_converter(routes, clock, failure_threshold=1)

        with pytest.raises(FxProviderError):
            await converter.convert("USD", "TWD")
        requested = len(routes.requested)

        with pytest.raises(CircuitOpenError):
            await converter.convert("USD", "JPY")

        assert len(routes.requested) == requested
        await converter.aclose()
