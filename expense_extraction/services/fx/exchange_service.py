"""
Currency Conversion Service

DESIGN DECISION: Free public rate providers are tried in a fixed order
and the first usable rate wins. None of them is reliable enough alone,
and all of them are rate limited, so results are cached for a minute and
the whole chain sits behind a circuit breaker.

Provider chain:
1. exchangerate.host /convert
2. exchangerate.host /latest
3. open.er-api.com
4. jsDelivr currency-api
"""

import math
import re
from typing import Any, Awaitable, Callable, NamedTuple, Optional

import httpx
import structlog

from expense_extraction.models.fx import FxConversion
from expense_extraction.services.resilience import (
    CircuitBreaker,
    ResilientCaller,
    TTLCache,
)


logger = structlog.get_logger(__name__)

_CURRENCY_CODE = re.compile(r"^[A-Za-z]{3}$")


class FxError(Exception):
    """Base exception for currency conversion errors."""
    pass


class InvalidCurrencyError(FxError):
    """Currency code or amount is not usable."""
    pass


class FxProviderError(FxError):
    """Every rate provider failed."""

    def __init__(self, message: str, failures: Optional[dict[str, str]] = None):
        self.failures = failures or {}
        super().__init__(message)


class RateQuote(NamedTuple):
    rate: float
    provider: str


def _positive_rate(value: Any) -> Optional[float]:
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if math.isfinite(rate) and rate > 0:
        return rate
    return None


class CurrencyConverter:
    """
    Currency conversion over a chain of public rate providers.

    Usage:
        converter = CurrencyConverter()
        conversion = await converter.convert("usd", "twd", amount=10)
    """

    SERVICE_NAME = "fx_rates"

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        caller: Optional[ResilientCaller[RateQuote]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._timeout = timeout_seconds
        self._caller = caller or ResilientCaller(
            TTLCache(ttl_seconds=60.0),
            CircuitBreaker(self.SERVICE_NAME),
        )
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, url: str, params: Optional[dict] = None) -> Any:
        response = await self._get_client().get(url, params=params, timeout=self._timeout)
        response.raise_for_status()
        return response.json()

    # =========================================================================
    # PROVIDERS
    # =========================================================================

    async def _via_exchangerate_host_convert(self, base: str, target: str) -> Optional[float]:
        data = await self._get_json(
            "https://api.exchangerate.host/convert",
            params={"from": base, "to": target, "amount": 1},
        )
        info = data.get("info") or {}
        return _positive_rate(info.get("rate", data.get("result")))

    async def _via_exchangerate_host_latest(self, base: str, target: str) -> Optional[float]:
        data = await self._get_json(
            "https://api.exchangerate.host/latest",
            params={"base": base, "symbols": target},
        )
        return _positive_rate((data.get("rates") or {}).get(target))

    async def _via_open_er_api(self, base: str, target: str) -> Optional[float]:
        data = await self._get_json(f"https://open.er-api.com/v6/latest/{base}")
        if data.get("result") != "success":
            return None
        return _positive_rate((data.get("rates") or {}).get(target))

    async def _via_jsdelivr(self, base: str, target: str) -> Optional[float]:
        base_lower = base.lower()
        data = await self._get_json(
            "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest"
            f"/v1/currencies/{base_lower}.json"
        )
        return _positive_rate((data.get(base_lower) or {}).get(target.lower()))

    def _providers(self) -> list[tuple[str, Callable[[str, str], Awaitable[Optional[float]]]]]:
        return [
            ("exchangerate.host/convert", self._via_exchangerate_host_convert),
            ("exchangerate.host/latest", self._via_exchangerate_host_latest),
            ("open.er-api.com", self._via_open_er_api),
            ("jsdelivr-currency-api", self._via_jsdelivr),
        ]

    async def fetch_rate(self, base: str, target: str) -> RateQuote:
        """
        Ask each provider in turn.

        Raises:
            FxProviderError: If no provider returned a usable rate
        """
        failures: dict[str, str] = {}
        for provider, fetch in self._providers():
            try:
                rate = await fetch(base, target)
            except (httpx.HTTPError, ValueError, AttributeError) as e:
                failures[provider] = f"{type(e).__name__}: {e}"
                logger.debug("fx_provider_failed", provider=provider, error=str(e))
                continue
            if rate is not None:
                return RateQuote(rate=rate, provider=provider)
            failures[provider] = "no_rate"

        logger.warning("fx_all_providers_failed", base=base, target=target, failures=failures)
        raise FxProviderError(f"No provider returned a rate for {base}->{target}", failures)

    async def convert(
        self,
        from_currency: str,
        to_currency: str,
        amount: Optional[float] = None,
    ) -> FxConversion:
        """
        Convert ``amount`` (or just quote the rate) from one currency to another.

        Raises:
            InvalidCurrencyError: Malformed currency code or amount
            CircuitOpenError: Too many recent failures
            FxProviderError: Every provider failed
        """
        if not _CURRENCY_CODE.match(from_currency or "") or not _CURRENCY_CODE.match(to_currency or ""):
            raise InvalidCurrencyError("invalid_currency_code")
        if amount is not None and not math.isfinite(amount):
            raise InvalidCurrencyError("invalid_amount")

        base = from_currency.upper()
        target = to_currency.upper()

        quote, cached = await self._caller.call(
            f"{base}_{target}",
            lambda: self.fetch_rate(base, target),
        )

        return FxConversion(
            from_currency=base,
            to_currency=target,
            rate=quote.rate,
            amount=amount,
            result=amount * quote.rate if amount is not None else None,
            provider="cache" if cached else quote.provider,
            cached=cached,
        )
