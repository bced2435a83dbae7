"""Currency conversion service."""

from expense_extraction.services.fx.exchange_service import (
    CurrencyConverter,
    FxError,
    FxProviderError,
    InvalidCurrencyError,
    RateQuote,
)

__all__ = [
    "CurrencyConverter",
    "FxError",
    "FxProviderError",
    "InvalidCurrencyError",
    "RateQuote",
]
