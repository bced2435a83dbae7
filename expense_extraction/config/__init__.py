"""Configuration package."""

from expense_extraction.config.settings import (
    AppSettings,
    CircuitBreakerSettings,
    FxSettings,
    GoogleSheetsSettings,
    Settings,
    ZeroShotSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CircuitBreakerSettings",
    "FxSettings",
    "GoogleSheetsSettings",
    "Settings",
    "ZeroShotSettings",
    "get_settings",
    "validate_all_settings",
]
