"""
Configuration Management for Expense Extraction

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Components receive plain values through their constructors; only the
factory in ``expense_extraction.pipeline`` reads settings. Tests can then
build any component without touching the environment.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ZERO_SHOT_MODEL = "MoritzLaurer/mDeBERTa-v3-base-xnli-multilingual-nli-2mil7"
DEFAULT_HYPOTHESIS_TEMPLATE = "這段描述屬於「{}」。"


class ZeroShotSettings(BaseSettings):
    """Hugging Face zero-shot classification configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HF_",
        extra="ignore"
    )

    api_token: Optional[str] = Field(
        default=None,
        description="Hugging Face inference API token (remote stage is skipped without one)"
    )
    model_name: str = Field(
        default=DEFAULT_ZERO_SHOT_MODEL,
        description="NLI model used for zero-shot classification"
    )
    api_base_url: str = Field(
        default="https://router.huggingface.co/hf-inference/models",
        description="Inference endpoint prefix; the model name is appended"
    )
    hypothesis_template: str = Field(
        default=DEFAULT_HYPOTHESIS_TEMPLATE,
        description="Hypothesis template, must contain '{}'"
    )

    # Transport
    timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request timeout"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per classification before degrading"
    )
    backoff_base_seconds: float = Field(
        default=0.3,
        ge=0.0,
        description="Exponential backoff base (0.3s, 0.6s, ...)"
    )

    # Cache
    cache_ttl_seconds: float = Field(
        default=300.0,
        gt=0,
        description="How long a zero-shot result stays valid"
    )
    cache_max_entries: int = Field(
        default=300,
        ge=1,
        description="Size above which expired entries are swept"
    )

    # Rate limiting
    batch_size: int = Field(
        default=5,
        ge=1,
        description="Remote classifications issued concurrently per batch"
    )
    batch_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Pause between remote batches"
    )

    @field_validator('hypothesis_template')
    @classmethod
    def validate_template(cls, v: str) -> str:
        """Fall back to the default template when '{}' is missing."""
        if "{}" not in v:
            return DEFAULT_HYPOTHESIS_TEMPLATE
        return v


class CircuitBreakerSettings(BaseSettings):
    """Circuit breaker shared by external dependencies."""

    model_config = SettingsConfigDict(
        env_prefix="CIRCUIT_",
        extra="ignore"
    )

    failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive failures before the circuit opens"
    )
    cooldown_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="How long an open circuit rejects calls"
    )


class FxSettings(BaseSettings):
    """Currency conversion provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FX_",
        extra="ignore"
    )

    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Per-provider request timeout"
    )
    cache_ttl_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How long a fetched rate is reused"
    )
    cache_max_entries: int = Field(
        default=300,
        ge=1,
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage for unclassified notes."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    unclassified_sheet_name: str = Field(
        default="UnclassifiedNotes",
        description="Name of the sheet collecting notes the classifier could not place"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for structlog's stdlib integration"
    )

    # Receipt parsing
    money_max: float = Field(
        default=20000.0,
        gt=0,
        description="Exclusive upper bound for a plausible line or total amount"
    )
    reconciliation_tolerance: float = Field(
        default=2.0,
        ge=0,
        description="Allowed gap between printed total and item sum"
    )
    missing_items_ratio: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Item sum below this share of the total flags missing items"
    )

    # Classification thresholds
    local_confidence_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Local dictionary confidence that skips the remote stage"
    )
    hybrid_confidence_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Local confidence that short-circuits the hybrid entry point"
    )
    ai_accept_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum zero-shot score to accept a remote label"
    )

    # Spoken input
    spoken_amount_max: float = Field(
        default=999999.0,
        gt=0,
        description="Largest amount accepted from a spoken utterance"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def zero_shot(self) -> ZeroShotSettings:
        return ZeroShotSettings()

    @property
    def circuit_breaker(self) -> CircuitBreakerSettings:
        return CircuitBreakerSettings()

    @property
    def fx(self) -> FxSettings:
        return FxSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool | str]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for failures.
    Useful for startup checks.
    """
    results: dict[str, bool | str] = {}

    settings = get_settings()

    for name in ("zero_shot", "circuit_breaker", "fx", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    if results.get("zero_shot") and not settings.zero_shot.api_token:
        results["zero_shot_remote_enabled"] = False

    return results
