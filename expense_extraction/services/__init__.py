"""Services package."""

from expense_extraction.services.fx import (
    CurrencyConverter,
    FxError,
    FxProviderError,
    InvalidCurrencyError,
)
from expense_extraction.services.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    ResilienceError,
    ResilientCaller,
    TTLCache,
)
from expense_extraction.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsUnclassifiedNoteStore,
    InMemoryUnclassifiedNoteStore,
    StorageConnectionError,
    StorageError,
    UnclassifiedNoteStore,
)
from expense_extraction.services.zero_shot import (
    RemoteZeroShotClassifier,
    ZeroShotError,
)

__all__ = [
    # FX
    "CurrencyConverter",
    "FxError",
    "FxProviderError",
    "InvalidCurrencyError",
    # Resilience
    "CircuitBreaker",
    "CircuitOpenError",
    "ResilienceError",
    "ResilientCaller",
    "TTLCache",
    # Storage services
    "GoogleSheetsClient",
    "GoogleSheetsUnclassifiedNoteStore",
    "InMemoryUnclassifiedNoteStore",
    "StorageConnectionError",
    "StorageError",
    "UnclassifiedNoteStore",
    # Zero-shot
    "RemoteZeroShotClassifier",
    "ZeroShotError",
]
