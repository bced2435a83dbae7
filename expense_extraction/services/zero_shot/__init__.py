"""Remote zero-shot classification service."""

from expense_extraction.services.zero_shot.huggingface_service import (
    DEFAULT_API_BASE_URL,
    RemoteZeroShotClassifier,
    ZeroShotError,
    ZeroShotResponseError,
    parse_zero_shot_response,
)

__all__ = [
    "DEFAULT_API_BASE_URL",
    "RemoteZeroShotClassifier",
    "ZeroShotError",
    "ZeroShotResponseError",
    "parse_zero_shot_response",
]
