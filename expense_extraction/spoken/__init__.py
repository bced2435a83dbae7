"""Spoken expense parsing."""

from expense_extraction.spoken.parser import (
    SpokenExpenseParser,
    chinese_to_number,
    normalize_utterance,
)

__all__ = ["SpokenExpenseParser", "chinese_to_number", "normalize_utterance"]
