"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the classifier decoupled from where notes end up

The interface is intentionally tiny. The pipeline only ever appends
notes it could not classify; reading them back is someone else's job.
"""

from abc import ABC, abstractmethod
from typing import Optional

from expense_extraction.models.classification import UnclassifiedNote


class UnclassifiedNoteStore(ABC):
    """
    Abstract interface for collecting unclassified notes.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def record(self, user_id: int, text: str) -> bool:
        """
        Append a note the classifier could not place.

        Args:
            user_id: Owner of the note
            text: The note as the user wrote or said it

        Returns:
            True if recorded successfully

        Raises:
            StorageError: If the write fails
        """
        pass


class InMemoryUnclassifiedNoteStore(UnclassifiedNoteStore):
    """Process-local store, used when no spreadsheet is configured and in tests."""

    def __init__(self):
        self.notes: list[UnclassifiedNote] = []

    async def record(self, user_id: int, text: str) -> bool:
        self.notes.append(UnclassifiedNote(user_id=user_id, text=text))
        return True

    def notes_for(self, user_id: Optional[int] = None) -> list[UnclassifiedNote]:
        if user_id is None:
            return list(self.notes)
        return [note for note in self.notes if note.user_id == user_id]


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
