"""
Storage Services Package

Provides the abstract note store and its implementations.
Google Sheets is the persistent backend; the in-memory store covers tests
and unconfigured deployments.
"""

from expense_extraction.services.storage.interface import (
    InMemoryUnclassifiedNoteStore,
    StorageConnectionError,
    StorageError,
    UnclassifiedNoteStore,
)
from expense_extraction.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsUnclassifiedNoteStore,
)

__all__ = [
    # Interfaces
    "UnclassifiedNoteStore",
    "InMemoryUnclassifiedNoteStore",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsUnclassifiedNoteStore",
]
