"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used for unclassified notes because:
1. Whoever maintains the keyword dictionaries can read them directly
2. No database setup required
3. Append-only rows fit the access pattern exactly

TRADEOFFS:
- Not suitable for high-volume data (a few notes per user per day is fine)
- gspread is synchronous, so the store runs it in a worker thread
  (``asyncio.to_thread``); connect retries sleep there, not on the loop
- A failed connect is remembered for ``reconnect_after_seconds`` so a
  burst of notes doesn't pay the retry backoff once per note

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing the classifier.
"""

import asyncio
import time
from typing import Callable, Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_extraction.models.classification import UnclassifiedNote
from expense_extraction.services.storage.interface import (
    StorageConnectionError,
    StorageError,
    UnclassifiedNoteStore,
)


logger = structlog.get_logger(__name__)

# Column mappings for the unclassified notes sheet
NOTE_COLUMNS = [
    "created_at",
    "user_id",
    "text",
]

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    All methods block; call them from a worker thread in async code.
    """

    def __init__(
        self,
        credentials_path: str,
        spreadsheet_id: str,
        sheet_name: str = "UnclassifiedNotes",
        reconnect_after_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._credentials_path = credentials_path
        self._spreadsheet_id = spreadsheet_id
        self._sheet_name = sheet_name
        self._reconnect_after = reconnect_after_seconds
        self._clock = clock
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._connect_error: Optional[StorageConnectionError] = None
        self._connect_failed_at = 0.0

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _authorize(self) -> gspread.Client:
        """Authorize with service account credentials."""
        try:
            credentials = Credentials.from_service_account_file(
                self._credentials_path,
                scopes=SCOPES,
            )
            return gspread.authorize(credentials)
        except FileNotFoundError:
            raise StorageConnectionError(
                f"Google credentials file not found: {self._credentials_path}"
            )
        except Exception as e:
            raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Raises the last connection error again, without retrying, until
        ``reconnect_after_seconds`` have passed since it happened.
        """
        if self._client is not None:
            return self._client

        if self._connect_error is not None:
            if self._clock() - self._connect_failed_at < self._reconnect_after:
                raise self._connect_error
            self._connect_error = None

        try:
            self._client = self._authorize()
        except StorageConnectionError as e:
            self._connect_error = e
            self._connect_failed_at = self._clock()
            logger.warning("sheets_connect_failed", error=str(e))
            raise
        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._spreadsheet_id}"
                )
        return self._spreadsheet

    def get_notes_sheet(self) -> gspread.Worksheet:
        """Get or create the unclassified notes worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._sheet_name,
                rows=1000,
                cols=len(NOTE_COLUMNS),
            )
            sheet.append_row(NOTE_COLUMNS)
        return sheet


class GoogleSheetsUnclassifiedNoteStore(UnclassifiedNoteStore):
    """
    Google Sheets implementation of the unclassified note store.

    One note per row; rows are only ever appended.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    def _note_to_row(self, note: UnclassifiedNote) -> list:
        """Convert a note to a spreadsheet row."""
        return [
            note.created_at.isoformat(),
            str(note.user_id),
            note.text,
        ]

    def _append_row(self, row: list) -> None:
        sheet = self._client.get_notes_sheet()
        sheet.append_row(row, value_input_option="RAW")

    async def record(self, user_id: int, text: str) -> bool:
        """Append a note from a worker thread."""
        note = UnclassifiedNote(user_id=user_id, text=text)
        try:
            await asyncio.to_thread(self._append_row, self._note_to_row(note))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to record unclassified note: {e}") from e
