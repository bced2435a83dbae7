"""Tests for the unclassified note stores."""

import asyncio
import time
from unittest.mock import MagicMock

import gspread
import pytest
from tenacity import wait_none

from expense_extraction.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsUnclassifiedNoteStore,
    InMemoryUnclassifiedNoteStore,
    StorageConnectionError,
    StorageError,
)
from expense_extraction.services.storage.google_sheets import NOTE_COLUMNS


class TestInMemoryStore:
    """Tests for InMemoryUnclassifiedNoteStore."""

    @pytest.mark.asyncio
    async def test_record_and_filter(self):
        """Test that notes are kept in order and filtered by user."""
        store = InMemoryUnclassifiedNoteStore()

        assert await store.record(1, "神秘商品")
        assert await store.record(2, "奇怪東西")
        assert await store.record(1, "未知物件")

        assert [note.text for note in store.notes_for(1)] == ["神秘商品", "未知物件"]
        assert len(store.notes_for()) == 3
        assert store.notes[1].user_id == 2


class TestGoogleSheetsClient:
    """Tests for GoogleSheetsClient worksheet handling."""

    def test_existing_worksheet(self):
        """Test that an existing worksheet is returned as is."""
        client = GoogleSheetsClient("creds.json", "sheet-id")
        spreadsheet = MagicMock()
        client._spreadsheet = spreadsheet

        sheet = client.get_notes_sheet()

        assert sheet is spreadsheet.worksheet.return_value
        spreadsheet.worksheet.assert_called_once_with("UnclassifiedNotes")
        spreadsheet.add_worksheet.assert_not_called()

    def test_missing_worksheet_created_with_headers(self):
        """Test that a missing worksheet is created with a header row."""
        client = GoogleSheetsClient("creds.json", "sheet-id", sheet_name="Notes")
        spreadsheet = MagicMock()
        spreadsheet.worksheet.side_effect = gspread.WorksheetNotFound("Notes")
        client._spreadsheet = spreadsheet

        sheet = client.get_notes_sheet()

        spreadsheet.add_worksheet.assert_called_once_with(
            title="Notes", rows=1000, cols=len(NOTE_COLUMNS),
        )
        sheet.append_row.assert_called_once_with(NOTE_COLUMNS)

    def test_missing_spreadsheet(self):
        """Test that an unknown spreadsheet id raises a connection error."""
        client = GoogleSheetsClient("creds.json", "missing")
        gspread_client = MagicMock()
        gspread_client.open_by_key.side_effect = gspread.SpreadsheetNotFound("missing")
        client._client = gspread_client

        with pytest.raises(StorageConnectionError, match="missing"):
            client.get_spreadsheet()

    def test_missing_credentials_file(self, monkeypatch, tmp_path):
        """Test that a missing credentials file raises after the retries."""
        monkeypatch.setattr(GoogleSheetsClient._authorize.retry, "wait", wait_none())
        client = GoogleSheetsClient(str(tmp_path / "missing.json"), "sheet-id")

        with pytest.raises(StorageConnectionError, match="credentials file not found"):
            client.connect()

    def test_failed_connect_not_retried_until_cooldown(self, clock):
        """Test that a connect failure is raised again without retrying until the cooldown passes."""
        client = GoogleSheetsClient("creds.json", "sheet-id", reconnect_after_seconds=60, clock=clock)
        client._authorize = MagicMock(side_effect=StorageConnectionError("no credentials"))

        for _ in range(3):
            with pytest.raises(StorageConnectionError):
                client.connect()
        assert client._authorize.call_count == 1

        clock.advance(61)
        with pytest.raises(StorageConnectionError):
            client.connect()
        assert client._authorize.call_count == 2


class TestGoogleSheetsNoteStore:
    """Tests for GoogleSheetsUnclassifiedNoteStore.record()."""

    @pytest.fixture
    def sheet(self):
        return MagicMock()

    @pytest.fixture
    def store(self, sheet):
        client = MagicMock(spec=GoogleSheetsClient)
        client.get_notes_sheet.return_value = sheet
        return GoogleSheetsUnclassifiedNoteStore(client)

    @pytest.mark.asyncio
    async def test_row_appended(self, store, sheet):
        """Test that a note becomes one raw row."""
        assert await store.record(7, "神秘商品")

        sheet.append_row.assert_called_once()
        row = sheet.append_row.call_args.args[0]
        assert row[1:] == ["7", "神秘商品"]
        assert "T" in row[0]
        assert sheet.append_row.call_args.kwargs == {"value_input_option": "RAW"}

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self, store, sheet):
        """Test that API errors become StorageError."""
        sheet.append_row.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(StorageError, match="quota exceeded"):
            await store.record(7, "神秘商品")

    @pytest.mark.asyncio
    async def test_connection_error_propagates(self, sheet):
        """Test that connection errors are raised unchanged."""
        client = MagicMock(spec=GoogleSheetsClient)
        client.get_notes_sheet.side_effect = StorageConnectionError("no credentials")
        store = GoogleSheetsUnclassifiedNoteStore(client)

        with pytest.raises(StorageConnectionError):
            await store.record(7, "神秘商品")

    @pytest.mark.asyncio
    async def test_slow_sheet_does_not_block_event_loop(self):
        """Test that a blocking sheet call runs off the event loop."""
        def slow_failure():
            time.sleep(0.3)
            raise StorageConnectionError("no credentials")

        client = MagicMock(spec=GoogleSheetsClient)
        client.get_notes_sheet.side_effect = slow_failure
        store = GoogleSheetsUnclassifiedNoteStore(client)

        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                await asyncio.sleep(0.01)
                ticks += 1

        task = asyncio.create_task(ticker())
        try:
            with pytest.raises(StorageConnectionError):
                await store.record(7, "神秘商品")
        finally:
            task.cancel()

        assert ticks >= 5
