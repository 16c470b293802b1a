"""
Google Sheets Document Store

DESIGN DECISION: Google Sheets is available as a storage backend because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: batches are applied in order, not atomically.
  Chain creation falls back to sequential writes with rollback.
- Limited query capabilities (we filter in Python)

Each collection is one worksheet with two columns: the document id and
the document fields as JSON. Decimals and datetimes are tagged so they
round-trip with their types.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Sequence

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.base import utc_now
from finance_tracker.services.storage.interface import (
    DocumentNotFoundError,
    DocumentStoreInterface,
    DuplicateError,
    FieldFilter,
    OrderBy,
    StorageError,
    StoreConnectionError,
    StoredDocument,
    apply_query,
    resolve_server_timestamps,
)


logger = structlog.get_logger(__name__)

SHEET_COLUMNS = ["id", "data_json"]

_DECIMAL_TAG = "$decimal"
_DATETIME_TAG = "$datetime"


def _encode_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return {_DECIMAL_TAG: str(value)}
    if isinstance(value, datetime):
        return {_DATETIME_TAG: value.isoformat()}
    if isinstance(value, dict):
        return {key: _encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode_value(item) for item in value]
    return value


def _decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {_DECIMAL_TAG}:
            return Decimal(value[_DECIMAL_TAG])
        if set(value) == {_DATETIME_TAG}:
            return datetime.fromisoformat(value[_DATETIME_TAG])
        return {key: _decode_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_decode_value(item) for item in value]
    return value


def encode_document(data: dict[str, Any]) -> str:
    return json.dumps(_encode_value(data), sort_keys=True)


def decode_document(payload: str) -> dict[str, Any]:
    return _decode_value(json.loads(payload)) if payload else {}


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        spreadsheet = self.get_spreadsheet()
        title = self._settings.sheet_name_for(collection)
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(SHEET_COLUMNS),
            )
            sheet.append_row(SHEET_COLUMNS)
        return sheet


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """Google Sheets implementation of the document store."""

    supports_atomic_batch = False

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _rows(self, collection: str) -> tuple[gspread.Worksheet, list[list[str]]]:
        sheet = self._client.get_collection_sheet(collection)
        # Skip header
        return sheet, sheet.get_all_values()[1:]

    def _find_row(self, rows: list[list[str]], document_id: str) -> Optional[int]:
        """1-based sheet row index of a document (row 1 is the header)."""
        for idx, row in enumerate(rows, start=2):
            if row and row[0] == document_id:
                return idx
        return None

    async def create_document(
        self,
        collection: str,
        data: dict[str, Any],
        document_id: Optional[str] = None,
    ) -> str:
        # Id and payload are fixed once so a retried append cannot fork them
        document_id = document_id or self.new_document_id()
        payload = encode_document(resolve_server_timestamps(data, utc_now()))
        try:
            _, rows = self._rows(collection)
        except Exception as e:
            raise StorageError(f"Failed to create document in {collection}: {e}")
        if self._find_row(rows, document_id) is not None:
            raise DuplicateError(f"{collection}/{document_id} already exists")

        await self._append_document(collection, document_id, payload)
        return document_id

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, DocumentNotFoundError)),
        reraise=True,
    )
    async def _append_document(self, collection: str, document_id: str, payload: str) -> None:
        """
        Append one row, safe to retry.

        The id was checked to be free before the first attempt, so a row
        carrying it now with the same payload is an earlier attempt whose
        response was lost.
        """
        try:
            sheet, rows = self._rows(collection)
            idx = self._find_row(rows, document_id)
            if idx is not None:
                existing = rows[idx - 2]
                if len(existing) > 1 and existing[1] == payload:
                    logger.info("append_already_applied", collection=collection, document_id=document_id)
                    return
                raise DuplicateError(f"{collection}/{document_id} already exists")
            sheet.append_row([document_id, payload], value_input_option="RAW")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create document in {collection}: {e}")

    async def get_document(self, collection: str, document_id: str) -> Optional[StoredDocument]:
        try:
            _, rows = self._rows(collection)
            for row in rows:
                if row and row[0] == document_id:
                    payload = row[1] if len(row) > 1 else ""
                    return StoredDocument(id=document_id, data=decode_document(payload))
            return None
        except Exception as e:
            raise StorageError(f"Failed to get document from {collection}: {e}")

    async def query_documents(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        try:
            _, rows = self._rows(collection)
        except Exception as e:
            raise StorageError(f"Failed to query {collection}: {e}")

        documents = []
        for row in rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                data = decode_document(row[1] if len(row) > 1 else "")
            except (ValueError, TypeError) as e:
                logger.warning("malformed_row_skipped", collection=collection, document_id=row[0], error=str(e))
                continue
            documents.append(StoredDocument(id=row[0], data=data))

        return apply_query(documents, filters, order_by, limit)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, DocumentNotFoundError)),
        reraise=True,
    )
    async def update_document(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        try:
            sheet, rows = self._rows(collection)
            idx = self._find_row(rows, document_id)
            if idx is None:
                raise DocumentNotFoundError(f"{collection}/{document_id} not found")
            row = rows[idx - 2]
            merged = decode_document(row[1] if len(row) > 1 else "")
            merged.update(resolve_server_timestamps(data, utc_now()))
            sheet.update_cell(idx, 2, encode_document(merged))
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update document in {collection}: {e}")

    async def delete_document(self, collection: str, document_id: str) -> bool:
        try:
            sheet, rows = self._rows(collection)
            idx = self._find_row(rows, document_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete document from {collection}: {e}")
