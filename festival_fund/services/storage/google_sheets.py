"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted document store because:
1. Committee members can view the fund's data directly in Sheets
2. No database setup required for a village committee
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

Each collection is one worksheet. Each document is one row:
    id | version | created_at | updated_at | data_json

TRADEOFFS:
- Not suitable for high-volume data (a village fund is fine)
- No transactions or conditional writes in the API. Compare-and-set on
  `version` is done under a per-collection lock, so it holds for every
  writer in this process
- Limited query capabilities (we filter in Python)
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from festival_fund.config import get_settings
from festival_fund.models.common import utc_now
from festival_fund.services.storage.interface import (
    ConnectionError,
    DocumentStoreInterface,
    DuplicateError,
    NotFoundError,
    StorageError,
    StoredDocument,
    VersionConflictError,
)


DOCUMENT_COLUMNS = [
    "id",
    "version",
    "created_at",
    "updated_at",
    "data_json",
]

_api_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = get_settings().google_sheets

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
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        if collection in self._worksheets:
            return self._worksheets[collection]

        spreadsheet = self.get_spreadsheet()
        title = f"{self._settings.sheet_prefix}{collection}"
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(DOCUMENT_COLUMNS),
            )
            sheet.append_row(DOCUMENT_COLUMNS)
        self._worksheets[collection] = sheet
        return sheet


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the document store.

    Document data is JSON-serialized into a single cell, so documents keep
    whatever shape the caller gives them.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, collection: str) -> asyncio.Lock:
        return self._locks.setdefault(collection, asyncio.Lock())

    def _document_to_row(self, document: StoredDocument) -> list:
        """Convert a StoredDocument to a spreadsheet row."""
        return [
            document.id,
            str(document.version),
            document.created_at.isoformat(),
            document.updated_at.isoformat(),
            json.dumps(document.data, default=_encode),
        ]

    def _row_to_document(self, row: list) -> StoredDocument:
        """Convert a spreadsheet row to a StoredDocument."""
        # Handle missing columns gracefully
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return StoredDocument(
            id=safe_get(0),
            version=int(safe_get(1, "0")),
            created_at=safe_get(2) or utc_now(),
            updated_at=safe_get(3) or utc_now(),
            data=json.loads(safe_get(4, "{}")),
        )

    @_api_retry
    def _read_rows(self, collection: str) -> list[list]:
        sheet = self._client.get_collection_sheet(collection)
        # Get all data (excluding header)
        return sheet.get_all_values()[1:]

    def _find(self, collection: str, doc_id: str) -> tuple[Optional[int], Optional[StoredDocument]]:
        """Locate a document, returning its 1-based sheet row index."""
        for idx, row in enumerate(self._read_rows(collection), start=2):  # row 1 is header
            if row and row[0] == doc_id:
                return idx, self._row_to_document(row)
        return None, None

    async def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        try:
            _, document = self._find(collection, doc_id)
            return document
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get {collection}/{doc_id}: {e}", collection, doc_id)

    async def get_all(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[StoredDocument]:
        try:
            documents = []
            for row in self._read_rows(collection):
                if not row or not row[0]:  # Skip empty rows
                    continue
                document = self._row_to_document(row)
                if filters and any(
                    document.data.get(field) != value for field, value in filters.items()
                ):
                    continue
                documents.append(document)
            return documents
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list {collection}: {e}", collection)

    async def create(
        self,
        collection: str,
        data: dict[str, Any],
        doc_id: Optional[str] = None,
    ) -> StoredDocument:
        async with self._lock(collection):
            try:
                doc_id = doc_id or uuid4().hex
                _, existing = self._find(collection, doc_id)
                if existing is not None:
                    raise DuplicateError(collection, doc_id)

                now = utc_now()
                document = StoredDocument(
                    id=doc_id,
                    version=0,
                    data=data,
                    created_at=now,
                    updated_at=now,
                )
                self._append_row(collection, self._document_to_row(document))
                return document
            except StorageError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to create in {collection}: {e}", collection, doc_id)

    async def update(
        self,
        collection: str,
        doc_id: str,
        partial: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> StoredDocument:
        async with self._lock(collection):
            try:
                idx, current = self._find(collection, doc_id)
                if current is None:
                    raise NotFoundError(collection, doc_id)
                if expected_version is not None and current.version != expected_version:
                    raise VersionConflictError(
                        collection, doc_id, expected_version, current.version
                    )

                updated = StoredDocument(
                    id=doc_id,
                    version=current.version + 1,
                    data={**current.data, **partial},
                    created_at=current.created_at,
                    updated_at=utc_now(),
                )
                self._write_row(collection, idx, self._document_to_row(updated))
                return updated
            except StorageError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to update {collection}/{doc_id}: {e}", collection, doc_id)

    @_api_retry
    def _append_row(self, collection: str, row: list) -> None:
        sheet = self._client.get_collection_sheet(collection)
        sheet.append_row(row, value_input_option="RAW")

    @_api_retry
    def _write_row(self, collection: str, idx: int, row: list) -> None:
        sheet = self._client.get_collection_sheet(collection)
        sheet.update(
            range_name=f"A{idx}:E{idx}",
            values=[row],
            value_input_option="RAW",
        )
