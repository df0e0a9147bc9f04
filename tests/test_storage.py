"""Tests for the document store backends and the audit storage on top of them."""

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from festival_fund.models.audit import AuditEventBuilder
from festival_fund.services.storage import (
    AUDIT_LOG,
    DocumentAuditStorage,
    DuplicateError,
    GoogleSheetsDocumentStore,
    NotFoundError,
    VersionConflictError,
)
from festival_fund.services.storage.google_sheets import DOCUMENT_COLUMNS


class TestInMemoryDocumentStore:
    """Tests for InMemoryDocumentStore."""

    async def test_create_and_get(self, store):
        """Test a created document can be read back."""
        created = await store.create("families", {"headName": "A"}, doc_id="f1")
        fetched = await store.get("families", "f1")
        assert fetched == created
        assert fetched.version == 0
        assert fetched.data == {"headName": "A"}

    async def test_get_missing_returns_none(self, store):
        """Test a missing document is None, not an error."""
        assert await store.get("families", "nope") is None

    async def test_generated_ids_are_unique(self, store):
        """Test documents without an ID get distinct ones."""
        first = await store.create("payments", {"amount": "1"})
        second = await store.create("payments", {"amount": "1"})
        assert first.id != second.id

    async def test_create_duplicate_id_rejected(self, store):
        """Test creating an existing ID raises DuplicateError."""
        await store.create("account", {}, doc_id="main_account")
        with pytest.raises(DuplicateError):
            await store.create("account", {}, doc_id="main_account")

    async def test_get_all_with_filters(self, store):
        """Test equality filters on data fields."""
        await store.create("payments", {"festivalId": "a", "status": "PAID"})
        await store.create("payments", {"festivalId": "a", "status": "UNPAID"})
        await store.create("payments", {"festivalId": "b", "status": "PAID"})

        assert len(await store.get_all("payments")) == 3
        paid_a = await store.get_all("payments", {"festivalId": "a", "status": "PAID"})
        assert len(paid_a) == 1

    async def test_update_merges_and_bumps_version(self, store):
        """Test a partial update keeps other fields."""
        await store.create("account", {"balance": "0", "total_income": "0"}, doc_id="acc")
        updated = await store.update("account", "acc", {"balance": "10"})
        assert updated.version == 1
        assert updated.data == {"balance": "10", "total_income": "0"}
        assert updated.updated_at >= updated.created_at

    async def test_update_missing_document(self, store):
        """Test updating an unknown ID raises NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            await store.update("account", "acc", {"balance": "10"})
        assert exc_info.value.collection == "account"
        assert exc_info.value.entity_id == "acc"

    async def test_update_with_stale_version(self, store):
        """Test compare-and-set rejects a stale version."""
        await store.create("account", {"balance": "0"}, doc_id="acc")
        await store.update("account", "acc", {"balance": "5"}, expected_version=0)

        with pytest.raises(VersionConflictError) as exc_info:
            await store.update("account", "acc", {"balance": "7"}, expected_version=0)

        assert exc_info.value.expected == 0
        assert exc_info.value.actual == 1
        assert (await store.get("account", "acc")).data["balance"] == "5"

    async def test_concurrent_compare_and_set_has_one_winner(self, store):
        """Of N writers holding the same version, exactly one wins."""
        await store.create("account", {"balance": "0"}, doc_id="acc")

        results = await asyncio.gather(
            *(
                store.update("account", "acc", {"balance": str(i)}, expected_version=0)
                for i in range(5)
            ),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, VersionConflictError)]
        assert len(conflicts) == 4
        assert (await store.get("account", "acc")).version == 1

    async def test_returned_documents_are_copies(self, store):
        """Mutating a returned document doesn't change the store."""
        await store.create("families", {"headName": "A"}, doc_id="f1")
        fetched = await store.get("families", "f1")
        fetched.data["headName"] = "B"
        assert (await store.get("families", "f1")).data["headName"] == "A"


class TestDocumentAuditStorage:
    """Tests for the audit_log collection."""

    async def test_append_and_read_newest_first(self, store):
        """Test events come back newest first."""
        audit_storage = DocumentAuditStorage(store)
        first = AuditEventBuilder.report_generated("fest1", 1, 3)
        second = AuditEventBuilder.report_generated("fest1", 2, 3)
        second = second.model_copy(update={"timestamp": first.timestamp + timedelta(seconds=1)})

        assert await audit_storage.append_event(first) is True
        await audit_storage.append_event(second)

        events = await audit_storage.get_recent_events(limit=10)
        assert [e.event_id for e in events] == [second.event_id, first.event_id]
        assert len(await store.get_all(AUDIT_LOG)) == 2

    async def test_same_event_appended_once(self, store):
        """An event ID can only be stored once."""
        audit_storage = DocumentAuditStorage(store)
        event = AuditEventBuilder.report_generated("fest1", 1, 3)
        await audit_storage.append_event(event)
        with pytest.raises(DuplicateError):
            await audit_storage.append_event(event)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the document store."""

    def __init__(self):
        self.rows = [list(DOCUMENT_COLUMNS)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))

    def update(self, range_name, values, value_input_option=None):
        index = int(range_name.split(":")[0][1:]) - 1
        self.rows[index] = list(values[0])


class TestGoogleSheetsDocumentStore:
    """Tests for the Sheets backend with the client mocked out."""

    @pytest.fixture
    def sheets_store(self):
        sheets = {}
        client = MagicMock()
        client.get_collection_sheet.side_effect = (
            lambda collection: sheets.setdefault(collection, FakeWorksheet())
        )
        return GoogleSheetsDocumentStore(client)

    async def test_round_trip(self, sheets_store):
        """Test data survives the JSON cell."""
        await sheets_store.create("families", {"headName": "A", "members": 3}, doc_id="f1")
        document = await sheets_store.get("families", "f1")
        assert document.data == {"headName": "A", "members": 3}
        assert document.version == 0

    async def test_compare_and_set(self, sheets_store):
        """Test versions are checked and bumped like the in-memory store."""
        await sheets_store.create("account", {"balance": "0"}, doc_id="acc")
        updated = await sheets_store.update("account", "acc", {"balance": "5"}, expected_version=0)
        assert updated.version == 1

        with pytest.raises(VersionConflictError):
            await sheets_store.update("account", "acc", {"balance": "9"}, expected_version=0)

        assert (await sheets_store.get("account", "acc")).data == {"balance": "5"}

    async def test_duplicate_and_missing(self, sheets_store):
        """Test DuplicateError and NotFoundError."""
        await sheets_store.create("account", {}, doc_id="acc")
        with pytest.raises(DuplicateError):
            await sheets_store.create("account", {}, doc_id="acc")
        with pytest.raises(NotFoundError):
            await sheets_store.update("account", "other", {})

    async def test_get_all_filters(self, sheets_store):
        """Test equality filters on the decoded data."""
        await sheets_store.create("payments", {"festivalId": "a"})
        await sheets_store.create("payments", {"festivalId": "b"})
        documents = await sheets_store.get_all("payments", {"festivalId": "a"})
        assert [d.data["festivalId"] for d in documents] == ["a"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
