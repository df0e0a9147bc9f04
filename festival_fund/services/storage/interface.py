"""
Abstract Storage Interface

DESIGN DECISION: Everything lives in a hosted document store that only
offers get / query / create / update on loosely-typed documents. There
are no joins and no multi-document transactions.
We define an abstract interface for exactly those operations.
This allows us to:
1. Run on Google Sheets today and swap the backend later
2. Use in-memory storage for testing
3. Keep the ledger and report logic decoupled from storage

Each document carries a `version` that the store bumps on every update.
`update(..., expected_version=n)` is a compare-and-set: it is rejected with
VersionConflictError if someone else wrote first. The ledger builds its
optimistic concurrency on this.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, Field

from festival_fund.models.audit import AuditEvent
from festival_fund.models.common import UtcDateTime, utc_now


# Collection names
FAMILIES = "families"
FESTIVALS = "festivals"
PAYMENTS = "payments"
EXPENSES = "expenses"
RECEIPTS = "receipts"
INVOICES = "invoices"
ACCOUNT = "account"
TRANSACTIONS = "transactions"
AUDIT_LOG = "audit_log"


class StoredDocument(BaseModel):
    """A document as the store returns it: id, version and raw data."""

    id: str
    version: int = 0
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: UtcDateTime = Field(default_factory=utc_now)
    updated_at: UtcDateTime = Field(default_factory=utc_now)


class DocumentStoreInterface(ABC):
    """
    Abstract interface for document storage operations.

    Any storage implementation (Google Sheets, Firestore, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        """
        Retrieve a document by its ID.

        Returns:
            The document if found, None otherwise

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def get_all(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[StoredDocument]:
        """
        List documents in a collection.

        Args:
            collection: Collection name
            filters: Field/value pairs that must all be equal

        Returns:
            Matching documents, in no guaranteed order
        """
        pass

    @abstractmethod
    async def create(
        self,
        collection: str,
        data: dict[str, Any],
        doc_id: Optional[str] = None,
    ) -> StoredDocument:
        """
        Create a new document.

        Args:
            collection: Collection name
            data: Document fields
            doc_id: Fixed ID to use; generated if None

        Raises:
            DuplicateError: If doc_id already exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(
        self,
        collection: str,
        doc_id: str,
        partial: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> StoredDocument:
        """
        Merge fields into an existing document and bump its version.

        Args:
            partial: Fields to overwrite
            expected_version: If given, only write when the stored
                              version still equals this value

        Raises:
            NotFoundError: If the document doesn't exist
            VersionConflictError: If expected_version is stale
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.collection = collection
        self.entity_id = entity_id


class NotFoundError(StorageError):
    """Entity not found in storage."""

    def __init__(self, collection: str, entity_id: str):
        super().__init__(f"{collection}/{entity_id} not found", collection, entity_id)


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""

    def __init__(self, collection: str, entity_id: str):
        super().__init__(f"{collection}/{entity_id} already exists", collection, entity_id)


class VersionConflictError(StorageError):
    """A conditional update lost the race to another writer."""

    def __init__(self, collection: str, entity_id: str, expected: int, actual: int):
        super().__init__(
            f"{collection}/{entity_id} is at version {actual}, expected {expected}",
            collection,
            entity_id,
        )
        self.expected = expected
        self.actual = actual


class MalformedDocumentError(StorageError):
    """A stored document is missing a required field or has a bad value."""

    def __init__(self, collection: str, entity_id: str, field: str, value: Any = None):
        super().__init__(
            f"{collection}/{entity_id} has invalid field '{field}'",
            collection,
            entity_id,
        )
        self.field = field
        self.value = value


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass