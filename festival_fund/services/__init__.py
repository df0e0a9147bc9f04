"""Services package."""

from festival_fund.services.storage import (
    DocumentAuditStorage,
    DocumentStoreInterface,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
    VersionConflictError,
)

__all__ = [
    "DocumentAuditStorage",
    "DocumentStoreInterface",
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
    "NotFoundError",
    "StorageError",
    "VersionConflictError",
]
