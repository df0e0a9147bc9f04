"""
Storage Services Package

Provides the abstract document store interface and its implementations.
Google Sheets is the hosted backend; the in-memory store backs tests and
local runs without credentials.
"""

from festival_fund.services.storage.interface import (
    ACCOUNT,
    AUDIT_LOG,
    EXPENSES,
    FAMILIES,
    FESTIVALS,
    INVOICES,
    PAYMENTS,
    RECEIPTS,
    TRANSACTIONS,
    AuditStorageInterface,
    ConnectionError,
    DocumentStoreInterface,
    DuplicateError,
    MalformedDocumentError,
    NotFoundError,
    StorageError,
    StoredDocument,
    VersionConflictError,
)
from festival_fund.services.storage.audit import DocumentAuditStorage
from festival_fund.services.storage.memory import InMemoryDocumentStore
from festival_fund.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)

__all__ = [
    # Collections
    "ACCOUNT",
    "AUDIT_LOG",
    "EXPENSES",
    "FAMILIES",
    "FESTIVALS",
    "INVOICES",
    "PAYMENTS",
    "RECEIPTS",
    "TRANSACTIONS",
    # Interfaces
    "AuditStorageInterface",
    "DocumentStoreInterface",
    "StoredDocument",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "MalformedDocumentError",
    "NotFoundError",
    "StorageError",
    "VersionConflictError",
    # Implementations
    "DocumentAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
]
