"""
Storage Services Package

Provides the abstract document store interface and its implementations.
In-memory for tests and local runs, Google Sheets for persistence.
"""

from finance_tracker.services.storage.interface import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    DocumentStoreInterface,
    DuplicateError,
    FieldFilter,
    FilterOp,
    OrderBy,
    StorageError,
    StoreConnectionError,
    StoredDocument,
    WriteBatch,
    WriteKind,
    WriteOperation,
)
from finance_tracker.services.storage.memory import InMemoryDocumentStore
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)

__all__ = [
    # Interface
    "DocumentStoreInterface",
    "FieldFilter",
    "FilterOp",
    "OrderBy",
    "SERVER_TIMESTAMP",
    "StoredDocument",
    "WriteBatch",
    "WriteKind",
    "WriteOperation",
    # Exceptions
    "DocumentNotFoundError",
    "DuplicateError",
    "StorageError",
    "StoreConnectionError",
    # Implementations
    "InMemoryDocumentStore",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
]
