"""Services package."""

from finance_tracker.services.auth import (
    AuthProviderError,
    AuthProviderInterface,
    AuthUser,
    InMemoryAuthProvider,
)
from finance_tracker.services.storage import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    DocumentStoreInterface,
    DuplicateError,
    FieldFilter,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    OrderBy,
    StorageError,
    StoreConnectionError,
)

__all__ = [
    # Auth services
    "AuthProviderError",
    "AuthProviderInterface",
    "AuthUser",
    "InMemoryAuthProvider",
    # Storage services
    "DocumentNotFoundError",
    "DocumentStoreInterface",
    "DuplicateError",
    "FieldFilter",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
    "OrderBy",
    "SERVER_TIMESTAMP",
    "StorageError",
    "StoreConnectionError",
]
