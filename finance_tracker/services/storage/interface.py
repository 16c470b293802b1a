"""
Abstract Document Store Interface

DESIGN DECISION: Services never talk to a concrete database. They are
constructed with a DocumentStoreInterface handle. This allows us to:
1. Swap Google Sheets for a real document database later
2. Use in-memory storage for testing
3. Use atomic multi-document writes where the backend has them

The interface is intentionally small - five document primitives, a write
batch and a server-timestamp sentinel. Anything richer (balances,
cascades, duplicate checks) is built by the services on top.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, ConfigDict


class _ServerTimestamp:
    """Placeholder resolved to the store's clock at write time."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __deepcopy__(self, memo):
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


def resolve_server_timestamps(data: dict[str, Any], now) -> dict[str, Any]:
    """Replace SERVER_TIMESTAMP values with `now`, including in nested dicts."""
    resolved = {}
    for key, value in data.items():
        if value is SERVER_TIMESTAMP:
            value = now
        elif isinstance(value, dict):
            value = resolve_server_timestamps(value, now)
        resolved[key] = value
    return resolved


# =============================================================================
# QUERY MODEL
# =============================================================================

class FilterOp(str, Enum):
    EQ = "=="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="


class FieldFilter(BaseModel):
    """One predicate on a top-level document field."""
    model_config = ConfigDict(frozen=True)

    field: str
    op: FilterOp = FilterOp.EQ
    value: Any = None

    def matches(self, data: dict[str, Any]) -> bool:
        actual = data.get(self.field)
        if self.op == FilterOp.EQ:
            return actual == self.value
        # Range predicates never match missing values
        if actual is None or self.value is None:
            return False
        if self.op == FilterOp.GT:
            return actual > self.value
        if self.op == FilterOp.GTE:
            return actual >= self.value
        if self.op == FilterOp.LT:
            return actual < self.value
        return actual <= self.value


class OrderBy(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    descending: bool = False


class StoredDocument(BaseModel):
    """A document as returned by the store: its id plus its fields."""

    id: str
    data: dict[str, Any]


def apply_query(
    documents: Iterable[StoredDocument],
    filters: Sequence[FieldFilter] = (),
    order_by: Optional[OrderBy] = None,
    limit: Optional[int] = None,
) -> list[StoredDocument]:
    """Filter, order and limit documents in Python."""
    matched = [doc for doc in documents if all(f.matches(doc.data) for f in filters)]

    if order_by is not None:
        # Documents lacking the field sort last in either direction
        present = [d for d in matched if d.data.get(order_by.field) is not None]
        missing = [d for d in matched if d.data.get(order_by.field) is None]
        present.sort(key=lambda d: d.data[order_by.field], reverse=order_by.descending)
        matched = present + missing

    if limit is not None:
        matched = matched[:limit]
    return matched


# =============================================================================
# WRITE BATCH
# =============================================================================

class WriteKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class WriteOperation(BaseModel):
    kind: WriteKind
    collection: str
    document_id: str
    data: dict[str, Any] = {}


class WriteBatch:
    """
    Accumulates writes and commits them together.

    Whether the commit is atomic depends on the store
    (see DocumentStoreInterface.supports_atomic_batch).
    """

    def __init__(self, store: "DocumentStoreInterface"):
        self._store = store
        self._operations: list[WriteOperation] = []

    @property
    def operations(self) -> list[WriteOperation]:
        return list(self._operations)

    def create(self, collection: str, data: dict[str, Any], document_id: Optional[str] = None) -> str:
        document_id = document_id or self._store.new_document_id()
        self._operations.append(WriteOperation(
            kind=WriteKind.CREATE,
            collection=collection,
            document_id=document_id,
            data=data,
        ))
        return document_id

    def update(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        self._operations.append(WriteOperation(
            kind=WriteKind.UPDATE,
            collection=collection,
            document_id=document_id,
            data=data,
        ))

    def delete(self, collection: str, document_id: str) -> None:
        self._operations.append(WriteOperation(
            kind=WriteKind.DELETE,
            collection=collection,
            document_id=document_id,
        ))

    async def commit(self) -> None:
        if self._operations:
            await self._store.commit_batch(self.operations)
        self._operations.clear()


# =============================================================================
# STORE INTERFACE
# =============================================================================

class DocumentStoreInterface(ABC):
    """
    Abstract interface for a document store.

    Any storage implementation (Google Sheets, Firestore, etc.)
    must implement these methods.
    """

    # Stores that can apply a whole batch atomically override this
    supports_atomic_batch: bool = False

    def new_document_id(self) -> str:
        """Generate an id for a document that has not been written yet."""
        return uuid4().hex

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    @abstractmethod
    async def create_document(
        self,
        collection: str,
        data: dict[str, Any],
        document_id: Optional[str] = None,
    ) -> str:
        """
        Create a document.

        Args:
            collection: Collection name
            data: Field values; SERVER_TIMESTAMP values are resolved by the store
            document_id: Explicit id, generated when omitted

        Returns:
            The document id

        Raises:
            DuplicateError: If document_id is already taken
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_document(
        self,
        collection: str,
        document_id: str,
    ) -> Optional[StoredDocument]:
        """
        Retrieve one document.

        Returns:
            The document if found, None otherwise
        """
        pass

    @abstractmethod
    async def query_documents(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        """
        List documents matching every filter.

        Args:
            collection: Collection name
            filters: Predicates combined with AND
            order_by: Optional ordering
            limit: Maximum number of results
        """
        pass

    @abstractmethod
    async def update_document(
        self,
        collection: str,
        document_id: str,
        data: dict[str, Any],
    ) -> None:
        """
        Merge `data` into an existing document.

        Raises:
            DocumentNotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_document(
        self,
        collection: str,
        document_id: str,
    ) -> bool:
        """
        Delete a document.

        Returns:
            True if a document was deleted, False if it did not exist
        """
        pass

    async def commit_batch(self, operations: Sequence[WriteOperation]) -> None:
        """
        Apply batched writes.

        The default applies them one by one in order. A failure part way
        leaves the earlier writes in place.
        """
        for op in operations:
            if op.kind == WriteKind.CREATE:
                await self.create_document(op.collection, op.data, document_id=op.document_id)
            elif op.kind == WriteKind.UPDATE:
                await self.update_document(op.collection, op.document_id, op.data)
            else:
                await self.delete_document(op.collection, op.document_id)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DocumentNotFoundError(StorageError):
    """Document not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to create a document whose id is taken."""
    pass


class StoreConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
