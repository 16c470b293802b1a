"""
In-Memory Document Store

Used by the test-suite and for local runs without any external service.

Every read and write deep-copies, so callers can never mutate stored
state by holding on to a returned dict. Batches are applied to a staged
copy and swapped in only when every operation succeeded, which makes
them atomic.
"""

import copy
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from finance_tracker.models.base import utc_now
from finance_tracker.services.storage.interface import (
    DocumentNotFoundError,
    DocumentStoreInterface,
    DuplicateError,
    FieldFilter,
    OrderBy,
    StoredDocument,
    WriteKind,
    WriteOperation,
    apply_query,
    resolve_server_timestamps,
)


Collections = dict[str, dict[str, dict[str, Any]]]


class InMemoryDocumentStore(DocumentStoreInterface):
    """
    Dict-backed implementation of the document store.

    Args:
        clock: Source of server timestamps. Tests inject a deterministic one.
    """

    supports_atomic_batch = True

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now
        self._collections: Collections = {}

    def _now(self) -> datetime:
        return self._clock()

    # -------------------------------------------------------------------------
    # Pure helpers operating on a given collections dict
    # -------------------------------------------------------------------------

    def _apply_create(
        self,
        collections: Collections,
        collection: str,
        data: dict[str, Any],
        document_id: str,
    ) -> None:
        documents = collections.setdefault(collection, {})
        if document_id in documents:
            raise DuplicateError(f"{collection}/{document_id} already exists")
        documents[document_id] = copy.deepcopy(resolve_server_timestamps(data, self._now()))

    def _apply_update(
        self,
        collections: Collections,
        collection: str,
        document_id: str,
        data: dict[str, Any],
    ) -> None:
        documents = collections.get(collection, {})
        if document_id not in documents:
            raise DocumentNotFoundError(f"{collection}/{document_id} not found")
        documents[document_id].update(copy.deepcopy(resolve_server_timestamps(data, self._now())))

    def _apply_delete(self, collections: Collections, collection: str, document_id: str) -> bool:
        return collections.get(collection, {}).pop(document_id, None) is not None

    # -------------------------------------------------------------------------
    # DocumentStoreInterface
    # -------------------------------------------------------------------------

    async def create_document(
        self,
        collection: str,
        data: dict[str, Any],
        document_id: Optional[str] = None,
    ) -> str:
        document_id = document_id or self.new_document_id()
        self._apply_create(self._collections, collection, data, document_id)
        return document_id

    async def get_document(self, collection: str, document_id: str) -> Optional[StoredDocument]:
        data = self._collections.get(collection, {}).get(document_id)
        if data is None:
            return None
        return StoredDocument(id=document_id, data=copy.deepcopy(data))

    async def query_documents(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        documents = [
            StoredDocument(id=document_id, data=copy.deepcopy(data))
            for document_id, data in self._collections.get(collection, {}).items()
        ]
        return apply_query(documents, filters, order_by, limit)

    async def update_document(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        self._apply_update(self._collections, collection, document_id, data)

    async def delete_document(self, collection: str, document_id: str) -> bool:
        return self._apply_delete(self._collections, collection, document_id)

    async def commit_batch(self, operations: Sequence[WriteOperation]) -> None:
        staged = copy.deepcopy(self._collections)
        for op in operations:
            if op.kind == WriteKind.CREATE:
                self._apply_create(staged, op.collection, op.data, op.document_id)
            elif op.kind == WriteKind.UPDATE:
                self._apply_update(staged, op.collection, op.document_id, op.data)
            else:
                self._apply_delete(staged, op.collection, op.document_id)
        self._collections = staged

    # -------------------------------------------------------------------------
    # Introspection (tests and debugging)
    # -------------------------------------------------------------------------

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))

    def clear(self) -> None:
        self._collections = {}
