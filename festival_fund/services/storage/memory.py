"""
In-Memory Storage Implementation

Used by the test suite and as the local fallback when Google Sheets is not
configured. Every call yields to the event loop before touching data, the
way a network round trip would, so concurrent callers really interleave.
"""

import asyncio
import copy
from typing import Any, Optional
from uuid import uuid4

from festival_fund.models.common import utc_now
from festival_fund.services.storage.interface import (
    DocumentStoreInterface,
    DuplicateError,
    NotFoundError,
    StoredDocument,
    VersionConflictError,
)


class InMemoryDocumentStore(DocumentStoreInterface):
    """Dictionary-backed document store with compare-and-set updates."""

    def __init__(self, latency: float = 0.0):
        self._collections: dict[str, dict[str, StoredDocument]] = {}
        self._lock = asyncio.Lock()
        self._latency = latency

    def _collection(self, name: str) -> dict[str, StoredDocument]:
        return self._collections.setdefault(name, {})

    async def _round_trip(self) -> None:
        await asyncio.sleep(self._latency)

    async def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        await self._round_trip()
        document = self._collection(collection).get(doc_id)
        return document.model_copy(deep=True) if document else None

    async def get_all(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[StoredDocument]:
        await self._round_trip()
        documents = []
        for document in self._collection(collection).values():
            if filters and any(
                document.data.get(field) != value for field, value in filters.items()
            ):
                continue
            documents.append(document.model_copy(deep=True))
        return documents

    async def create(
        self,
        collection: str,
        data: dict[str, Any],
        doc_id: Optional[str] = None,
    ) -> StoredDocument:
        await self._round_trip()
        async with self._lock:
            documents = self._collection(collection)
            doc_id = doc_id or uuid4().hex
            if doc_id in documents:
                raise DuplicateError(collection, doc_id)
            now = utc_now()
            document = StoredDocument(
                id=doc_id,
                version=0,
                data=copy.deepcopy(data),
                created_at=now,
                updated_at=now,
            )
            documents[doc_id] = document
            return document.model_copy(deep=True)

    async def update(
        self,
        collection: str,
        doc_id: str,
        partial: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> StoredDocument:
        await self._round_trip()
        async with self._lock:
            documents = self._collection(collection)
            current = documents.get(doc_id)
            if current is None:
                raise NotFoundError(collection, doc_id)
            if expected_version is not None and current.version != expected_version:
                raise VersionConflictError(
                    collection, doc_id, expected_version, current.version
                )
            updated = StoredDocument(
                id=doc_id,
                version=current.version + 1,
                data={**current.data, **copy.deepcopy(partial)},
                created_at=current.created_at,
                updated_at=utc_now(),
            )
            documents[doc_id] = updated
            return updated.model_copy(deep=True)

