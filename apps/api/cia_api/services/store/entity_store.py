"""
Entity store — the persistence boundary of the consistency core.

Wraps a ``DocumentBackend`` with:
- store-side ``createdAt``/``updatedAt`` stamping (monotonic per store)
- ISO-8601 rendering of every temporal value handed back to callers
- a uniform per-call timeout that surfaces as ``StoreUnavailable``

Side effects never leave the named collection; cross-collection work is the
cascade coordinator's job.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Optional, TypeVar

from cia_api.core.errors import NotFound, StoreUnavailable
from cia_api.services.collections import TEMPORAL_FIELDS
from cia_api.services.store.base import (
    BatchOp,
    DocumentBackend,
    OrderBy,
    StoredDocument,
    VersionConflict,
)
from cia_api.utils import to_iso, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Keys the store owns; callers cannot set them through create/update.
RESERVED_FIELDS = frozenset({"id", "createdAt", "updatedAt"})


def _encode(value: Any) -> Any:
    """Make a field value JSON-storable (temporal values become ISO strings)."""
    if isinstance(value, (datetime, date)):
        return to_iso(value)
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


class WriteBatch:
    """Writes staged in memory and committed as one all-or-nothing unit."""

    def __init__(self, store: "EntityStore"):
        self._store = store
        self._ops: list[BatchOp] = []

    def create(
        self, collection: str, fields: dict[str, Any], doc_id: Optional[str] = None
    ) -> str:
        doc_id = doc_id or uuid.uuid4().hex
        self._ops.append(BatchOp("insert", collection, doc_id, EntityStore._clean(fields)))
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        self._ops.append(BatchOp("delete", collection, doc_id))

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> None:
        """Stage a merge. With ``expected_version`` the whole commit fails with
        ``VersionConflict`` unless the document is still at that version."""
        self._ops.append(
            BatchOp("update", collection, doc_id, _encode(dict(fields)), expected_version)
        )

    def extend(self, ops: list[BatchOp]) -> None:
        self._ops.extend(ops)

    @property
    def ops(self) -> list[BatchOp]:
        return list(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    def discard(self) -> None:
        self._ops.clear()

    async def commit(self) -> None:
        await self._store.commit(self.ops)
        self._ops.clear()


class EntityStore:
    """Raw create/read/update/delete per collection."""

    def __init__(self, backend: DocumentBackend, timeout: float = 10.0):
        self.backend = backend
        self.timeout = timeout
        self._last_stamp: Optional[datetime] = None

    # -- helpers --

    def now(self) -> datetime:
        """Store clock. Strictly increasing so createdAt ordering is total."""
        stamp = utcnow()
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = stamp
        return stamp

    async def _call(
        self,
        operation: str,
        awaitable: Awaitable[T],
        collection: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(
                f"Store call {operation} on {collection or 'store'} timed out after {self.timeout}s"
            )
            raise StoreUnavailable(
                operation, collection, entity_id, reason=f"timed out after {self.timeout}s"
            ) from exc

    @staticmethod
    def to_entity(doc: StoredDocument) -> dict[str, Any]:
        entity: dict[str, Any] = {"id": doc.id, **doc.data}
        entity["createdAt"] = to_iso(doc.created_at)
        entity["updatedAt"] = to_iso(doc.updated_at)
        for key in TEMPORAL_FIELDS:
            if key in entity:
                entity[key] = to_iso(entity[key])
        return entity

    @staticmethod
    def _clean(fields: dict[str, Any]) -> dict[str, Any]:
        return {k: _encode(v) for k, v in fields.items() if k not in RESERVED_FIELDS}

    # -- CRUD --

    async def create(
        self, collection: str, fields: dict[str, Any], doc_id: Optional[str] = None
    ) -> str:
        doc_id = doc_id or uuid.uuid4().hex
        await self._call(
            "create",
            self.backend.insert(collection, doc_id, self._clean(fields), self.now()),
            collection,
            doc_id,
        )
        return doc_id

    async def find(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        doc = await self._call(
            "get", self.backend.fetch(collection, doc_id), collection, doc_id
        )
        return self.to_entity(doc) if doc else None

    async def get_by_id(self, collection: str, doc_id: str) -> dict[str, Any]:
        entity = await self.find(collection, doc_id)
        if entity is None:
            raise NotFound(collection, doc_id)
        return entity

    async def list(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        docs = await self._call(
            "list",
            self.backend.query(collection, _encode(filters or {}), order_by, limit),
            collection,
        )
        return [self.to_entity(d) for d in docs]

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        try:
            found = await self._call(
                "update",
                self.backend.patch(collection, doc_id, self._clean(fields), self.now()),
                collection,
                doc_id,
            )
        except VersionConflict as exc:
            raise StoreUnavailable(
                "update", collection, doc_id, reason="kept losing to concurrent writers"
            ) from exc
        if not found:
            raise NotFound(collection, doc_id)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._call(
            "delete", self.backend.remove(collection, doc_id), collection, doc_id
        )

    async def count(self, collection: str, filters: Optional[dict[str, Any]] = None) -> int:
        return await self._call(
            "count", self.backend.count(collection, _encode(filters or {})), collection
        )

    # -- batched and conditional writes --

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def commit(self, ops: list[BatchOp]) -> None:
        """Commit staged ops as one atomic unit."""
        if not ops:
            return
        await self._call("commit", self.backend.commit_batch(ops, self.now()))

    async def read_versioned(
        self, collection: str, doc_id: str
    ) -> tuple[dict[str, Any], int]:
        """Raw document body plus its version, for compare-and-set loops."""
        doc = await self._call(
            "read", self.backend.fetch(collection, doc_id), collection, doc_id
        )
        if doc is None:
            raise NotFound(collection, doc_id)
        return doc.data, doc.version

    async def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        expected_version: int,
        fields: dict[str, Any],
    ) -> bool:
        return await self._call(
            "compare_and_set",
            self.backend.compare_and_set(
                collection, doc_id, expected_version, self._clean(fields), self.now()
            ),
            collection,
            doc_id,
        )

    async def close(self) -> None:
        await self.backend.close()
