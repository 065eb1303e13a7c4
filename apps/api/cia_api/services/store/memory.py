"""In-process document backend.

Stands in for the document database in tests and local demos. It honours
the same contract as the SQL backend: atomic batches, versioned
compare-and-set, deterministic ordering. Every call yields to the event
loop so concurrent callers interleave the way they would against a real
store.
"""

import asyncio
import copy
import logging
from datetime import datetime
from typing import Any, Optional

from cia_api.services.store.base import (
    BatchOp,
    DocumentBackend,
    OrderBy,
    StoredDocument,
    VersionConflict,
    matches,
)

logger = logging.getLogger(__name__)


class SimulatedStoreError(ConnectionError):
    """Raised by the failure-injection hook."""


class MemoryDocumentBackend(DocumentBackend):

    def __init__(self, max_batch_size: Optional[int] = None, latency: float = 0.0):
        self._collections: dict[str, dict[str, StoredDocument]] = {}
        self._lock = asyncio.Lock()
        self.max_batch_size = max_batch_size
        self.latency = latency
        self.commits = 0
        self._fail_after: Optional[int] = None
        self._fail_remaining = 0

    # -- test hooks --

    def fail_next_commits(self, count: int = 1, after: int = 0) -> None:
        """Make ``count`` batch commits fail once ``after`` more have succeeded."""
        self._fail_after = after
        self._fail_remaining = count

    def snapshot(self) -> dict[str, dict[str, dict[str, Any]]]:
        """Copy of every collection's data, for assertions."""
        return {
            name: {doc_id: copy.deepcopy(doc.data) for doc_id, doc in docs.items()}
            for name, docs in self._collections.items()
            if docs
        }

    # -- helpers --

    async def _tick(self) -> None:
        await asyncio.sleep(self.latency)

    def _docs(self, collection: str) -> dict[str, StoredDocument]:
        return self._collections.setdefault(collection, {})

    @staticmethod
    def _copy(doc: StoredDocument) -> StoredDocument:
        return StoredDocument(
            collection=doc.collection,
            id=doc.id,
            data=copy.deepcopy(doc.data),
            created_at=doc.created_at,
            updated_at=doc.updated_at,
            version=doc.version,
        )

    @staticmethod
    def _sort_key(doc: StoredDocument, order_by: OrderBy):
        if order_by.field == "createdAt":
            value = doc.created_at
        elif order_by.field == "updatedAt":
            value = doc.updated_at
        else:
            value = doc.data.get(order_by.field)
        return (value is None, value if value is not None else "", doc.id)

    def _should_fail_commit(self) -> bool:
        if self._fail_remaining <= 0 or self._fail_after is None:
            return False
        if self._fail_after > 0:
            self._fail_after -= 1
            return False
        self._fail_remaining -= 1
        return True

    # -- DocumentBackend --

    async def insert(self, collection, doc_id, data, now):
        await self._tick()
        async with self._lock:
            self._docs(collection)[doc_id] = StoredDocument(
                collection=collection,
                id=doc_id,
                data=copy.deepcopy(data),
                created_at=now,
                updated_at=now,
            )

    async def fetch(self, collection, doc_id):
        await self._tick()
        doc = self._docs(collection).get(doc_id)
        return self._copy(doc) if doc else None

    async def query(self, collection, filters=None, order_by=None, limit=None):
        await self._tick()
        docs = [d for d in self._docs(collection).values() if matches(d.data, filters)]
        if order_by is not None:
            docs.sort(key=lambda d: self._sort_key(d, order_by), reverse=order_by.descending)
        else:
            docs.sort(key=lambda d: d.id)
        if limit is not None:
            docs = docs[:limit]
        return [self._copy(d) for d in docs]

    async def count(self, collection, filters=None):
        await self._tick()
        return sum(1 for d in self._docs(collection).values() if matches(d.data, filters))

    async def patch(self, collection, doc_id, fields, now):
        await self._tick()
        async with self._lock:
            doc = self._docs(collection).get(doc_id)
            if doc is None:
                return False
            doc.data.update(copy.deepcopy(fields))
            doc.updated_at = now
            doc.version += 1
            return True

    async def remove(self, collection, doc_id):
        await self._tick()
        async with self._lock:
            self._docs(collection).pop(doc_id, None)

    async def compare_and_set(self, collection, doc_id, expected_version, fields, now):
        await self._tick()
        async with self._lock:
            doc = self._docs(collection).get(doc_id)
            if doc is None or doc.version != expected_version:
                return False
            doc.data.update(copy.deepcopy(fields))
            doc.updated_at = now
            doc.version += 1
            return True

    async def commit_batch(self, ops: list[BatchOp], now: datetime) -> None:
        await self._tick()
        async with self._lock:
            if self.max_batch_size is not None and len(ops) > self.max_batch_size:
                raise ValueError(
                    f"Batch of {len(ops)} writes exceeds the limit of {self.max_batch_size}"
                )
            if self._should_fail_commit():
                raise SimulatedStoreError("Simulated commit failure")

            # Build the post-commit state first so a bad op leaves nothing applied.
            staged: dict[tuple[str, str], Optional[StoredDocument]] = {}
            for op in ops:
                key = (op.collection, op.doc_id)
                current = staged[key] if key in staged else self._docs(op.collection).get(op.doc_id)
                if op.kind == "delete":
                    staged[key] = None
                elif op.kind == "insert":
                    if current is not None:
                        raise ValueError(f"Document {op.collection}/{op.doc_id} already exists")
                    staged[key] = StoredDocument(
                        collection=op.collection,
                        id=op.doc_id,
                        data=copy.deepcopy(op.fields),
                        created_at=now,
                        updated_at=now,
                    )
                elif op.kind == "update":
                    if op.expected_version is not None and (
                        current is None or current.version != op.expected_version
                    ):
                        raise VersionConflict(op.collection, op.doc_id)
                    if current is None:
                        continue
                    updated = self._copy(current)
                    updated.data.update(copy.deepcopy(op.fields))
                    updated.updated_at = now
                    updated.version += 1
                    staged[key] = updated
                else:
                    raise ValueError(f"Unknown batch op: {op.kind}")

            for (collection, doc_id), doc in staged.items():
                if doc is None:
                    self._docs(collection).pop(doc_id, None)
                else:
                    self._docs(collection)[doc_id] = doc
            self.commits += 1
