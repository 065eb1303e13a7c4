"""Document backend interface shared by the SQL and in-memory stores.

A backend owns raw persistence only: documents are plain JSON dicts keyed by
``(collection, id)`` with store-side ``created_at``/``updated_at`` and a
``version`` that increases on every write. Timestamp stamping, ISO
conversion and timeouts live one level up in ``EntityStore``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional


@dataclass
class StoredDocument:
    collection: str
    id: str
    data: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    version: int = 1


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass
class BatchOp:
    kind: Literal["delete", "update", "insert"]
    collection: str
    doc_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    # Updates only: the version the document must still be at when committed.
    expected_version: Optional[int] = None


class VersionConflict(Exception):
    """A guarded write found its document missing or at another version."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} changed concurrently")
        self.collection = collection
        self.doc_id = doc_id


class DocumentBackend(ABC):
    """Raw CRUD, count, batched writes and compare-and-set over documents."""

    # Maximum operations a single atomic batch may hold; None means unbounded.
    max_batch_size: Optional[int] = None

    @abstractmethod
    async def insert(
        self, collection: str, doc_id: str, data: dict[str, Any], now: datetime
    ) -> None:
        ...

    @abstractmethod
    async def fetch(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        """Documents whose fields equal every filter value.

        Ties on ``order_by`` are broken by document id so the order is
        deterministic across calls.
        """
        ...

    @abstractmethod
    async def count(
        self, collection: str, filters: Optional[dict[str, Any]] = None
    ) -> int:
        ...

    @abstractmethod
    async def patch(
        self, collection: str, doc_id: str, fields: dict[str, Any], now: datetime
    ) -> bool:
        """Shallow-merge fields into a document. Returns False if it does not exist."""
        ...

    @abstractmethod
    async def remove(self, collection: str, doc_id: str) -> None:
        """Delete a document; a missing id is not an error."""
        ...

    @abstractmethod
    async def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        expected_version: int,
        fields: dict[str, Any],
        now: datetime,
    ) -> bool:
        """Merge fields only if the document is still at ``expected_version``."""
        ...

    @abstractmethod
    async def commit_batch(self, ops: list[BatchOp], now: datetime) -> None:
        """Apply every op or none of them.

        Unguarded updates of documents that no longer exist are skipped. An
        update with ``expected_version`` raises ``VersionConflict`` when its
        document is missing or has moved on, and nothing is applied.
        """
        ...

    async def close(self) -> None:
        return None


def matches(data: dict[str, Any], filters: Optional[dict[str, Any]]) -> bool:
    if not filters:
        return True
    return all(data.get(k) == v for k, v in filters.items())
