"""
Async SQL document backend.

Stores every collection in the single ``documents`` table with the document
body in a JSON/JSONB column. Short-lived async sessions per call, one
transaction per batch. Every update is an ``UPDATE ... WHERE version`` against
the version it read, so no writer overwrites a change it never saw.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from cia_api.database import Base, engine_options
from cia_api.models.document import Document
from cia_api.services.store.base import (
    BatchOp,
    DocumentBackend,
    OrderBy,
    StoredDocument,
    VersionConflict,
)

logger = logging.getLogger(__name__)

# Attempts for a write whose read was overtaken by another writer.
STALE_ROW_ATTEMPTS = 10


def _condition(field: str, value: Any):
    expr = Document.data[field]
    if value is None:
        return expr.as_string().is_(None)
    if isinstance(value, bool):
        return expr.as_boolean() == value
    if isinstance(value, int):
        return expr.as_integer() == value
    if isinstance(value, float):
        return expr.as_float() == value
    return expr.as_string() == str(value)


def _order_column(field: str):
    if field == "createdAt":
        return Document.created_at
    if field == "updatedAt":
        return Document.updated_at
    return Document.data[field].as_string()


def _to_stored(row: Document) -> StoredDocument:
    return StoredDocument(
        collection=row.collection,
        id=row.id,
        data=dict(row.data or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


class _StaleRow(VersionConflict):
    """An unguarded update lost a race; the whole transaction is retried."""


async def _insert(db: AsyncSession, collection: str, doc_id: str, data: dict, now: datetime) -> None:
    await db.execute(
        insert(Document).values(
            collection=collection,
            id=doc_id,
            data=data,
            version=1,
            created_at=now,
            updated_at=now,
        )
    )


async def _merge(
    db: AsyncSession,
    collection: str,
    doc_id: str,
    fields: dict[str, Any],
    now: datetime,
    expected_version: Optional[int] = None,
) -> bool:
    """Shallow-merge ``fields`` with an ``UPDATE ... WHERE version = <read>``.

    Returns False if the document is missing and the write is unguarded.
    """
    row = (
        await db.execute(
            select(Document.data, Document.version).where(
                Document.collection == collection, Document.id == doc_id
            )
        )
    ).first()
    guarded = expected_version is not None
    if row is None:
        if guarded:
            raise VersionConflict(collection, doc_id)
        return False
    if guarded and row.version != expected_version:
        raise VersionConflict(collection, doc_id)

    result = await db.execute(
        update(Document)
        .where(
            Document.collection == collection,
            Document.id == doc_id,
            Document.version == row.version,
        )
        .values(
            data={**(row.data or {}), **fields},
            version=row.version + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        if guarded:
            raise VersionConflict(collection, doc_id)
        raise _StaleRow(collection, doc_id)
    return True


class SqlDocumentBackend(DocumentBackend):
    """Document backend over SQLAlchemy async sessions."""

    max_batch_size = None

    def __init__(
        self,
        session_factory: async_sessionmaker,
        engine: Optional[AsyncEngine] = None,
    ):
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> "SqlDocumentBackend":
        engine = create_async_engine(url, **engine_options(url, echo=echo))
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        return cls(factory, engine)

    async def create_schema(self) -> None:
        """Create the ``documents`` table (tests and local runs; production uses Alembic)."""
        if self._engine is None:
            raise RuntimeError("create_schema needs the backend to own its engine")
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch(self, collection, doc_id):
        async with self._session_factory() as db:
            row = await db.get(Document, (collection, doc_id))
            return _to_stored(row) if row else None

    async def query(self, collection, filters=None, order_by=None, limit=None):
        stmt = select(Document).where(Document.collection == collection)
        for field, value in (filters or {}).items():
            stmt = stmt.where(_condition(field, value))
        if order_by is not None:
            column = _order_column(order_by.field)
            if order_by.descending:
                stmt = stmt.order_by(column.desc().nulls_first(), Document.id.desc())
            else:
                stmt = stmt.order_by(column.asc().nulls_last(), Document.id.asc())
        else:
            stmt = stmt.order_by(Document.id.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            rows = result.scalars().all()
        return [_to_stored(r) for r in rows]

    async def count(self, collection, filters=None):
        stmt = (
            select(func.count())
            .select_from(Document)
            .where(Document.collection == collection)
        )
        for field, value in (filters or {}).items():
            stmt = stmt.where(_condition(field, value))
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(_StaleRow),
            stop=stop_after_attempt(STALE_ROW_ATTEMPTS),
            reraise=True,
        )

    async def insert(self, collection, doc_id, data, now):
        async with self._session_factory() as db:
            async with db.begin():
                await _insert(db, collection, doc_id, data, now)

    async def patch(self, collection, doc_id, fields, now):
        async for attempt in self._retrying():
            with attempt:
                async with self._session_factory() as db:
                    async with db.begin():
                        return await _merge(db, collection, doc_id, fields, now)

    async def remove(self, collection, doc_id):
        async with self._session_factory() as db:
            await db.execute(
                delete(Document)
                .where(Document.collection == collection, Document.id == doc_id)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

    async def compare_and_set(self, collection, doc_id, expected_version, fields, now):
        try:
            async with self._session_factory() as db:
                async with db.begin():
                    return await _merge(db, collection, doc_id, fields, now, expected_version)
        except VersionConflict:
            return False

    async def commit_batch(self, ops: list[BatchOp], now: datetime) -> None:
        async for attempt in self._retrying():
            with attempt:
                async with self._session_factory() as db:
                    async with db.begin():
                        for op in ops:
                            await self._apply(db, op, now)
        logger.debug(f"Committed batch of {len(ops)} writes")

    @staticmethod
    async def _apply(db: AsyncSession, op: BatchOp, now: datetime) -> None:
        if op.kind == "delete":
            await db.execute(
                delete(Document)
                .where(Document.collection == op.collection, Document.id == op.doc_id)
                .execution_options(synchronize_session=False)
            )
        elif op.kind == "update":
            await _merge(db, op.collection, op.doc_id, op.fields, now, op.expected_version)
        elif op.kind == "insert":
            await _insert(db, op.collection, op.doc_id, op.fields, now)
        else:
            raise ValueError(f"Unknown batch op: {op.kind}")
