"""FastAPI dependencies — the process-wide query façade."""

import logging
from typing import Optional

from cia_api.config import settings
from cia_api.database import async_session, engine
from cia_api.services.aggregation import AggregationService
from cia_api.services.cascade import CascadeCoordinator
from cia_api.services.query_facade import QueryFacade
from cia_api.services.resolver import ReferenceResolver
from cia_api.services.store import (
    DocumentBackend,
    EntityStore,
    MemoryDocumentBackend,
    SqlDocumentBackend,
)

logger = logging.getLogger(__name__)

_facade: Optional[QueryFacade] = None


def build_backend(name: Optional[str] = None) -> DocumentBackend:
    name = name or settings.store_backend
    if name == "memory":
        return MemoryDocumentBackend()
    return SqlDocumentBackend(async_session, engine)


def build_facade(store: EntityStore) -> QueryFacade:
    return QueryFacade(
        store,
        resolver=ReferenceResolver(store),
        cascade=CascadeCoordinator(store, max_batch_size=settings.cascade_max_batch_size),
        aggregation=AggregationService(store, max_retries=settings.counter_max_retries),
    )


def get_facade() -> QueryFacade:
    global _facade
    if _facade is None:
        store = EntityStore(build_backend(), timeout=settings.store_timeout_seconds)
        _facade = build_facade(store)
        logger.info(f"Entity store ready (backend={settings.store_backend})")
    return _facade


async def close_facade() -> None:
    global _facade
    if _facade is not None:
        await _facade.store.close()
        _facade = None
