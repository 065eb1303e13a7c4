from cia_api.services.store.base import (
    BatchOp,
    DocumentBackend,
    OrderBy,
    StoredDocument,
    VersionConflict,
)
from cia_api.services.store.entity_store import EntityStore, WriteBatch
from cia_api.services.store.memory import MemoryDocumentBackend, SimulatedStoreError
from cia_api.services.store.sql import SqlDocumentBackend

__all__ = [
    "BatchOp",
    "DocumentBackend",
    "EntityStore",
    "MemoryDocumentBackend",
    "OrderBy",
    "SimulatedStoreError",
    "SqlDocumentBackend",
    "StoredDocument",
    "VersionConflict",
    "WriteBatch",
]
