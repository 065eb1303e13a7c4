"""
Reference resolver — turns foreign keys into cached display names.

Called on write paths only. The names it returns are stored on the
referencing document and served as-is on reads, so they reflect the
referenced entity as of the referencing document's last write.
"""

import asyncio
import logging
from typing import Iterable, Optional

from cia_api.core.errors import DanglingReference
from cia_api.services.collections import PLACEHOLDERS
from cia_api.services.store import EntityStore

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER = "Unknown"


def placeholder_for(collection: str) -> str:
    return PLACEHOLDERS.get(collection, DEFAULT_PLACEHOLDER)


class ReferenceResolver:
    """Looks up referenced entities and returns their display names."""

    def __init__(self, store: EntityStore):
        self.store = store

    async def lookup(self, ref_collection: str, ref_id: str) -> str:
        """Name of the referenced entity; raises ``DanglingReference`` if absent."""
        entity = await self.store.find(ref_collection, ref_id)
        if entity is None:
            raise DanglingReference(ref_collection, ref_id)
        return entity.get("name") or entity.get("title") or ref_id

    async def resolve_display_name(
        self, ref_collection: str, ref_id: Optional[str]
    ) -> Optional[str]:
        """Display name for a reference, or the collection's placeholder.

        Returns None when there is no reference at all (``ref_id`` empty),
        which callers store to clear a cached name.
        """
        if not ref_id:
            return None
        try:
            return await self.lookup(ref_collection, ref_id)
        except DanglingReference as exc:
            logger.warning(f"{exc.message}; using placeholder")
            return placeholder_for(ref_collection)

    async def resolve_many(
        self, ref_collection: str, ref_ids: Iterable[str]
    ) -> list[str]:
        """Resolve sibling references together, preserving input order."""
        ids = list(ref_ids)
        names = await asyncio.gather(
            *(self.resolve_display_name(ref_collection, ref_id) for ref_id in ids)
        )
        return [name or placeholder_for(ref_collection) for name in names]
