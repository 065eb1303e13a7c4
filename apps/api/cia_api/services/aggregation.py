"""
Aggregation service — counts and counters.

Counts use the store's count-only path; nothing here loads entity bodies
just to take a length. Counters are read-modify-write under optimistic
concurrency: read the document with its version, write back only if the
version is unchanged, otherwise re-read and retry a bounded number of times.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from cia_api.core.errors import ConcurrentUpdateExceeded
from cia_api.schemas.entities import ClientCampaign, KpiData
from cia_api.services.collections import CAMPAIGNS, CLIENTS, SURVEYS
from cia_api.services.store import BatchOp, EntityStore, OrderBy, VersionConflict

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5
# Upper bound (seconds) of the jittered pause after a conflicting write.
RETRY_BACKOFF = 0.01


class WriteConflict(Exception):
    """The document changed between the read and the conditional write."""


@dataclass
class CounterIncrement:
    collection: str
    doc_id: str
    field: str
    amount: int = 1
    also_set: Optional[dict[str, Any]] = None


class AggregationService:

    def __init__(
        self,
        store: EntityStore,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff: float = RETRY_BACKOFF,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.store = store
        self.max_retries = max_retries
        self.backoff = backoff

    async def count_where(
        self,
        collection: str,
        filter_field: Optional[str] = None,
        filter_value: Any = None,
    ) -> int:
        filters = {filter_field: filter_value} if filter_field else None
        return await self.store.count(collection, filters)

    async def increment_counter(
        self,
        collection: str,
        doc_id: str,
        field: str,
        amount: int = 1,
        also_set: Optional[dict[str, Any]] = None,
    ) -> int:
        """Atomically add ``amount`` to ``field`` and return the new value.

        An absent field counts as 0. ``also_set`` fields are written in the
        same conditional write. Raises ``NotFound`` if the document does not
        exist and ``ConcurrentUpdateExceeded`` once every attempt has lost a
        race with another writer.
        """
        try:
            async for attempt in self._retrying():
                with attempt:
                    return await self._try_increment(
                        collection, doc_id, field, amount, also_set,
                        attempt.retry_state.attempt_number,
                    )
        except RetryError as exc:
            raise ConcurrentUpdateExceeded(
                collection, doc_id, field, self.max_retries
            ) from exc

    async def apply_increments(
        self,
        increments: Sequence[CounterIncrement],
        with_ops: Sequence[BatchOp] = (),
    ) -> list[int]:
        """Commit ``with_ops`` and every increment as one atomic batch.

        Each counter update is guarded by the version it was read at, so the
        batch either lands whole or not at all; a lost race re-reads and
        retries like ``increment_counter``. Returns the new counter values in
        order.
        """
        if not increments:
            raise ValueError("apply_increments needs at least one increment")
        try:
            async for attempt in self._retrying():
                with attempt:
                    return await self._try_apply(
                        increments, with_ops, attempt.retry_state.attempt_number
                    )
        except RetryError as exc:
            first = increments[0]
            raise ConcurrentUpdateExceeded(
                first.collection, first.doc_id, first.field, self.max_retries
            ) from exc

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(WriteConflict),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_random(0, self.backoff),
        )

    async def _try_increment(
        self,
        collection: str,
        doc_id: str,
        field: str,
        amount: int,
        also_set: Optional[dict[str, Any]],
        attempt: int,
    ) -> int:
        data, version = await self.store.read_versioned(collection, doc_id)
        new_value = (data.get(field) or 0) + amount
        fields = {**(also_set or {}), field: new_value}
        if await self.store.compare_and_set(collection, doc_id, version, fields):
            return new_value
        logger.warning(
            f"Write conflict incrementing {field} on {collection}/{doc_id} "
            f"(attempt {attempt}/{self.max_retries})"
        )
        raise WriteConflict(f"{collection}/{doc_id} changed since version {version}")

    async def _try_apply(
        self,
        increments: Sequence[CounterIncrement],
        with_ops: Sequence[BatchOp],
        attempt: int,
    ) -> list[int]:
        reads = await asyncio.gather(
            *(self.store.read_versioned(i.collection, i.doc_id) for i in increments)
        )
        batch = self.store.batch()
        batch.extend(list(with_ops))
        values = []
        for inc, (data, version) in zip(increments, reads):
            new_value = (data.get(inc.field) or 0) + inc.amount
            values.append(new_value)
            batch.update(
                inc.collection,
                inc.doc_id,
                {**(inc.also_set or {}), inc.field: new_value},
                expected_version=version,
            )
        try:
            await batch.commit()
        except VersionConflict as exc:
            logger.warning(
                f"Write conflict on {exc.collection}/{exc.doc_id} "
                f"(attempt {attempt}/{self.max_retries})"
            )
            raise WriteConflict(str(exc)) from exc
        return values

    async def get_kpi_data(self) -> KpiData:
        """Dashboard totals. The four reads are issued together."""
        clients, campaigns, surveys, respondents = await asyncio.gather(
            self.count_where(CLIENTS),
            self.count_where(CAMPAIGNS),
            self.count_where(SURVEYS),
            self.total_respondents(),
        )
        return KpiData(
            total_clients=clients,
            total_campaigns=campaigns,
            total_surveys=surveys,
            total_respondents=respondents,
        )

    async def total_respondents(self) -> int:
        # O(surveys): sums the cached counter on every survey.
        surveys = await self.store.list(SURVEYS)
        return sum(int(s.get("responseCount") or 0) for s in surveys)

    async def survey_count_for_campaign(self, campaign_id: str) -> int:
        return await self.count_where(SURVEYS, "campaignId", campaign_id)

    async def campaign_summaries_for_client(self, client_id: str) -> list[ClientCampaign]:
        campaigns = await self.store.list(
            CAMPAIGNS, {"clientId": client_id}, OrderBy("createdAt", descending=True)
        )
        counts = await asyncio.gather(
            *(self.survey_count_for_campaign(c["id"]) for c in campaigns)
        )
        return [
            ClientCampaign(id=c["id"], name=c.get("name") or "", survey_count=n)
            for c, n in zip(campaigns, counts)
        ]
