"""
Cascade coordinator — multi-document deletes as staged atomic batches.

Every delete follows the same two phases:

1. **Stage**: query the dependents and record deletes/updates in a
   ``WriteBatch``. Nothing is written; a failure here discards the batch
   and propagates unchanged.
2. **Commit**: hand the batch to the store. All staged writes land or none
   do; a failed commit surfaces as ``CascadeFailed``.

Staging walks each subtree children first (responses, then the survey;
surveys, then the campaign; campaigns and brands, then the client). When a
cascade is larger than the store accepts in one batch it is committed in
consecutive chunks in that order, so an interrupted cascade only ever
leaves whole leaves removed under an intact parent, and re-running the
same delete finishes it.
"""

import logging
from typing import Awaitable, Callable, Optional

from cia_api.core.errors import CascadeFailed
from cia_api.services.collections import (
    BRANDS,
    CAMPAIGNS,
    CLIENTS,
    REWARD_PROGRAMS,
    SURVEYS,
    responses_of,
)
from cia_api.services.store import BatchOp, EntityStore, WriteBatch

logger = logging.getLogger(__name__)

StageFn = Callable[[WriteBatch], Awaitable[None]]


def _chunks(ops: list[BatchOp], size: Optional[int]) -> list[list[BatchOp]]:
    if not size or len(ops) <= size:
        return [ops]
    return [ops[i:i + size] for i in range(0, len(ops), size)]


class CascadeCoordinator:
    """Deletes parents together with everything that depends on them."""

    def __init__(self, store: EntityStore, max_batch_size: Optional[int] = None):
        self.store = store
        limits = [
            limit
            for limit in (max_batch_size, store.backend.max_batch_size)
            if limit
        ]
        self.max_batch_size: Optional[int] = min(limits) if limits else None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def delete_client(self, client_id: str) -> None:
        """Client, its campaigns, their surveys and responses, and its brands."""

        async def stage(batch: WriteBatch) -> None:
            campaigns = await self.store.list(CAMPAIGNS, {"clientId": client_id})
            for campaign in campaigns:
                await self._stage_campaign(batch, campaign["id"])
            brands = await self.store.list(BRANDS, {"clientId": client_id})
            for brand in brands:
                batch.delete(BRANDS, brand["id"])
            batch.delete(CLIENTS, client_id)

        await self._run("delete_client", CLIENTS, client_id, stage)

    async def delete_campaign(self, campaign_id: str) -> None:
        async def stage(batch: WriteBatch) -> None:
            await self._stage_campaign(batch, campaign_id)

        await self._run("delete_campaign", CAMPAIGNS, campaign_id, stage)

    async def delete_survey(self, survey_id: str) -> None:
        async def stage(batch: WriteBatch) -> None:
            await self._stage_survey(batch, survey_id)

        await self._run("delete_survey", SURVEYS, survey_id, stage)

    async def delete_reward_program(self, program_id: str) -> None:
        """Detach the program from every survey, then delete it. Surveys survive."""

        async def stage(batch: WriteBatch) -> None:
            surveys = await self.store.list(SURVEYS, {"rewardProgramId": program_id})
            for survey in surveys:
                batch.update(
                    SURVEYS,
                    survey["id"],
                    {"rewardProgramId": None, "rewardProgramName": None},
                )
            batch.delete(REWARD_PROGRAMS, program_id)

        await self._run("delete_reward_program", REWARD_PROGRAMS, program_id, stage)

    async def delete_brand(self, brand_id: str) -> None:
        """Remove the brand from its client's campaigns, then delete it.

        Surveys keep their ``brandId``/``brandName``; they become dangling
        references like any other.
        """

        async def stage(batch: WriteBatch) -> None:
            brand = await self.store.find(BRANDS, brand_id)
            if brand is not None and brand.get("clientId"):
                campaigns = await self.store.list(
                    CAMPAIGNS, {"clientId": brand["clientId"]}
                )
                for campaign in campaigns:
                    brand_ids = campaign.get("brandIds") or []
                    if brand_id in brand_ids:
                        batch.update(
                            CAMPAIGNS,
                            campaign["id"],
                            {"brandIds": [b for b in brand_ids if b != brand_id]},
                        )
            batch.delete(BRANDS, brand_id)

        await self._run("delete_brand", BRANDS, brand_id, stage)

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    async def _stage_survey(self, batch: WriteBatch, survey_id: str) -> None:
        responses = await self.store.list(responses_of(survey_id))
        for response in responses:
            batch.delete(responses_of(survey_id), response["id"])
        batch.delete(SURVEYS, survey_id)

    async def _stage_campaign(self, batch: WriteBatch, campaign_id: str) -> None:
        surveys = await self.store.list(SURVEYS, {"campaignId": campaign_id})
        for survey in surveys:
            await self._stage_survey(batch, survey["id"])
        batch.delete(CAMPAIGNS, campaign_id)

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    async def _run(self, operation: str, collection: str, entity_id: str, stage: StageFn) -> None:
        batch = self.store.batch()
        try:
            await stage(batch)
        except Exception:
            batch.discard()
            raise

        ops = batch.ops
        chunks = _chunks(ops, self.max_batch_size)
        if len(chunks) > 1:
            logger.info(
                f"{operation} {entity_id}: {len(ops)} writes exceed batch limit "
                f"{self.max_batch_size}, committing in {len(chunks)} chunks"
            )

        applied = 0
        for index, chunk in enumerate(chunks, start=1):
            try:
                await self.store.commit(chunk)
            except Exception as exc:
                logger.error(
                    f"{operation} {entity_id} failed on chunk {index}/{len(chunks)} "
                    f"({applied}/{len(ops)} writes applied): {exc}",
                    exc_info=True,
                )
                raise CascadeFailed(
                    operation, collection, entity_id, applied=applied, staged=len(ops)
                ) from exc
            applied += len(chunk)

        batch.discard()
        logger.info(f"{operation} {entity_id}: committed {len(ops)} writes")
