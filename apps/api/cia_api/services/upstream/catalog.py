"""
Display shapes over the upstream REST API.

The upstream API stores raw foreign keys only, so names are joined here at
read time. Placeholders match the local reference resolver so both paths
render a dangling reference the same way.
"""

import asyncio
import logging
from typing import Any, Optional

from cia_api.services.collections import BRANDS, CAMPAIGNS, CLIENTS
from cia_api.services.query_facade import NO_BRANDS
from cia_api.services.resolver import placeholder_for
from cia_api.services.upstream.client import CiaApiClient

logger = logging.getLogger(__name__)


def _names(entities: list[dict[str, Any]]) -> dict[str, str]:
    return {e["id"]: e.get("name") or e.get("title") or "" for e in entities if e.get("id")}


class RemoteCatalog:

    def __init__(self, client: CiaApiClient):
        self.client = client

    async def campaigns_with_details(
        self, client_id: Optional[str] = None
    ) -> list[dict[str, Any]]:
        campaigns, clients, brands = await asyncio.gather(
            self.client.list_campaigns(client_id),
            self.client.list_clients(),
            self.client.list_brands(),
        )
        client_names, brand_names = _names(clients), _names(brands)
        rows = []
        for campaign in campaigns:
            names = [
                brand_names.get(b) or placeholder_for(BRANDS)
                for b in campaign.get("brandIds") or []
            ]
            rows.append({
                **campaign,
                "clientName": client_names.get(campaign.get("clientId"))
                or placeholder_for(CLIENTS),
                "brandNames": names or [NO_BRANDS],
            })
        return rows

    async def surveys_with_details(
        self, campaign_id: Optional[str] = None, brand_id: Optional[str] = None
    ) -> list[dict[str, Any]]:
        surveys, campaigns, brands, clients = await asyncio.gather(
            self.client.list_surveys(campaign_id, brand_id),
            self.client.list_campaigns(),
            self.client.list_brands(),
            self.client.list_clients(),
        )
        campaigns_by_id = {c["id"]: c for c in campaigns if c.get("id")}
        brand_names, client_names = _names(brands), _names(clients)
        rows = []
        for survey in surveys:
            campaign = campaigns_by_id.get(survey.get("campaignId"))
            if campaign is None:
                logger.warning(
                    f"Survey {survey.get('id')} references missing campaign "
                    f"{survey.get('campaignId')}"
                )
            rows.append({
                **survey,
                "campaignName": (campaign or {}).get("name") or placeholder_for(CAMPAIGNS),
                "brandName": brand_names.get(survey.get("brandId")) or (
                    placeholder_for(BRANDS) if survey.get("brandId") else NO_BRANDS
                ),
                "clientName": client_names.get((campaign or {}).get("clientId"))
                or placeholder_for(CLIENTS),
            })
        return rows
