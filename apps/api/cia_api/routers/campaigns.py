"""Campaigns — list/detail views and writes."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from cia_api.core.deps import get_facade
from cia_api.schemas.entities import CampaignCreate, CampaignUpdate
from cia_api.services.query_facade import QueryFacade

router = APIRouter()


@router.get("")
async def list_campaigns(
    client_id: Optional[str] = Query(None, alias="clientId"),
    brand_id: Optional[str] = Query(None, alias="brandId"),
    details: bool = Query(False),
    facade: QueryFacade = Depends(get_facade),
):
    if details:
        return await facade.list_campaigns_with_details(client_id, brand_id)
    return await facade.list_campaigns(client_id, brand_id)


@router.get("/recent")
async def recent_campaigns(
    count: int = Query(4, ge=1, le=100),
    facade: QueryFacade = Depends(get_facade),
):
    return await facade.get_recent_campaigns(count)


@router.post("", status_code=201)
async def create_campaign(
    req: CampaignCreate,
    facade: QueryFacade = Depends(get_facade),
):
    campaign_id = await facade.add_campaign(req)
    return await facade.get_campaign(campaign_id)


@router.get("/{campaign_id}")
async def get_campaign(campaign_id: str, facade: QueryFacade = Depends(get_facade)):
    campaign = await facade.get_campaign(campaign_id)
    if campaign is None:
        raise HTTPException(404, f"Campaign {campaign_id} not found")
    return campaign


@router.put("/{campaign_id}")
async def update_campaign(
    campaign_id: str,
    req: CampaignUpdate,
    facade: QueryFacade = Depends(get_facade),
):
    await facade.update_campaign(campaign_id, req)
    return await facade.get_campaign(campaign_id)


@router.delete("/{campaign_id}")
async def delete_campaign(campaign_id: str, facade: QueryFacade = Depends(get_facade)):
    await facade.delete_campaign(campaign_id)
    return {"deleted": campaign_id}


@router.get("/{campaign_id}/survey-count")
async def survey_count(campaign_id: str, facade: QueryFacade = Depends(get_facade)):
    return {"campaignId": campaign_id, "count": await facade.get_survey_count_for_campaign(campaign_id)}
