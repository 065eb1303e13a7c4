"""Dashboard — KPI totals and recent activity."""
from fastapi import APIRouter, Depends, Query

from cia_api.core.deps import get_facade
from cia_api.services.query_facade import QueryFacade

router = APIRouter()


@router.get("/kpis")
async def kpis(facade: QueryFacade = Depends(get_facade)):
    data = await facade.get_kpi_data()
    return data.model_dump(by_alias=True)


@router.get("/recent-campaigns")
async def recent_campaigns(
    count: int = Query(4, ge=1, le=100),
    facade: QueryFacade = Depends(get_facade),
):
    return await facade.get_recent_campaigns(count)
