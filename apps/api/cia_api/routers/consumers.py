"""Consumers — survey takers."""
from fastapi import APIRouter, Depends, HTTPException

from cia_api.core.deps import get_facade
from cia_api.schemas.entities import ConsumerCreate, ConsumerUpdate
from cia_api.services.query_facade import QueryFacade

router = APIRouter()


@router.get("")
async def list_consumers(facade: QueryFacade = Depends(get_facade)):
    return await facade.list_consumers()


@router.post("", status_code=201)
async def create_consumer(
    req: ConsumerCreate,
    facade: QueryFacade = Depends(get_facade),
):
    consumer_id = await facade.add_consumer(req)
    return await facade.get_consumer(consumer_id)


@router.get("/{consumer_id}")
async def get_consumer(consumer_id: str, facade: QueryFacade = Depends(get_facade)):
    consumer = await facade.get_consumer(consumer_id)
    if consumer is None:
        raise HTTPException(404, f"Consumer {consumer_id} not found")
    return consumer


@router.put("/{consumer_id}")
async def update_consumer(
    consumer_id: str,
    req: ConsumerUpdate,
    facade: QueryFacade = Depends(get_facade),
):
    await facade.update_consumer(consumer_id, req)
    return await facade.get_consumer(consumer_id)


@router.delete("/{consumer_id}")
async def delete_consumer(consumer_id: str, facade: QueryFacade = Depends(get_facade)):
    await facade.delete_consumer(consumer_id)
    return {"deleted": consumer_id}
