"""Clients — CRUD plus the per-client campaign summary."""
from fastapi import APIRouter, Depends, HTTPException

from cia_api.core.deps import get_facade
from cia_api.schemas.entities import ClientCreate, ClientUpdate
from cia_api.services.query_facade import QueryFacade

router = APIRouter()


@router.get("")
async def list_clients(facade: QueryFacade = Depends(get_facade)):
    return await facade.list_clients()


@router.post("", status_code=201)
async def create_client(
    req: ClientCreate,
    facade: QueryFacade = Depends(get_facade),
):
    client_id = await facade.add_client(req)
    return await facade.get_client(client_id)


@router.get("/{client_id}")
async def get_client(client_id: str, facade: QueryFacade = Depends(get_facade)):
    client = await facade.get_client(client_id)
    if client is None:
        raise HTTPException(404, f"Client {client_id} not found")
    return client


@router.put("/{client_id}")
async def update_client(
    client_id: str,
    req: ClientUpdate,
    facade: QueryFacade = Depends(get_facade),
):
    await facade.update_client(client_id, req)
    return await facade.get_client(client_id)


@router.delete("/{client_id}")
async def delete_client(client_id: str, facade: QueryFacade = Depends(get_facade)):
    """Deletes the client with its brands, campaigns, surveys and responses."""
    await facade.delete_client(client_id)
    return {"deleted": client_id}


@router.get("/{client_id}/campaigns")
async def client_campaigns(client_id: str, facade: QueryFacade = Depends(get_facade)):
    summaries = await facade.get_campaigns_for_client(client_id)
    return [s.model_dump(by_alias=True) for s in summaries]
