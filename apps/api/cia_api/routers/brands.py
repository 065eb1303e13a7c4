"""Brands — owned by exactly one client."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from cia_api.core.deps import get_facade
from cia_api.schemas.entities import BrandCreate, BrandUpdate
from cia_api.services.query_facade import QueryFacade

router = APIRouter()


@router.get("")
async def list_brands(
    client_id: Optional[str] = Query(None, alias="clientId"),
    facade: QueryFacade = Depends(get_facade),
):
    return await facade.list_brands(client_id)


@router.post("", status_code=201)
async def create_brand(
    req: BrandCreate,
    facade: QueryFacade = Depends(get_facade),
):
    brand_id = await facade.add_brand(req)
    return await facade.get_brand(brand_id)


@router.get("/{brand_id}")
async def get_brand(brand_id: str, facade: QueryFacade = Depends(get_facade)):
    brand = await facade.get_brand(brand_id)
    if brand is None:
        raise HTTPException(404, f"Brand {brand_id} not found")
    return brand


@router.put("/{brand_id}")
async def update_brand(
    brand_id: str,
    req: BrandUpdate,
    facade: QueryFacade = Depends(get_facade),
):
    await facade.update_brand(brand_id, req)
    return await facade.get_brand(brand_id)


@router.delete("/{brand_id}")
async def delete_brand(brand_id: str, facade: QueryFacade = Depends(get_facade)):
    await facade.delete_brand(brand_id)
    return {"deleted": brand_id}
