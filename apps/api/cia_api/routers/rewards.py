"""Reward programs and redemption items."""
from fastapi import APIRouter, Depends, HTTPException

from cia_api.core.deps import get_facade
from cia_api.schemas.entities import (
    RedemptionItemCreate,
    RedemptionItemUpdate,
    RewardProgramCreate,
    RewardProgramUpdate,
)
from cia_api.services.query_facade import QueryFacade

router = APIRouter()


# -- reward programs --

@router.get("/programs")
async def list_programs(facade: QueryFacade = Depends(get_facade)):
    return await facade.list_reward_programs()


@router.post("/programs", status_code=201)
async def create_program(
    req: RewardProgramCreate,
    facade: QueryFacade = Depends(get_facade),
):
    program_id = await facade.add_reward_program(req)
    return await facade.get_reward_program(program_id)


@router.get("/programs/{program_id}")
async def get_program(program_id: str, facade: QueryFacade = Depends(get_facade)):
    program = await facade.get_reward_program(program_id)
    if program is None:
        raise HTTPException(404, f"Reward program {program_id} not found")
    return program


@router.put("/programs/{program_id}")
async def update_program(
    program_id: str,
    req: RewardProgramUpdate,
    facade: QueryFacade = Depends(get_facade),
):
    await facade.update_reward_program(program_id, req)
    return await facade.get_reward_program(program_id)


@router.delete("/programs/{program_id}")
async def delete_program(program_id: str, facade: QueryFacade = Depends(get_facade)):
    """Detaches the program from its surveys, then deletes it."""
    await facade.delete_reward_program(program_id)
    return {"deleted": program_id}


# -- redemption items --

@router.get("/items")
async def list_items(facade: QueryFacade = Depends(get_facade)):
    return await facade.list_redemption_items()


@router.post("/items", status_code=201)
async def create_item(
    req: RedemptionItemCreate,
    facade: QueryFacade = Depends(get_facade),
):
    item_id = await facade.add_redemption_item(req)
    return await facade.get_redemption_item(item_id)


@router.get("/items/{item_id}")
async def get_item(item_id: str, facade: QueryFacade = Depends(get_facade)):
    item = await facade.get_redemption_item(item_id)
    if item is None:
        raise HTTPException(404, f"Redemption item {item_id} not found")
    return item


@router.put("/items/{item_id}")
async def update_item(
    item_id: str,
    req: RedemptionItemUpdate,
    facade: QueryFacade = Depends(get_facade),
):
    await facade.update_redemption_item(item_id, req)
    return await facade.get_redemption_item(item_id)


@router.delete("/items/{item_id}")
async def delete_item(item_id: str, facade: QueryFacade = Depends(get_facade)):
    await facade.delete_redemption_item(item_id)
    return {"deleted": item_id}
