"""Surveys, their questions and their responses."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from cia_api.core.deps import get_facade
from cia_api.schemas.entities import (
    QuestionIn,
    QuestionUpdate,
    ResponseCreate,
    SurveyCreate,
    SurveyUpdate,
)
from cia_api.services.query_facade import QueryFacade

router = APIRouter()


@router.get("")
async def list_surveys(
    campaign_id: Optional[str] = Query(None, alias="campaignId"),
    brand_id: Optional[str] = Query(None, alias="brandId"),
    details: bool = Query(False),
    facade: QueryFacade = Depends(get_facade),
):
    if details:
        return await facade.list_surveys_with_details(campaign_id, brand_id)
    return await facade.list_surveys(campaign_id, brand_id)


@router.post("", status_code=201)
async def create_survey(
    req: SurveyCreate,
    facade: QueryFacade = Depends(get_facade),
):
    survey_id = await facade.add_survey(req)
    return await facade.get_survey(survey_id)


@router.get("/{survey_id}")
async def get_survey(survey_id: str, facade: QueryFacade = Depends(get_facade)):
    survey = await facade.get_survey(survey_id)
    if survey is None:
        raise HTTPException(404, f"Survey {survey_id} not found")
    return survey


@router.put("/{survey_id}")
async def update_survey(
    survey_id: str,
    req: SurveyUpdate,
    facade: QueryFacade = Depends(get_facade),
):
    await facade.update_survey(survey_id, req)
    return await facade.get_survey(survey_id)


@router.delete("/{survey_id}")
async def delete_survey(survey_id: str, facade: QueryFacade = Depends(get_facade)):
    """Deletes the survey and every response submitted to it."""
    await facade.delete_survey(survey_id)
    return {"deleted": survey_id}


# -- questions --

@router.post("/{survey_id}/questions", status_code=201)
async def add_question(
    survey_id: str,
    req: QuestionIn,
    facade: QueryFacade = Depends(get_facade),
):
    return await facade.add_question_to_survey(survey_id, req)


@router.put("/{survey_id}/questions/{question_id}")
async def update_question(
    survey_id: str,
    question_id: str,
    req: QuestionUpdate,
    facade: QueryFacade = Depends(get_facade),
):
    return await facade.update_question_in_survey(survey_id, question_id, req)


@router.delete("/{survey_id}/questions/{question_id}")
async def remove_question(
    survey_id: str,
    question_id: str,
    facade: QueryFacade = Depends(get_facade),
):
    await facade.remove_question_from_survey(survey_id, question_id)
    return {"deleted": question_id}


# -- responses --

@router.get("/{survey_id}/responses")
async def list_responses(survey_id: str, facade: QueryFacade = Depends(get_facade)):
    return await facade.list_responses(survey_id)


@router.post("/{survey_id}/responses", status_code=201)
async def submit_response(
    survey_id: str,
    req: ResponseCreate,
    facade: QueryFacade = Depends(get_facade),
):
    response_id = await facade.submit_response(survey_id, req.answers, req.consumer_id)
    return {"id": response_id}
