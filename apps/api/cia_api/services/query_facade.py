"""
Query façade — the typed entry point for every read and write on the graph.

Composes the entity store, reference resolver, cascade coordinator and
aggregation service:

- payloads are validated (pydantic) before anything is written
- foreign keys present in a write payload are resolved into cached names
- deletes of parents go through the cascade coordinator
- lists are ordered by a documented field so repeated calls agree

Store transport failures escaping any of the layers below are wrapped in
``StoreUnavailable`` with the operation, collection and id attached.
"""

import asyncio
import contextlib
import logging
import uuid
from typing import Any, Iterator, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from cia_api.core.errors import CiaError, NotFound, StoreUnavailable, ValidationFailed
from cia_api.schemas.entities import (
    BrandCreate,
    BrandUpdate,
    CampaignCreate,
    CampaignUpdate,
    ClientCampaign,
    ClientCreate,
    ClientUpdate,
    ConsumerCreate,
    ConsumerUpdate,
    KpiData,
    QuestionIn,
    QuestionUpdate,
    RedemptionItemCreate,
    RedemptionItemUpdate,
    ResponseCreate,
    RewardProgramCreate,
    RewardProgramUpdate,
    SurveyCreate,
    SurveyUpdate,
)
from cia_api.services.aggregation import AggregationService, CounterIncrement
from cia_api.services.cascade import CascadeCoordinator
from cia_api.services.collections import (
    BRANDS,
    CAMPAIGNS,
    CLIENTS,
    CONSUMERS,
    REDEMPTION_ITEMS,
    REWARD_PROGRAMS,
    SURVEYS,
    responses_of,
)
from cia_api.services.resolver import ReferenceResolver, placeholder_for
from cia_api.services.store import EntityStore, OrderBy

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
Payload = Union[dict[str, Any], BaseModel]

BY_NAME = OrderBy("name")
NEWEST_FIRST = OrderBy("createdAt", descending=True)

STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)

# Shown in place of an empty brand list on campaign detail rows.
NO_BRANDS = "N/A"


def _logo_url(name: str) -> str:
    seed = "".join(name.split())
    return f"https://picsum.photos/seed/{seed}/64/64" if seed else "https://picsum.photos/64/64"


def _avatar_url(email: str) -> str:
    return f"https://picsum.photos/seed/{email.split('@')[0]}/64/64"


def _new_id() -> str:
    return uuid.uuid4().hex


class QueryFacade:
    """List/get/add/update/delete for every entity in the graph."""

    def __init__(
        self,
        store: EntityStore,
        resolver: Optional[ReferenceResolver] = None,
        cascade: Optional[CascadeCoordinator] = None,
        aggregation: Optional[AggregationService] = None,
    ):
        self.store = store
        self.resolver = resolver or ReferenceResolver(store)
        self.cascade = cascade or CascadeCoordinator(store)
        self.aggregation = aggregation or AggregationService(store)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _guard(
        self, operation: str, collection: str, entity_id: Optional[str] = None
    ) -> Iterator[None]:
        try:
            yield
        except CiaError:
            raise
        except STORE_ERRORS as exc:
            logger.error(
                f"{operation} on {collection}/{entity_id or '*'} failed: {exc!r}"
            )
            raise StoreUnavailable(
                operation, collection, entity_id, reason=str(exc) or type(exc).__name__
            ) from exc

    @staticmethod
    def _validate(
        model: Type[M], payload: Payload, collection: str, entity_id: Optional[str] = None
    ) -> M:
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(by_alias=True, exclude_unset=True)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            issues = [
                {
                    "loc": ".".join(str(p) for p in err["loc"]),
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in exc.errors()
            ]
            first = issues[0] if issues else {"loc": "", "msg": "invalid payload"}
            where = f"{first['loc']}: " if first["loc"] else ""
            raise ValidationFailed(
                f"Invalid {collection} payload ({where}{first['msg']})",
                collection,
                entity_id,
                issues,
            ) from exc

    @staticmethod
    def _changes(model: BaseModel, nullable: tuple[str, ...] = ()) -> dict[str, Any]:
        """Fields the caller actually sent; explicit nulls only where allowed."""
        data = model.model_dump(by_alias=True, mode="json", exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k in nullable}

    @staticmethod
    def _fields(model: BaseModel) -> dict[str, Any]:
        return model.model_dump(by_alias=True, mode="json")

    async def _get(self, collection: str, entity_id: str) -> Optional[dict[str, Any]]:
        if not entity_id:
            return None
        with self._guard("get", collection, entity_id):
            return await self.store.find(collection, entity_id)

    async def _list(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        with self._guard("list", collection):
            return await self.store.list(collection, filters, order_by, limit)

    async def _create(self, collection: str, data: dict[str, Any]) -> str:
        with self._guard("create", collection):
            entity_id = await self.store.create(collection, data)
        logger.info(f"Created {collection}/{entity_id}")
        return entity_id

    async def _update(self, collection: str, entity_id: str, data: dict[str, Any]) -> None:
        with self._guard("update", collection, entity_id):
            await self.store.update(collection, entity_id, data)
        logger.info(f"Updated {collection}/{entity_id}: {sorted(data)}")

    async def _require(self, collection: str, entity_id: str) -> dict[str, Any]:
        with self._guard("get", collection, entity_id):
            return await self.store.get_by_id(collection, entity_id)

    async def _delete(self, collection: str, entity_id: str) -> None:
        with self._guard("delete", collection, entity_id):
            await self.store.delete(collection, entity_id)
        logger.info(f"Deleted {collection}/{entity_id}")

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    async def add_client(self, fields: Payload) -> str:
        client = self._validate(ClientCreate, fields, CLIENTS)
        data = self._fields(client)
        data["logoUrl"] = client.logo_url or _logo_url(client.name)
        return await self._create(CLIENTS, data)

    async def get_client(self, client_id: str) -> Optional[dict[str, Any]]:
        return await self._get(CLIENTS, client_id)

    async def list_clients(self) -> list[dict[str, Any]]:
        return await self._list(CLIENTS, order_by=BY_NAME)

    async def update_client(self, client_id: str, partial: Payload) -> None:
        changes = self._changes(self._validate(ClientUpdate, partial, CLIENTS, client_id))
        await self._update(CLIENTS, client_id, changes)

    async def delete_client(self, client_id: str) -> None:
        with self._guard("delete_client", CLIENTS, client_id):
            await self.cascade.delete_client(client_id)

    # ------------------------------------------------------------------
    # Brands
    # ------------------------------------------------------------------

    async def add_brand(self, fields: Payload) -> str:
        brand = self._validate(BrandCreate, fields, BRANDS)
        return await self._create(BRANDS, self._fields(brand))

    async def get_brand(self, brand_id: str) -> Optional[dict[str, Any]]:
        return await self._get(BRANDS, brand_id)

    async def list_brands(self, client_id: Optional[str] = None) -> list[dict[str, Any]]:
        filters = {"clientId": client_id} if client_id else None
        return await self._list(BRANDS, filters, BY_NAME)

    async def update_brand(self, brand_id: str, partial: Payload) -> None:
        changes = self._changes(self._validate(BrandUpdate, partial, BRANDS, brand_id))
        await self._update(BRANDS, brand_id, changes)

    async def delete_brand(self, brand_id: str) -> None:
        with self._guard("delete_brand", BRANDS, brand_id):
            await self.cascade.delete_brand(brand_id)

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------

    async def _check_campaign_brands(
        self, client_id: str, brand_ids: list[str], campaign_id: Optional[str] = None
    ) -> None:
        """Every listed brand must belong to the campaign's client.

        Brands that no longer exist are dangling references and pass.
        """
        if not brand_ids:
            return
        with self._guard("get", BRANDS):
            brands = await asyncio.gather(*(self.store.find(BRANDS, b) for b in brand_ids))
        foreign = [
            brand["id"]
            for brand in brands
            if brand is not None and brand.get("clientId") != client_id
        ]
        if foreign:
            raise ValidationFailed(
                f"Brands {foreign} do not belong to client {client_id}",
                CAMPAIGNS,
                campaign_id,
                [{"loc": "brandIds", "msg": f"not owned by client {client_id}", "type": "brand_owner"}],
            )

    async def _check_brands_unused(self, campaign_id: str, brand_ids: list[str]) -> None:
        """Brands dropped from a campaign must not be in use by its surveys."""
        if not brand_ids:
            return
        with self._guard("count", SURVEYS):
            counts = await asyncio.gather(*(
                self.store.count(SURVEYS, {"campaignId": campaign_id, "brandId": b})
                for b in brand_ids
            ))
        in_use = [b for b, n in zip(brand_ids, counts) if n]
        if in_use:
            raise ValidationFailed(
                f"Brands {in_use} are still used by surveys of campaign {campaign_id}",
                CAMPAIGNS,
                campaign_id,
                [{"loc": "brandIds", "msg": f"still used by surveys: {in_use}", "type": "brand_in_use"}],
            )

    async def add_campaign(self, fields: Payload) -> str:
        campaign = self._validate(CampaignCreate, fields, CAMPAIGNS)
        data = self._fields(campaign)
        data["brandIds"] = list(dict.fromkeys(campaign.brand_ids))
        await self._check_campaign_brands(campaign.client_id, data["brandIds"])
        with self._guard("resolve", CLIENTS, campaign.client_id):
            data["clientName"] = await self.resolver.resolve_display_name(
                CLIENTS, campaign.client_id
            )
        return await self._create(CAMPAIGNS, data)

    async def get_campaign(self, campaign_id: str) -> Optional[dict[str, Any]]:
        return await self._get(CAMPAIGNS, campaign_id)

    async def list_campaigns(
        self, client_id: Optional[str] = None, brand_id: Optional[str] = None
    ) -> list[dict[str, Any]]:
        if brand_id:
            # Brand membership lives in the brandIds array; narrow to the
            # owning client's campaigns first when the brand is known.
            brand = await self._get(BRANDS, brand_id)
            owner = client_id or (brand or {}).get("clientId")
            filters = {"clientId": owner} if owner else None
            campaigns = await self._list(CAMPAIGNS, filters, NEWEST_FIRST)
            return [c for c in campaigns if brand_id in (c.get("brandIds") or [])]
        filters = {"clientId": client_id} if client_id else None
        return await self._list(CAMPAIGNS, filters, NEWEST_FIRST)

    async def update_campaign(self, campaign_id: str, partial: Payload) -> None:
        update = self._validate(CampaignUpdate, partial, CAMPAIGNS, campaign_id)
        changes = self._changes(update, nullable=("startDate", "endDate"))
        current = await self._require(CAMPAIGNS, campaign_id)
        client_id = current.get("clientId")

        if "clientId" in changes:
            if changes["clientId"] != client_id:
                raise ValidationFailed(
                    "clientId cannot change after a campaign is created",
                    CAMPAIGNS,
                    campaign_id,
                    [{"loc": "clientId", "msg": "immutable", "type": "immutable"}],
                )
            with self._guard("resolve", CLIENTS, client_id):
                changes["clientName"] = await self.resolver.resolve_display_name(
                    CLIENTS, client_id
                )

        if "brandIds" in changes:
            changes["brandIds"] = list(dict.fromkeys(changes["brandIds"]))
            await self._check_campaign_brands(client_id, changes["brandIds"], campaign_id)
            removed = [
                b for b in current.get("brandIds") or [] if b not in changes["brandIds"]
            ]
            await self._check_brands_unused(campaign_id, removed)

        start = changes.get("startDate", current.get("startDate"))
        end = changes.get("endDate", current.get("endDate"))
        if start and end and str(end) < str(start):
            raise ValidationFailed(
                "endDate must not be before startDate", CAMPAIGNS, campaign_id
            )

        await self._update(CAMPAIGNS, campaign_id, changes)

    async def delete_campaign(self, campaign_id: str) -> None:
        with self._guard("delete_campaign", CAMPAIGNS, campaign_id):
            await self.cascade.delete_campaign(campaign_id)

    async def get_recent_campaigns(self, count: int = 4) -> list[dict[str, Any]]:
        return await self._list(CAMPAIGNS, order_by=NEWEST_FIRST, limit=count)

    async def list_campaigns_with_details(
        self, client_id: Optional[str] = None, brand_id: Optional[str] = None
    ) -> list[dict[str, Any]]:
        """Campaigns with ``clientName`` and the names of their brands attached."""
        campaigns, brands = await asyncio.gather(
            self.list_campaigns(client_id, brand_id),
            self._list(BRANDS),
        )
        names = {b["id"]: b.get("name") for b in brands}
        rows = []
        for campaign in campaigns:
            brand_names = [
                names.get(b) or placeholder_for(BRANDS)
                for b in campaign.get("brandIds") or []
            ]
            rows.append({
                **campaign,
                "clientName": campaign.get("clientName") or placeholder_for(CLIENTS),
                "brandNames": brand_names or [NO_BRANDS],
            })
        return rows

    # ------------------------------------------------------------------
    # Surveys
    # ------------------------------------------------------------------

    @staticmethod
    def _with_question_ids(questions: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [{**q, "id": q.get("id") or _new_id()} for q in questions]

    async def _check_survey_brand(
        self, campaign_id: str, brand_id: Optional[str], survey_id: Optional[str] = None
    ) -> None:
        if not brand_id:
            return
        campaign = await self._get(CAMPAIGNS, campaign_id)
        if campaign is None:
            return
        if brand_id not in (campaign.get("brandIds") or []):
            raise ValidationFailed(
                f"Brand {brand_id} is not part of campaign {campaign_id}",
                SURVEYS,
                survey_id,
                [{"loc": "brandId", "msg": "not among the campaign's brandIds", "type": "brand_not_in_campaign"}],
            )

    async def add_survey(self, fields: Payload) -> str:
        survey = self._validate(SurveyCreate, fields, SURVEYS)
        await self._check_survey_brand(survey.campaign_id, survey.brand_id)

        data = self._fields(survey)
        data["questions"] = self._with_question_ids(data["questions"])
        data["responseCount"] = 0
        with self._guard("resolve", SURVEYS):
            data["campaignName"], data["brandName"], data["rewardProgramName"] = (
                await asyncio.gather(
                    self.resolver.resolve_display_name(CAMPAIGNS, survey.campaign_id),
                    self.resolver.resolve_display_name(BRANDS, survey.brand_id),
                    self.resolver.resolve_display_name(
                        REWARD_PROGRAMS, survey.reward_program_id
                    ),
                )
            )
        return await self._create(SURVEYS, data)

    async def get_survey(self, survey_id: str) -> Optional[dict[str, Any]]:
        return await self._get(SURVEYS, survey_id)

    async def list_surveys(
        self, campaign_id: Optional[str] = None, brand_id: Optional[str] = None
    ) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {}
        if campaign_id:
            filters["campaignId"] = campaign_id
        if brand_id:
            filters["brandId"] = brand_id
        return await self._list(SURVEYS, filters or None, NEWEST_FIRST)

    async def update_survey(self, survey_id: str, partial: Payload) -> None:
        update = self._validate(SurveyUpdate, partial, SURVEYS, survey_id)
        changes = self._changes(update, nullable=("rewardProgramId",))
        current = await self._require(SURVEYS, survey_id)

        for key in ("campaignId", "brandId"):
            if key in changes and changes[key] != current.get(key):
                raise ValidationFailed(
                    f"{key} cannot change after a survey is created",
                    SURVEYS,
                    survey_id,
                    [{"loc": key, "msg": "immutable", "type": "immutable"}],
                )

        with self._guard("resolve", SURVEYS, survey_id):
            if "campaignId" in changes:
                changes["campaignName"] = await self.resolver.resolve_display_name(
                    CAMPAIGNS, changes["campaignId"]
                )
            if "brandId" in changes:
                changes["brandName"] = await self.resolver.resolve_display_name(
                    BRANDS, changes["brandId"]
                )
            if "rewardProgramId" in changes:
                changes["rewardProgramName"] = await self.resolver.resolve_display_name(
                    REWARD_PROGRAMS, changes["rewardProgramId"]
                )

        if "questions" in changes:
            changes["questions"] = self._with_question_ids(changes["questions"])

        await self._update(SURVEYS, survey_id, changes)

    async def delete_survey(self, survey_id: str) -> None:
        with self._guard("delete_survey", SURVEYS, survey_id):
            await self.cascade.delete_survey(survey_id)

    async def get_survey_count_for_campaign(self, campaign_id: str) -> int:
        with self._guard("count", SURVEYS):
            return await self.aggregation.survey_count_for_campaign(campaign_id)

    async def list_surveys_with_details(
        self, campaign_id: Optional[str] = None, brand_id: Optional[str] = None
    ) -> list[dict[str, Any]]:
        """Surveys with campaign, brand and client names attached."""
        surveys, campaigns = await asyncio.gather(
            self.list_surveys(campaign_id, brand_id),
            self._list(CAMPAIGNS),
        )
        client_names = {c["id"]: c.get("clientName") for c in campaigns}
        return [
            {
                **survey,
                "campaignName": survey.get("campaignName") or placeholder_for(CAMPAIGNS),
                "brandName": survey.get("brandName") or (
                    placeholder_for(BRANDS) if survey.get("brandId") else NO_BRANDS
                ),
                "clientName": client_names.get(survey.get("campaignId"))
                or placeholder_for(CLIENTS),
            }
            for survey in surveys
        ]

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    async def add_question_to_survey(self, survey_id: str, question: Payload) -> dict[str, Any]:
        parsed = self._validate(QuestionIn, question, SURVEYS, survey_id)
        new_question = self._fields(parsed)
        new_question["id"] = parsed.id or _new_id()

        survey = await self._require(SURVEYS, survey_id)
        questions = list(survey.get("questions") or [])
        if any(q.get("id") == new_question["id"] for q in questions):
            raise ValidationFailed(
                f"Question {new_question['id']} already exists", SURVEYS, survey_id
            )
        questions.append(new_question)
        await self._update(SURVEYS, survey_id, {"questions": questions})
        return new_question

    async def update_question_in_survey(
        self, survey_id: str, question_id: str, partial: Payload
    ) -> dict[str, Any]:
        changes = self._changes(
            self._validate(QuestionUpdate, partial, SURVEYS, survey_id)
        )
        survey = await self._require(SURVEYS, survey_id)
        questions = list(survey.get("questions") or [])
        for index, existing in enumerate(questions):
            if existing.get("id") == question_id:
                break
        else:
            raise NotFound(f"{SURVEYS}/{survey_id}/questions", question_id)

        merged = self._validate(
            QuestionIn, {**existing, **changes, "id": question_id}, SURVEYS, survey_id
        )
        questions[index] = self._fields(merged)
        await self._update(SURVEYS, survey_id, {"questions": questions})
        return questions[index]

    async def remove_question_from_survey(self, survey_id: str, question_id: str) -> None:
        survey = await self._require(SURVEYS, survey_id)
        questions = survey.get("questions") or []
        remaining = [q for q in questions if q.get("id") != question_id]
        if len(remaining) == len(questions):
            return
        await self._update(SURVEYS, survey_id, {"questions": remaining})

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    async def submit_response(
        self,
        survey_id: str,
        answers: dict[str, Any],
        consumer_id: Optional[str] = None,
    ) -> str:
        """Store a response and bump the survey's (and consumer's) counters."""
        response = self._validate(
            ResponseCreate,
            {"answers": answers, "consumerId": consumer_id},
            responses_of(survey_id),
        )
        survey = await self._require(SURVEYS, survey_id)
        question_ids = {q.get("id") for q in survey.get("questions") or []}
        unknown = sorted(k for k in response.answers if question_ids and k not in question_ids)
        if unknown:
            raise ValidationFailed(
                f"Answers reference unknown questions {unknown}",
                SURVEYS,
                survey_id,
                [{"loc": "answers", "msg": f"unknown question ids {unknown}", "type": "unknown_question"}],
            )

        collection = responses_of(survey_id)
        now = self.store.now()
        data: dict[str, Any] = {"answers": response.answers, "submittedAt": now}
        if response.consumer_id:
            data["consumerId"] = response.consumer_id
        staged = self.store.batch()
        response_id = staged.create(collection, data)

        increments = [CounterIncrement(SURVEYS, survey_id, "responseCount")]
        if response.consumer_id:
            consumer = await self._get(CONSUMERS, response.consumer_id)
            if consumer is None:
                logger.warning(
                    f"Response {response_id} references missing consumer "
                    f"{response.consumer_id}"
                )
            else:
                increments.append(CounterIncrement(
                    CONSUMERS,
                    response.consumer_id,
                    "surveysTaken",
                    also_set={"lastActive": now},
                ))

        # The response and its counters land in one commit or not at all.
        with self._guard("submit_response", SURVEYS, survey_id):
            await self.aggregation.apply_increments(increments, with_ops=staged.ops)
        logger.info(f"Created {collection}/{response_id}")
        return response_id

    async def list_responses(self, survey_id: str) -> list[dict[str, Any]]:
        return await self._list(responses_of(survey_id), order_by=NEWEST_FIRST)

    # ------------------------------------------------------------------
    # Reward programs
    # ------------------------------------------------------------------

    async def add_reward_program(self, fields: Payload) -> str:
        program = self._validate(RewardProgramCreate, fields, REWARD_PROGRAMS)
        data = self._fields(program)
        data["config"] = program.config.model_dump(by_alias=True, exclude_none=True)
        return await self._create(REWARD_PROGRAMS, data)

    async def get_reward_program(self, program_id: str) -> Optional[dict[str, Any]]:
        return await self._get(REWARD_PROGRAMS, program_id)

    async def list_reward_programs(self) -> list[dict[str, Any]]:
        return await self._list(REWARD_PROGRAMS, order_by=BY_NAME)

    async def update_reward_program(self, program_id: str, partial: Payload) -> None:
        update = self._validate(RewardProgramUpdate, partial, REWARD_PROGRAMS, program_id)
        changes = self._changes(update)
        if update.config is not None:
            changes["config"] = update.config.model_dump(by_alias=True, exclude_none=True)
        await self._update(REWARD_PROGRAMS, program_id, changes)

    async def delete_reward_program(self, program_id: str) -> None:
        with self._guard("delete_reward_program", REWARD_PROGRAMS, program_id):
            await self.cascade.delete_reward_program(program_id)

    # ------------------------------------------------------------------
    # Redemption items
    # ------------------------------------------------------------------

    async def add_redemption_item(self, fields: Payload) -> str:
        item = self._validate(RedemptionItemCreate, fields, REDEMPTION_ITEMS)
        return await self._create(REDEMPTION_ITEMS, self._fields(item))

    async def get_redemption_item(self, item_id: str) -> Optional[dict[str, Any]]:
        return await self._get(REDEMPTION_ITEMS, item_id)

    async def list_redemption_items(self) -> list[dict[str, Any]]:
        return await self._list(REDEMPTION_ITEMS, order_by=BY_NAME)

    async def update_redemption_item(self, item_id: str, partial: Payload) -> None:
        update = self._validate(RedemptionItemUpdate, partial, REDEMPTION_ITEMS, item_id)
        await self._update(REDEMPTION_ITEMS, item_id, self._changes(update, nullable=("stock",)))

    async def delete_redemption_item(self, item_id: str) -> None:
        await self._delete(REDEMPTION_ITEMS, item_id)

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    async def add_consumer(self, fields: Payload) -> str:
        consumer = self._validate(ConsumerCreate, fields, CONSUMERS)
        data = self._fields(consumer)
        data["avatarUrl"] = consumer.avatar_url or _avatar_url(consumer.email)
        data["surveysTaken"] = 0
        data["lastActive"] = self.store.now()
        return await self._create(CONSUMERS, data)

    async def get_consumer(self, consumer_id: str) -> Optional[dict[str, Any]]:
        return await self._get(CONSUMERS, consumer_id)

    async def list_consumers(self) -> list[dict[str, Any]]:
        return await self._list(CONSUMERS, order_by=BY_NAME)

    async def update_consumer(self, consumer_id: str, partial: Payload) -> None:
        update = self._validate(ConsumerUpdate, partial, CONSUMERS, consumer_id)
        await self._update(
            CONSUMERS, consumer_id, self._changes(update, nullable=("segment", "notes"))
        )

    async def delete_consumer(self, consumer_id: str) -> None:
        await self._delete(CONSUMERS, consumer_id)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def get_kpi_data(self) -> KpiData:
        with self._guard("kpi", SURVEYS):
            return await self.aggregation.get_kpi_data()

    async def get_campaigns_for_client(self, client_id: str) -> list[ClientCampaign]:
        with self._guard("list", CAMPAIGNS):
            return await self.aggregation.campaign_summaries_for_client(client_id)
