"""Write payloads and read shapes for the entity graph.

Field names are snake_case in Python and camelCase on the wire and in the
document store (``client_id`` <-> ``clientId``). Create payloads fill in
defaults; update payloads are partial and reject unknown fields.
"""

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UpdateModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )


def _normalize(value: Any, allowed: tuple[str, ...]) -> Any:
    """Case-insensitive match against ``allowed``; returns the canonical spelling."""
    if not isinstance(value, str):
        return value
    for option in allowed:
        if value.strip().lower() == option.lower():
            return option
    return value


# ---------------------------------------------------------------------------
# Status vocabularies
# ---------------------------------------------------------------------------

CLIENT_STATUSES = ("Active", "Inactive", "Pending", "Archived")
CAMPAIGN_STATUSES = ("draft", "active", "inactive", "completed", "planning", "paused", "archived")
SURVEY_STATUSES = ("draft", "active", "closed", "completed")
REWARD_PROGRAM_TYPES = ("Points", "Raffle", "Bonus", "Other")
REWARD_PROGRAM_STATUSES = ("Active", "Inactive", "Draft")
REDEMPTION_ITEM_TYPES = ("Gift Card", "Coupon", "Merchandise", "Other")
QUESTION_TYPES = ("multiple-choice", "rating", "open-ended", "ranking")

ClientStatus = Literal["Active", "Inactive", "Pending", "Archived"]
CampaignStatus = Literal["draft", "active", "inactive", "completed", "planning", "paused", "archived"]
SurveyStatus = Literal["draft", "active", "closed", "completed"]
RewardProgramType = Literal["Points", "Raffle", "Bonus", "Other"]
RewardProgramStatus = Literal["Active", "Inactive", "Draft"]
RedemptionItemType = Literal["Gift Card", "Coupon", "Merchandise", "Other"]
QuestionType = Literal["multiple-choice", "rating", "open-ended", "ranking"]

# Question types answered by picking from ``options``.
CHOICE_TYPES = ("multiple-choice", "ranking")


# ---------------------------------------------------------------------------
# Clients & brands
# ---------------------------------------------------------------------------

class ClientCreate(CamelModel):
    name: str = Field(min_length=1)
    industry: str = ""
    contact_person: str = ""
    email: str = ""
    phone: str = ""
    logo_url: Optional[str] = None
    status: ClientStatus = "Active"

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _normalize(v, CLIENT_STATUSES)


class ClientUpdate(UpdateModel):
    name: Optional[str] = Field(default=None, min_length=1)
    industry: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    logo_url: Optional[str] = None
    status: Optional[ClientStatus] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _normalize(v, CLIENT_STATUSES)


class BrandCreate(CamelModel):
    name: str = Field(min_length=1)
    client_id: str = Field(min_length=1)


class BrandUpdate(UpdateModel):
    name: Optional[str] = Field(default=None, min_length=1)


# ---------------------------------------------------------------------------
# Campaigns
# ---------------------------------------------------------------------------

class CampaignCreate(CamelModel):
    name: str = Field(min_length=1, validation_alias=AliasChoices("name", "title"))
    client_id: str = Field(min_length=1)
    brand_ids: list[str] = []
    status: CampaignStatus = "draft"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    product_type: Optional[str] = None
    target_audience: Optional[str] = None
    rewards: Optional[str] = None
    description: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _normalize(v, CAMPAIGN_STATUSES)

    @model_validator(mode="after")
    def _dates(self):
        if self.start_date and self.end_date:
            start, end = self.start_date, self.end_date
            if (start.tzinfo is None) != (end.tzinfo is None):
                start, end = start.replace(tzinfo=None), end.replace(tzinfo=None)
            if end < start:
                raise ValueError("endDate must not be before startDate")
        return self


class CampaignUpdate(UpdateModel):
    name: Optional[str] = Field(
        default=None, min_length=1, validation_alias=AliasChoices("name", "title")
    )
    client_id: Optional[str] = None
    brand_ids: Optional[list[str]] = None
    status: Optional[CampaignStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    product_type: Optional[str] = None
    target_audience: Optional[str] = None
    rewards: Optional[str] = None
    description: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _normalize(v, CAMPAIGN_STATUSES)


# ---------------------------------------------------------------------------
# Surveys & questions
# ---------------------------------------------------------------------------

class QuestionIn(CamelModel):
    id: Optional[str] = None
    text: str = Field(min_length=1, max_length=500)
    type: QuestionType
    options: list[str] = []

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        # "text" is the older name for an open-ended question.
        if isinstance(v, str) and v.strip().lower() == "text":
            return "open-ended"
        return _normalize(v, QUESTION_TYPES)

    @field_validator("options")
    @classmethod
    def _strip_options(cls, v: list[str]) -> list[str]:
        return [o.strip() for o in v if o and o.strip()]

    @model_validator(mode="after")
    def _choice_options(self):
        if self.type in CHOICE_TYPES and len(self.options) < 2:
            raise ValueError(f"{self.type} questions need at least 2 options")
        return self


class QuestionUpdate(UpdateModel):
    text: Optional[str] = Field(default=None, min_length=1, max_length=500)
    type: Optional[str] = None
    options: Optional[list[str]] = None


class SurveyCreate(CamelModel):
    name: str = Field(min_length=1, validation_alias=AliasChoices("name", "title"))
    description: str = ""
    campaign_id: str = Field(min_length=1)
    brand_id: Optional[str] = None
    status: SurveyStatus = "draft"
    type: Optional[str] = None
    questions: list[QuestionIn] = []
    reward_program_id: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _normalize(v, SURVEY_STATUSES)


class SurveyUpdate(UpdateModel):
    name: Optional[str] = Field(
        default=None, min_length=1, validation_alias=AliasChoices("name", "title")
    )
    description: Optional[str] = None
    campaign_id: Optional[str] = None
    brand_id: Optional[str] = None
    status: Optional[SurveyStatus] = None
    type: Optional[str] = None
    questions: Optional[list[QuestionIn]] = None
    reward_program_id: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _normalize(v, SURVEY_STATUSES)


class ResponseCreate(CamelModel):
    answers: dict[str, Any]
    consumer_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Rewards & consumers
# ---------------------------------------------------------------------------

class RewardConfig(CamelModel):
    points_per_survey: Optional[int] = Field(default=None, ge=0)
    entry_per_survey: Optional[int] = Field(default=None, ge=0)
    bonus_amount: Optional[Union[float, str]] = None  # amount or a label like "$5 Coupon"
    condition: Optional[str] = None


class RewardProgramCreate(CamelModel):
    name: str = Field(min_length=1)
    type: RewardProgramType = "Points"
    status: RewardProgramStatus = "Active"
    description: str = ""
    config: RewardConfig = RewardConfig()

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return _normalize(v, REWARD_PROGRAM_TYPES)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _normalize(v, REWARD_PROGRAM_STATUSES)


class RewardProgramUpdate(UpdateModel):
    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[RewardProgramType] = None
    status: Optional[RewardProgramStatus] = None
    description: Optional[str] = None
    config: Optional[RewardConfig] = None

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return _normalize(v, REWARD_PROGRAM_TYPES)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _normalize(v, REWARD_PROGRAM_STATUSES)


class RedemptionItemCreate(CamelModel):
    name: str = Field(min_length=1)
    type: RedemptionItemType = "Gift Card"
    points_cost: int = Field(ge=0)
    stock: Optional[int] = Field(default=None, ge=0)  # None = unlimited
    is_active: bool = True
    image_url: Optional[str] = None
    description: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return _normalize(v, REDEMPTION_ITEM_TYPES)


class RedemptionItemUpdate(UpdateModel):
    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[RedemptionItemType] = None
    points_cost: Optional[int] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    image_url: Optional[str] = None
    description: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return _normalize(v, REDEMPTION_ITEM_TYPES)


class ConsumerCreate(CamelModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    avatar_url: Optional[str] = None
    segment: Optional[str] = None
    notes: Optional[str] = None


class ConsumerUpdate(UpdateModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=3)
    avatar_url: Optional[str] = None
    segment: Optional[str] = None
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Read shapes
# ---------------------------------------------------------------------------

class KpiData(CamelModel):
    total_clients: int
    total_campaigns: int
    total_surveys: int
    total_respondents: int


class ClientCampaign(CamelModel):
    id: str
    name: str
    survey_count: int
