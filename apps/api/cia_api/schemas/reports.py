"""Report payloads from the upstream API, one model per report kind.

Upstream reports are loosely structured: every kind has a few well-known
fields plus arbitrary extras. The models type the known fields and keep
the rest (``extra="allow"``). Anything that cannot be decoded as its kind
falls back to ``GenericReport``, which only knows how to print itself.
"""

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Distribution = dict[str, float]


def _scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict):
        return "{}"
    if isinstance(value, list):
        return "[]"
    return str(value)


def render_structure(value: Any, indent: int = 0) -> list[str]:
    """Indented plain-text lines for an arbitrary JSON value."""
    pad = "  " * indent
    lines: list[str] = []
    if isinstance(value, dict) and value:
        for key, item in value.items():
            if isinstance(item, (dict, list)) and item:
                lines.append(f"{pad}{key}:")
                lines.extend(render_structure(item, indent + 1))
            else:
                lines.append(f"{pad}{key}: {_scalar(item)}")
    elif isinstance(value, list) and value:
        for item in value:
            if isinstance(item, (dict, list)) and item:
                lines.append(f"{pad}-")
                lines.extend(render_structure(item, indent + 1))
            else:
                lines.append(f"{pad}- {_scalar(item)}")
    else:
        lines.append(f"{pad}{_scalar(value)}")
    return lines


class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    kind: ClassVar[str] = ""

    def render_text(self) -> str:
        return "\n".join(render_structure(self.model_dump(by_alias=True, exclude_none=True)))


class DemographicReport(ReportModel):
    kind: ClassVar[str] = "demographic"

    age: Optional[Distribution] = None
    gender: Optional[Distribution] = None
    income: Optional[Distribution] = None
    geo: Optional[Distribution] = None
    favorite_store: Optional[Distribution] = None
    motivator: Optional[Distribution] = None
    interests: Optional[Distribution] = None
    spending_frequency: Optional[Distribution] = None
    verified_status: Optional[Distribution] = None


class QuestionInsightsReport(ReportModel):
    """Per-question aggregates keyed by question id (kept as extras)."""

    kind: ClassVar[str] = "question_insights"

    competitor_brand_responses: Optional[Distribution] = None
    reason_responses: Optional[Distribution] = None


class Sentiment(ReportModel):
    overall: str
    details: Optional[Distribution] = None


class SurveyAnalysisReport(ReportModel):
    kind: ClassVar[str] = "survey_analysis"

    report_id: Optional[str] = None
    survey_id: Optional[str] = None
    generated_at: Optional[str] = None
    full_report_text: Optional[str] = None
    insights: list[str] = []
    sentiment: Optional[Sentiment] = None
    key_trends: list[str] = []
    areas_of_improvement: list[str] = []


class BrandInsightsReport(ReportModel):
    kind: ClassVar[str] = "brand_insights"

    brand_id: Optional[str] = None
    demographics: Optional[DemographicReport] = None
    survey_responses: Optional[QuestionInsightsReport] = None


class SystemClientsReport(ReportModel):
    kind: ClassVar[str] = "system_clients"

    total_clients: Optional[int] = None
    status_breakdown: Optional[dict[str, int]] = None
    role_distribution: Optional[dict[str, int]] = None
    country_distribution: Optional[dict[str, int]] = None
    average_brands_per_client: Optional[float] = None


class DemographicsSummary(ReportModel):
    age_distribution: Optional[Distribution] = None
    gender_distribution: Optional[Distribution] = None
    income_distribution: Optional[Distribution] = None
    geo_distribution: Optional[Distribution] = None
    favorite_store_distribution: Optional[Distribution] = None
    favorite_brand_distribution: Optional[Distribution] = None


class SystemCustomersReport(ReportModel):
    kind: ClassVar[str] = "system_customers"

    total_customers: Optional[int] = None
    demographics_summary: Optional[DemographicsSummary] = None
    verified_percentage: Optional[float] = None


class SystemCampaignsReport(ReportModel):
    kind: ClassVar[str] = "system_campaigns"

    total_campaigns: Optional[int] = None
    active_campaigns: Optional[int] = None
    average_duration_days: Optional[float] = None
    reward_types_distribution: Optional[Distribution] = None
    reward_criteria_distribution: Optional[Distribution] = None
    average_brands_per_campaign: Optional[float] = None
    average_clients_per_campaign: Optional[float] = None


class SystemSurveysReport(ReportModel):
    kind: ClassVar[str] = "system_surveys"

    total_surveys: Optional[int] = None
    total_questions: Optional[int] = None
    average_questions_per_survey: Optional[float] = None
    question_type_distribution: Optional[dict[str, int]] = None
    required_question_percentage: Optional[float] = None
    average_options_per_multiple_choice: Optional[float] = None


class SystemSubmissionsReport(ReportModel):
    kind: ClassVar[str] = "system_submissions"

    total_submissions: Optional[int] = None
    average_submissions_per_survey: Optional[float] = None
    average_submissions_per_campaign: Optional[float] = None
    average_response_time_minutes: Optional[float] = None
    completion_rate: Optional[float] = None
    engagement_metrics: Optional[dict[str, float]] = None


class FullSystemReport(ReportModel):
    kind: ClassVar[str] = "full_system"

    clients_report: Optional[SystemClientsReport] = None
    customers_report: Optional[SystemCustomersReport] = None
    campaigns_report: Optional[SystemCampaignsReport] = None
    surveys_report: Optional[SystemSurveysReport] = None
    submissions_report: Optional[SystemSubmissionsReport] = None
    overall_summary: Optional[dict[str, float]] = None


class GenericReport(BaseModel):
    """A report of an unknown kind, or one that did not match its kind."""

    kind: str
    data: Any = None

    def render_text(self) -> str:
        return "\n".join(render_structure(self.data))


REPORT_VARIANTS: dict[str, type[ReportModel]] = {
    cls.kind: cls
    for cls in (
        DemographicReport,
        QuestionInsightsReport,
        SurveyAnalysisReport,
        BrandInsightsReport,
        SystemClientsReport,
        SystemCustomersReport,
        SystemCampaignsReport,
        SystemSurveysReport,
        SystemSubmissionsReport,
        FullSystemReport,
    )
}
