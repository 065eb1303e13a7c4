"""Collection names (schema-in-code).

The document store has no DDL for collections; a collection exists once a
document is written to it. These constants are the single source of truth
for collection names and for the fields that link them together.
"""

CLIENTS = "clients"
BRANDS = "brands"
CAMPAIGNS = "campaigns"
SURVEYS = "surveys"
REWARD_PROGRAMS = "rewardPrograms"
REDEMPTION_ITEMS = "redemptionItems"
CONSUMERS = "consumers"

RESPONSES = "responses"


def responses_of(survey_id: str) -> str:
    """Path of the responses sub-collection owned by a survey."""
    return f"{SURVEYS}/{survey_id}/{RESPONSES}"


# Display name shown when a reference no longer resolves.
PLACEHOLDERS: dict[str, str] = {
    CLIENTS: "Unknown Client",
    BRANDS: "Unknown Brand",
    CAMPAIGNS: "Unknown Campaign",
    SURVEYS: "Unknown Survey",
    REWARD_PROGRAMS: "Unknown Reward Program",
    CONSUMERS: "Unknown Consumer",
}

# Fields holding temporal values; always returned to callers as ISO-8601.
TEMPORAL_FIELDS = (
    "createdAt",
    "updatedAt",
    "startDate",
    "endDate",
    "submittedAt",
    "lastActive",
)
