"""Test configuration and fixtures."""
import os

# The engine in cia_api.database is built at import time; point it at SQLite
# before anything from cia_api is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORE_BACKEND"] = "memory"
os.environ["CIA_API_TOKEN"] = "test-token-abc123"

import httpx
import pytest

from cia_api.services.aggregation import AggregationService
from cia_api.services.cascade import CascadeCoordinator
from cia_api.services.query_facade import QueryFacade
from cia_api.services.resolver import ReferenceResolver
from cia_api.services.store import EntityStore, MemoryDocumentBackend, SqlDocumentBackend
from cia_api.services.upstream import CiaApiClient

# ---------------------------------------------------------------------------
# Constants (shared with tests)
# ---------------------------------------------------------------------------
TEST_TOKEN = "test-token-abc123"
BASE_URL = "https://cia.test.example.com"


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def backend():
    return MemoryDocumentBackend()


@pytest.fixture
def store(backend):
    return EntityStore(backend, timeout=2.0)


def make_facade(store: EntityStore, max_retries: int = 5, max_batch_size=None) -> QueryFacade:
    return QueryFacade(
        store,
        resolver=ReferenceResolver(store),
        cascade=CascadeCoordinator(store, max_batch_size=max_batch_size),
        aggregation=AggregationService(store, max_retries=max_retries, backoff=0.001),
    )


@pytest.fixture
def facade(store):
    return make_facade(store)


@pytest.fixture
async def sql_backend(tmp_path):
    """File-backed SQLite so every session sees the same database."""
    backend = SqlDocumentBackend.from_url(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await backend.create_schema()
    yield backend
    await backend.close()


@pytest.fixture
def sql_store(sql_backend):
    return EntityStore(sql_backend, timeout=5.0)


@pytest.fixture
def sql_facade(sql_store):
    return make_facade(sql_store)


# ---------------------------------------------------------------------------
# Entity graph builder
# ---------------------------------------------------------------------------


@pytest.fixture
def make_graph():
    """Build a client with ``campaigns`` campaigns of ``surveys`` surveys each.

    Every survey gets ``responses`` submitted responses. Returns a dict of
    the created ids.
    """

    async def build(
        facade: QueryFacade,
        campaigns: int = 2,
        surveys: int = 2,
        responses: int = 0,
        name: str = "Acme",
    ) -> dict:
        client_id = await facade.add_client({"name": name, "email": "ops@acme.test"})
        brand_id = await facade.add_brand({"name": f"{name} Brand", "clientId": client_id})
        graph = {
            "client": client_id,
            "brand": brand_id,
            "campaigns": [],
            "surveys": [],
            "responses": [],
        }
        for c in range(campaigns):
            campaign_id = await facade.add_campaign(
                {"name": f"{name} Campaign {c}", "clientId": client_id, "brandIds": [brand_id]}
            )
            graph["campaigns"].append(campaign_id)
            for s in range(surveys):
                survey_id = await facade.add_survey({
                    "name": f"{name} Survey {c}.{s}",
                    "campaignId": campaign_id,
                    "brandId": brand_id,
                    "questions": [{"id": "q1", "text": "Rate us", "type": "rating"}],
                })
                graph["surveys"].append(survey_id)
                for _ in range(responses):
                    graph["responses"].append(
                        (survey_id, await facade.submit_response(survey_id, {"q1": 5}))
                    )
        return graph

    return build


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def api(facade):
    """httpx client against the FastAPI app, wired to the in-memory facade."""
    from cia_api.core.deps import get_facade
    from cia_api.main import app

    app.dependency_overrides[get_facade] = lambda: facade
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def upstream():
    """Async CiaApiClient wired with test credentials."""
    async with CiaApiClient(BASE_URL, token=TEST_TOKEN) as client:
        yield client
