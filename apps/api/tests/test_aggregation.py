"""Tests for counts, optimistic counters and dashboard aggregates."""

import asyncio

import pytest

from cia_api.core.errors import ConcurrentUpdateExceeded, NotFound
from cia_api.services.aggregation import AggregationService, CounterIncrement
from cia_api.services.store import VersionConflict


@pytest.fixture
def aggregation(store):
    return AggregationService(store, max_retries=8, backoff=0.001)


class TestCountWhere:
    async def test_counts_with_and_without_filter(self, store, aggregation):
        await store.create("surveys", {"campaignId": "k1"})
        await store.create("surveys", {"campaignId": "k1"})
        await store.create("surveys", {"campaignId": "k2"})
        assert await aggregation.count_where("surveys") == 3
        assert await aggregation.count_where("surveys", "campaignId", "k1") == 2
        assert await aggregation.count_where("clients") == 0

    async def test_count_does_not_load_documents(self, store, backend, aggregation, monkeypatch):
        await store.create("surveys", {"campaignId": "k1"})

        async def no_query(*args, **kwargs):
            raise AssertionError("count_where must not list documents")

        monkeypatch.setattr(backend, "query", no_query)
        assert await aggregation.count_where("surveys", "campaignId", "k1") == 1


class TestIncrementCounter:
    async def test_absent_field_starts_at_zero(self, store, aggregation):
        doc_id = await store.create("surveys", {"name": "s"})
        assert await aggregation.increment_counter("surveys", doc_id, "responseCount") == 1
        assert (await store.get_by_id("surveys", doc_id))["responseCount"] == 1

    async def test_custom_amount_and_extra_fields(self, store, aggregation):
        doc_id = await store.create("consumers", {"surveysTaken": 2})
        value = await aggregation.increment_counter(
            "consumers", doc_id, "surveysTaken", amount=3, also_set={"segment": "Loyal"}
        )
        assert value == 5
        consumer = await store.get_by_id("consumers", doc_id)
        assert consumer["surveysTaken"] == 5
        assert consumer["segment"] == "Loyal"

    async def test_missing_document_raises(self, aggregation):
        with pytest.raises(NotFound):
            await aggregation.increment_counter("surveys", "nope", "responseCount")

    async def test_concurrent_increments_are_not_lost(self, store, aggregation):
        doc_id = await store.create("surveys", {"responseCount": 0})
        results = await asyncio.gather(
            *(aggregation.increment_counter("surveys", doc_id, "responseCount") for _ in range(8))
        )
        assert sorted(results) == list(range(1, 9))
        assert (await store.get_by_id("surveys", doc_id))["responseCount"] == 8

    async def test_gives_up_after_max_retries(self, store, monkeypatch):
        aggregation = AggregationService(store, max_retries=3, backoff=0)
        doc_id = await store.create("surveys", {"responseCount": 0})
        attempts = []

        async def always_conflict(*args, **kwargs):
            attempts.append(args)
            return False

        monkeypatch.setattr(store, "compare_and_set", always_conflict)
        with pytest.raises(ConcurrentUpdateExceeded) as exc_info:
            await aggregation.increment_counter("surveys", doc_id, "responseCount")
        assert exc_info.value.attempts == 3
        assert exc_info.value.field == "responseCount"
        assert len(attempts) == 3

    def test_rejects_zero_retries(self, store):
        with pytest.raises(ValueError):
            AggregationService(store, max_retries=0)


class TestApplyIncrements:
    async def test_counters_and_extra_writes_commit_together(self, store, aggregation):
        survey_id = await store.create("surveys", {"responseCount": 2})
        consumer_id = await store.create("consumers", {})
        batch = store.batch()
        response_id = batch.create(f"surveys/{survey_id}/responses", {"answers": {}})

        values = await aggregation.apply_increments(
            [
                CounterIncrement("surveys", survey_id, "responseCount"),
                CounterIncrement("consumers", consumer_id, "surveysTaken", also_set={"segment": "x"}),
            ],
            with_ops=batch.ops,
        )

        assert values == [3, 1]
        assert await store.find(f"surveys/{survey_id}/responses", response_id) is not None
        consumer = await store.get_by_id("consumers", consumer_id)
        assert (consumer["surveysTaken"], consumer["segment"]) == (1, "x")

    async def test_concurrent_calls_within_budget_all_land(self, store, aggregation):
        # A call only loses to another call's successful commit, so with
        # max_retries >= callers every call eventually commits.
        survey_id = await store.create("surveys", {"responseCount": 0})
        collection = f"surveys/{survey_id}/responses"

        async def submit():
            batch = store.batch()
            batch.create(collection, {"answers": {}})
            return await aggregation.apply_increments(
                [CounterIncrement("surveys", survey_id, "responseCount")], with_ops=batch.ops
            )

        results = await asyncio.gather(*(submit() for _ in range(aggregation.max_retries)))

        assert sorted(v for [v] in results) == list(range(1, aggregation.max_retries + 1))
        assert await store.count(collection) == aggregation.max_retries
        assert (await store.get_by_id("surveys", survey_id))["responseCount"] == aggregation.max_retries

    async def test_gives_up_without_applying_extra_writes(self, store, monkeypatch):
        aggregation = AggregationService(store, max_retries=3, backoff=0)
        survey_id = await store.create("surveys", {"responseCount": 0})
        attempts = []

        async def always_conflict(ops):
            attempts.append(ops)
            raise VersionConflict("surveys", survey_id)

        monkeypatch.setattr(store, "commit", always_conflict)
        batch = store.batch()
        batch.create(f"surveys/{survey_id}/responses", {"answers": {}})
        with pytest.raises(ConcurrentUpdateExceeded) as exc_info:
            await aggregation.apply_increments(
                [CounterIncrement("surveys", survey_id, "responseCount")], with_ops=batch.ops
            )
        assert exc_info.value.attempts == 3
        assert len(attempts) == 3
        monkeypatch.undo()
        assert await store.list(f"surveys/{survey_id}/responses") == []

    async def test_requires_an_increment(self, aggregation):
        with pytest.raises(ValueError):
            await aggregation.apply_increments([])


class TestDashboard:
    async def test_kpi_data(self, facade, make_graph):
        await make_graph(facade, campaigns=2, surveys=2, responses=1)
        await make_graph(facade, campaigns=1, surveys=1, responses=3, name="Globex")
        kpi = await facade.get_kpi_data()
        assert kpi.total_clients == 2
        assert kpi.total_campaigns == 3
        assert kpi.total_surveys == 5
        assert kpi.total_respondents == 7
        assert kpi.model_dump(by_alias=True)["totalRespondents"] == 7

    async def test_kpi_data_on_empty_store(self, facade):
        kpi = await facade.get_kpi_data()
        assert (kpi.total_clients, kpi.total_campaigns, kpi.total_surveys, kpi.total_respondents) == (0, 0, 0, 0)

    async def test_campaign_summaries_newest_first(self, facade, make_graph):
        graph = await make_graph(facade, campaigns=3, surveys=0)
        await facade.add_survey({"name": "Only", "campaignId": graph["campaigns"][1]})

        summaries = await facade.get_campaigns_for_client(graph["client"])

        assert [s.id for s in summaries] == list(reversed(graph["campaigns"]))
        assert [s.survey_count for s in summaries] == [0, 1, 0]
        assert summaries[0].name == "Acme Campaign 2"

    async def test_survey_count_for_campaign(self, facade, make_graph):
        graph = await make_graph(facade, campaigns=2, surveys=3)
        assert await facade.get_survey_count_for_campaign(graph["campaigns"][0]) == 3
        assert await facade.get_survey_count_for_campaign("nope") == 0
