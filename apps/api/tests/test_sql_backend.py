"""Tests for the SQLAlchemy document backend against a file-backed SQLite DB."""

import asyncio

import pytest

from cia_api.core.errors import NotFound
from cia_api.services.aggregation import AggregationService
from cia_api.services.collections import responses_of
from cia_api.services.store import BatchOp, OrderBy, VersionConflict


class TestSqlCrud:
    async def test_create_get_update_delete(self, sql_store):
        doc_id = await sql_store.create("clients", {"name": "Acme", "industry": "CPG"})
        entity = await sql_store.get_by_id("clients", doc_id)
        assert entity["name"] == "Acme"
        assert entity["createdAt"] == entity["updatedAt"]

        await sql_store.update("clients", doc_id, {"industry": "Retail"})
        entity = await sql_store.get_by_id("clients", doc_id)
        assert entity["name"] == "Acme"
        assert entity["industry"] == "Retail"
        assert entity["updatedAt"] > entity["createdAt"]

        await sql_store.delete("clients", doc_id)
        await sql_store.delete("clients", doc_id)
        assert await sql_store.find("clients", doc_id) is None

    async def test_update_missing_raises(self, sql_store):
        with pytest.raises(NotFound):
            await sql_store.update("clients", "nope", {"name": "x"})

    async def test_collections_are_isolated(self, sql_store):
        await sql_store.create("clients", {"name": "Acme"})
        await sql_store.create("surveys/s1/responses", {"answers": {"q1": 3}})
        assert await sql_store.count("clients") == 1
        assert await sql_store.count("surveys/s1/responses") == 1
        assert await sql_store.count("surveys/s2/responses") == 0


class TestSqlQueries:
    async def test_string_filter_and_name_order(self, sql_store):
        await sql_store.create("brands", {"name": "Zest", "clientId": "c1"})
        await sql_store.create("brands", {"name": "Apex", "clientId": "c1"})
        await sql_store.create("brands", {"name": "Other", "clientId": "c2"})
        brands = await sql_store.list("brands", {"clientId": "c1"}, OrderBy("name"))
        assert [b["name"] for b in brands] == ["Apex", "Zest"]

    async def test_none_filter_matches_null_and_missing(self, sql_store):
        await sql_store.create("surveys", {"name": "a", "rewardProgramId": None})
        await sql_store.create("surveys", {"name": "b"})
        await sql_store.create("surveys", {"name": "c", "rewardProgramId": "rp1"})
        assert await sql_store.count("surveys", {"rewardProgramId": None}) == 2
        assert await sql_store.count("surveys", {"rewardProgramId": "rp1"}) == 1

    async def test_integer_filter(self, sql_store):
        await sql_store.create("redemptionItems", {"name": "a", "pointsCost": 50})
        await sql_store.create("redemptionItems", {"name": "b", "pointsCost": 100})
        items = await sql_store.list("redemptionItems", {"pointsCost": 100})
        assert [i["name"] for i in items] == ["b"]

    async def test_newest_first_with_limit(self, sql_store):
        for i in range(4):
            await sql_store.create("campaigns", {"name": f"k{i}"})
        recent = await sql_store.list("campaigns", order_by=OrderBy("createdAt", True), limit=2)
        assert [c["name"] for c in recent] == ["k3", "k2"]


class TestSqlBatches:
    async def test_bad_op_rolls_back_whole_batch(self, sql_store, sql_backend):
        a = await sql_store.create("surveys", {"name": "A"})
        b = await sql_store.create("surveys", {"name": "B"})
        ops = [
            BatchOp("delete", "surveys", a),
            BatchOp("bogus", "surveys", b),
        ]
        with pytest.raises(ValueError):
            await sql_backend.commit_batch(ops, sql_store.now())
        assert await sql_store.find("surveys", a) is not None
        assert await sql_store.find("surveys", b) is not None

    async def test_batch_applies_deletes_and_updates(self, sql_store):
        a = await sql_store.create("surveys", {"name": "A", "rewardProgramId": "rp1"})
        b = await sql_store.create("surveys", {"name": "B"})
        batch = sql_store.batch()
        batch.update("surveys", a, {"rewardProgramId": None})
        batch.delete("surveys", b)
        batch.update("surveys", "gone", {"name": "x"})
        await batch.commit()
        assert (await sql_store.get_by_id("surveys", a))["rewardProgramId"] is None
        assert await sql_store.find("surveys", b) is None

    async def test_compare_and_set(self, sql_store):
        doc_id = await sql_store.create("surveys", {"responseCount": 0})
        _, version = await sql_store.read_versioned("surveys", doc_id)
        assert await sql_store.compare_and_set("surveys", doc_id, version, {"responseCount": 1})
        assert not await sql_store.compare_and_set("surveys", doc_id, version, {"responseCount": 5})
        data, new_version = await sql_store.read_versioned("surveys", doc_id)
        assert data["responseCount"] == 1
        assert new_version == version + 1


    async def test_plain_update_bumps_version_and_keeps_counter(self, sql_store):
        doc_id = await sql_store.create("surveys", {"name": "A", "responseCount": 0})
        _, version = await sql_store.read_versioned("surveys", doc_id)
        assert await sql_store.compare_and_set("surveys", doc_id, version, {"responseCount": 1})
        await sql_store.update("surveys", doc_id, {"name": "B"})

        data, new_version = await sql_store.read_versioned("surveys", doc_id)
        assert data == {"name": "B", "responseCount": 1}
        assert new_version == version + 2
        assert not await sql_store.compare_and_set(
            "surveys", doc_id, version + 1, {"responseCount": 9}
        )

    async def test_guarded_update_conflict_rolls_back_insert(self, sql_store):
        survey_id = await sql_store.create("surveys", {"responseCount": 0})
        _, version = await sql_store.read_versioned("surveys", survey_id)
        await sql_store.update("surveys", survey_id, {"name": "renamed"})

        batch = sql_store.batch()
        batch.create(responses_of(survey_id), {"answers": {"q1": 3}})
        batch.update("surveys", survey_id, {"responseCount": 1}, expected_version=version)
        with pytest.raises(VersionConflict):
            await batch.commit()

        assert await sql_store.list(responses_of(survey_id)) == []
        assert (await sql_store.get_by_id("surveys", survey_id))["responseCount"] == 0

    async def test_insert_and_guarded_update_commit_together(self, sql_store):
        survey_id = await sql_store.create("surveys", {"responseCount": 0})
        _, version = await sql_store.read_versioned("surveys", survey_id)

        batch = sql_store.batch()
        response_id = batch.create(responses_of(survey_id), {"answers": {"q1": 3}})
        batch.update("surveys", survey_id, {"responseCount": 1}, expected_version=version)
        await batch.commit()

        responses = await sql_store.list(responses_of(survey_id))
        assert [r["id"] for r in responses] == [response_id]
        assert responses[0]["createdAt"] == responses[0]["updatedAt"]
        assert (await sql_store.get_by_id("surveys", survey_id))["responseCount"] == 1


class TestSqlFacade:
    async def test_client_cascade_end_to_end(self, sql_facade, make_graph):
        graph = await make_graph(sql_facade, campaigns=2, surveys=2, responses=1)
        other = await make_graph(sql_facade, campaigns=1, surveys=1, name="Globex")

        survey = await sql_facade.get_survey(graph["surveys"][0])
        assert survey["responseCount"] == 1
        kpi = await sql_facade.get_kpi_data()
        assert kpi.total_clients == 2
        assert kpi.total_respondents == 4

        await sql_facade.delete_client(graph["client"])

        assert await sql_facade.get_client(graph["client"]) is None
        assert await sql_facade.list_campaigns(graph["client"]) == []
        for survey_id in graph["surveys"]:
            assert await sql_facade.get_survey(survey_id) is None
            assert await sql_facade.list_responses(survey_id) == []
        assert await sql_facade.list_brands(graph["client"]) == []
        assert await sql_facade.get_client(other["client"]) is not None
        assert len(await sql_facade.list_surveys()) == 1

    async def test_sequential_increments(self, sql_facade, make_graph):
        graph = await make_graph(sql_facade, campaigns=1, surveys=1)
        survey_id = graph["surveys"][0]
        for _ in range(5):
            await sql_facade.submit_response(survey_id, {"q1": 4})
        assert (await sql_facade.get_survey(survey_id))["responseCount"] == 5
        assert len(await sql_facade.list_responses(survey_id)) == 5

    async def test_concurrent_submits_and_survey_edits(self, sql_facade, sql_store, make_graph):
        # Budget above the number of competing writers, so every submit lands.
        sql_facade.aggregation = AggregationService(sql_store, max_retries=10, backoff=0.001)
        graph = await make_graph(sql_facade, campaigns=1, surveys=1)
        survey_id = graph["surveys"][0]

        results = await asyncio.gather(
            *(sql_facade.submit_response(survey_id, {"q1": n}) for n in range(4)),
            *(sql_facade.update_survey(survey_id, {"description": f"edit {n}"}) for n in range(4)),
        )

        assert len({r for r in results if r is not None}) == 4
        survey = await sql_facade.get_survey(survey_id)
        assert survey["responseCount"] == 4
        assert len(await sql_facade.list_responses(survey_id)) == 4
        assert survey["description"].startswith("edit ")
