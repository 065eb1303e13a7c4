"""Tests for EntityStore over the in-memory backend.

Covers timestamp stamping and ISO rendering, NotFound vs absent values,
filtering and ordering, idempotent delete, the per-call timeout, atomic
batches and versioned compare-and-set.
"""

from datetime import datetime, timezone

import pytest

from cia_api.core.errors import NotFound, StoreUnavailable
from cia_api.services.store import (
    EntityStore,
    MemoryDocumentBackend,
    OrderBy,
    SimulatedStoreError,
    VersionConflict,
)


class TestCreateAndRead:
    async def test_create_stamps_timestamps(self, store):
        doc_id = await store.create("clients", {"name": "Acme"})
        entity = await store.get_by_id("clients", doc_id)
        assert entity["id"] == doc_id
        assert entity["name"] == "Acme"
        assert entity["createdAt"] == entity["updatedAt"]
        stamped = datetime.fromisoformat(entity["createdAt"])
        assert stamped.tzinfo is not None

    async def test_caller_cannot_set_store_owned_fields(self, store):
        doc_id = await store.create(
            "clients",
            {"name": "Acme", "id": "forged", "createdAt": "1999-01-01T00:00:00+00:00"},
        )
        entity = await store.get_by_id("clients", doc_id)
        assert entity["id"] == doc_id != "forged"
        assert not entity["createdAt"].startswith("1999")

    async def test_temporal_fields_returned_as_iso(self, store):
        start = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
        doc_id = await store.create("campaigns", {"name": "Launch", "startDate": start})
        entity = await store.get_by_id("campaigns", doc_id)
        assert entity["startDate"] == "2024-03-01T09:30:00+00:00"

    async def test_store_clock_is_strictly_increasing(self, store):
        ids = [await store.create("clients", {"name": f"c{i}"}) for i in range(5)]
        stamps = [(await store.get_by_id("clients", i))["createdAt"] for i in ids]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    async def test_get_by_id_missing_raises(self, store):
        with pytest.raises(NotFound) as exc_info:
            await store.get_by_id("clients", "nope")
        assert exc_info.value.collection == "clients"
        assert exc_info.value.entity_id == "nope"

    async def test_find_missing_returns_none(self, store):
        assert await store.find("clients", "nope") is None


class TestList:
    async def test_empty_collection_is_empty_list(self, store):
        assert await store.list("clients") == []
        assert await store.list("clients", {"status": "Active"}) == []

    async def test_filters_are_field_equality(self, store):
        await store.create("brands", {"name": "A", "clientId": "c1"})
        await store.create("brands", {"name": "B", "clientId": "c2"})
        await store.create("brands", {"name": "C", "clientId": "c1"})
        names = [b["name"] for b in await store.list("brands", {"clientId": "c1"}, OrderBy("name"))]
        assert names == ["A", "C"]

    async def test_ties_broken_by_id(self, store):
        ids = [await store.create("clients", {"name": "Same"}) for _ in range(4)]
        listed = [c["id"] for c in await store.list("clients", order_by=OrderBy("name"))]
        assert listed == sorted(ids)

    async def test_created_at_descending(self, store):
        ids = [await store.create("campaigns", {"name": f"k{i}"}) for i in range(3)]
        listed = await store.list("campaigns", order_by=OrderBy("createdAt", descending=True))
        assert [c["id"] for c in listed] == list(reversed(ids))

    async def test_limit(self, store):
        for i in range(5):
            await store.create("campaigns", {"name": f"k{i}"})
        listed = await store.list("campaigns", order_by=OrderBy("createdAt", True), limit=2)
        assert [c["name"] for c in listed] == ["k4", "k3"]

    async def test_count(self, store):
        await store.create("surveys", {"campaignId": "k1"})
        await store.create("surveys", {"campaignId": "k1"})
        await store.create("surveys", {"campaignId": "k2"})
        assert await store.count("surveys") == 3
        assert await store.count("surveys", {"campaignId": "k1"}) == 2
        assert await store.count("surveys", {"campaignId": "k9"}) == 0


class TestUpdateAndDelete:
    async def test_update_merges_and_bumps_updated_at(self, store):
        doc_id = await store.create("clients", {"name": "Acme", "industry": "CPG"})
        await store.update("clients", doc_id, {"name": "Acme Corp"})
        entity = await store.get_by_id("clients", doc_id)
        assert entity["name"] == "Acme Corp"
        assert entity["industry"] == "CPG"
        assert entity["updatedAt"] > entity["createdAt"]

    async def test_empty_update_still_bumps_updated_at(self, store):
        doc_id = await store.create("clients", {"name": "Acme"})
        before = (await store.get_by_id("clients", doc_id))["updatedAt"]
        await store.update("clients", doc_id, {})
        assert (await store.get_by_id("clients", doc_id))["updatedAt"] > before

    async def test_update_missing_raises(self, store):
        with pytest.raises(NotFound):
            await store.update("clients", "nope", {"name": "x"})

    async def test_delete_is_idempotent(self, store):
        doc_id = await store.create("clients", {"name": "Acme"})
        await store.delete("clients", doc_id)
        await store.delete("clients", doc_id)
        await store.delete("clients", "never-existed")
        assert await store.find("clients", doc_id) is None

    async def test_side_effects_stay_in_collection(self, store, backend):
        await store.create("clients", {"name": "Acme"})
        await store.create("campaigns", {"name": "Launch", "clientId": "x"})
        doc_id = (await store.list("clients"))[0]["id"]
        await store.delete("clients", doc_id)
        assert list(backend.snapshot()) == ["campaigns"]


class TestTimeout:
    async def test_slow_backend_raises_store_unavailable(self):
        slow = EntityStore(MemoryDocumentBackend(latency=0.2), timeout=0.02)
        with pytest.raises(StoreUnavailable) as exc_info:
            await slow.list("clients")
        assert exc_info.value.operation == "list"
        assert exc_info.value.collection == "clients"

    async def test_transport_errors_propagate_unmodified(self, store, backend, monkeypatch):
        async def broken(*args, **kwargs):
            raise ConnectionResetError("socket closed")

        monkeypatch.setattr(backend, "fetch", broken)
        with pytest.raises(ConnectionResetError):
            await store.find("clients", "x")


class TestBatchAndCompareAndSet:
    async def test_batch_commits_all(self, store):
        a = await store.create("surveys", {"name": "A"})
        b = await store.create("surveys", {"name": "B"})
        batch = store.batch()
        batch.delete("surveys", a)
        batch.update("surveys", b, {"rewardProgramId": None})
        assert len(batch) == 2
        await batch.commit()
        assert await store.find("surveys", a) is None
        assert (await store.get_by_id("surveys", b))["rewardProgramId"] is None

    async def test_failed_commit_applies_nothing(self, store, backend):
        a = await store.create("surveys", {"name": "A"})
        b = await store.create("surveys", {"name": "B"})
        before = backend.snapshot()
        batch = store.batch()
        batch.delete("surveys", a)
        batch.delete("surveys", b)
        backend.fail_next_commits()
        with pytest.raises(SimulatedStoreError):
            await batch.commit()
        assert backend.snapshot() == before

    async def test_batch_update_of_missing_doc_is_skipped(self, store):
        a = await store.create("surveys", {"name": "A"})
        batch = store.batch()
        batch.update("surveys", "gone", {"name": "x"})
        batch.delete("surveys", a)
        await batch.commit()
        assert await store.find("surveys", "gone") is None
        assert await store.find("surveys", a) is None

    async def test_compare_and_set_rejects_stale_version(self, store):
        doc_id = await store.create("surveys", {"responseCount": 0})
        data, version = await store.read_versioned("surveys", doc_id)
        assert await store.compare_and_set("surveys", doc_id, version, {"responseCount": 1})
        assert not await store.compare_and_set("surveys", doc_id, version, {"responseCount": 99})
        assert (await store.get_by_id("surveys", doc_id))["responseCount"] == 1

    async def test_read_versioned_missing_raises(self, store):
        with pytest.raises(NotFound):
            await store.read_versioned("surveys", "nope")

    async def test_batch_insert_and_guarded_update(self, store):
        survey_id = await store.create("surveys", {"responseCount": 0})
        _, version = await store.read_versioned("surveys", survey_id)
        batch = store.batch()
        response_id = batch.create(f"surveys/{survey_id}/responses", {"answers": {"q1": 1}})
        batch.update("surveys", survey_id, {"responseCount": 1}, expected_version=version)
        await batch.commit()

        response = await store.get_by_id(f"surveys/{survey_id}/responses", response_id)
        assert response["answers"] == {"q1": 1}
        assert (await store.get_by_id("surveys", survey_id))["responseCount"] == 1

    async def test_stale_guarded_update_applies_nothing(self, store, backend):
        survey_id = await store.create("surveys", {"responseCount": 0})
        _, version = await store.read_versioned("surveys", survey_id)
        await store.update("surveys", survey_id, {"name": "renamed"})
        before = backend.snapshot()

        batch = store.batch()
        batch.create(f"surveys/{survey_id}/responses", {"answers": {}})
        batch.update("surveys", survey_id, {"responseCount": 1}, expected_version=version)
        with pytest.raises(VersionConflict):
            await batch.commit()
        assert backend.snapshot() == before

    async def test_guarded_update_of_missing_doc_conflicts(self, store):
        batch = store.batch()
        batch.update("surveys", "gone", {"responseCount": 1}, expected_version=1)
        with pytest.raises(VersionConflict):
            await batch.commit()
