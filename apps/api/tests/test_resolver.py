"""Tests for reference resolution into cached display names."""

import logging

import pytest

from cia_api.core.errors import DanglingReference
from cia_api.services.resolver import DEFAULT_PLACEHOLDER, ReferenceResolver, placeholder_for


@pytest.fixture
def resolver(store):
    return ReferenceResolver(store)


class TestResolveDisplayName:
    async def test_returns_name(self, store, resolver):
        client_id = await store.create("clients", {"name": "Acme"})
        assert await resolver.resolve_display_name("clients", client_id) == "Acme"

    async def test_falls_back_to_title(self, store, resolver):
        campaign_id = await store.create("campaigns", {"title": "Spring Launch"})
        assert await resolver.resolve_display_name("campaigns", campaign_id) == "Spring Launch"

    async def test_missing_reference_uses_placeholder(self, resolver, caplog):
        with caplog.at_level(logging.WARNING, logger="cia_api.services.resolver"):
            name = await resolver.resolve_display_name("brands", "gone")
        assert name == "Unknown Brand"
        assert "brands/gone" in caplog.text

    async def test_empty_reference_is_none(self, resolver):
        assert await resolver.resolve_display_name("rewardPrograms", None) is None
        assert await resolver.resolve_display_name("rewardPrograms", "") is None

    async def test_lookup_raises_for_missing(self, resolver):
        with pytest.raises(DanglingReference) as exc_info:
            await resolver.lookup("clients", "gone")
        assert exc_info.value.collection == "clients"

    async def test_resolve_many_preserves_order(self, store, resolver):
        a = await store.create("brands", {"name": "A"})
        b = await store.create("brands", {"name": "B"})
        names = await resolver.resolve_many("brands", [b, "gone", a])
        assert names == ["B", "Unknown Brand", "A"]


def test_placeholder_for_unknown_collection():
    assert placeholder_for("clients") == "Unknown Client"
    assert placeholder_for("somethingElse") == DEFAULT_PLACEHOLDER
