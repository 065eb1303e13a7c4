"""The demo seed goes through the façade and can be re-run safely."""

from seed_data import seed


class TestSeed:
    async def test_seed_populates_graph(self, facade):
        counts = await seed(facade)
        assert counts == {"clients": 5, "brands": 7, "campaigns": 5, "surveys": 5}

        campaigns = await facade.list_campaigns_with_details()
        beverage = next(c for c in campaigns if c["name"] == "Beverage Taste Test Q2")
        assert beverage["clientName"] == "Liquid Refreshments Co."
        assert sorted(beverage["brandNames"]) == ["AquaPure", "Fizz"]

        surveys = {s["name"]: s for s in await facade.list_surveys()}
        concept = surveys["Initial Concept Test"]
        assert concept["rewardProgramName"] == "Standard Points Program"
        assert [q["type"] for q in concept["questions"]] == ["rating", "multiple-choice", "open-ended"]

        kpi = await facade.get_kpi_data()
        assert (kpi.total_clients, kpi.total_campaigns, kpi.total_surveys) == (5, 5, 5)

    async def test_second_run_is_a_noop(self, facade):
        await seed(facade)
        counts = await seed(facade)
        assert counts == {"clients": 0, "brands": 0, "campaigns": 0, "surveys": 0}
        assert len(await facade.list_clients()) == 5
        assert len(await facade.list_reward_programs()) == 3

    async def test_partial_rerun_restores_missing_without_duplicates(self, facade):
        await seed(facade)
        clients = {c["name"]: c["id"] for c in await facade.list_clients()}
        await facade.delete_client(clients["Liquid Refreshments Co."])

        counts = await seed(facade)

        assert counts["clients"] == 1
        assert len(await facade.list_clients()) == 5
        assert len(await facade.list_reward_programs()) == 3
        assert len(await facade.list_redemption_items()) == 4
        assert len(await facade.list_consumers()) == 3
