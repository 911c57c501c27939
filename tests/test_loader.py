"""Tests for DataLoader fallbacks and seed data."""

from datetime import datetime, timezone

from winshirt_sync import seeds
from winshirt_sync.loader import PRELOAD_TABLES


class TestSeeds:
    def test_fresh_lists(self):
        first = seeds.seed_products()
        first.append({"id": 99})
        assert len(seeds.seed_products()) == 2

    def test_lottery_dates_relative_to_now(self):
        now = datetime(2026, 10, 19, tzinfo=timezone.utc)
        for lottery in seeds.seed_lotteries(now):
            assert lottery["endDate"] > now.isoformat()

    def test_visuals_reference_categories(self):
        category_ids = {c["id"] for c in seeds.seed_visual_categories()}
        assert all(v["categoryId"] in category_ids for v in seeds.seed_visuals())


class TestPreload:
    async def test_online_refreshes_from_remote(self, services, fake_client):
        fake_client.tables["products"] = [
            {"id": 10, "name": "Hoodie", "price": 59.0, "image_url": "/h.png"}
        ]

        loaded = await services.loader.preload_all()

        assert services.guard.is_online
        assert loaded["products"] == [
            {"id": 10, "name": "Hoodie", "price": 59.0, "imageUrl": "/h.png"}
        ]
        assert set(loaded) == set(PRELOAD_TABLES)

    async def test_offline_serves_cache(self, services, fake_client):
        cached = [{"id": 5, "title": "Cached lottery"}]
        services.cache.write("lotteries", cached)
        fake_client.unreachable = True

        loaded = await services.loader.preload_all()

        assert not services.guard.is_online
        assert loaded["lotteries"] == cached
        assert not any(op == "select" for op, _ in fake_client.calls)

    async def test_offline_with_empty_cache_serves_seed(self, services, fake_client):
        fake_client.unreachable = True

        loaded = await services.loader.preload_all()

        assert [p["name"] for p in loaded["products"]] == [
            "T-Shirt 3D",
            "Sweatshirt Premium",
        ]
        assert services.cache.read("products") == loaded["products"]

    async def test_failed_refresh_falls_back_to_cache(self, services, fake_client):
        cached = [{"id": 1, "name": "Cached", "price": 1}]
        services.cache.write("products", cached)
        await services.guard.check()
        fake_client.errors[("select", "products")] = ConnectionError("reset")

        loaded = await services.loader.preload_all()

        assert loaded["products"] == cached

    async def test_existing_status_skips_new_check(self, services, fake_client):
        await services.guard.check()
        calls_after_check = len(fake_client.calls)
        await services.loader.preload_all()
        assert ("count", "lotteries") not in fake_client.calls[calls_after_check:]


class TestVisuals:
    def test_seeded_once(self, services):
        first = services.loader.get_all_visuals()
        second = services.loader.get_all_visuals()

        assert len(first) == 3
        assert second == first
        assert len(services.cache.read("visuals")) == 3

    def test_emptied_list_stays_empty(self, services):
        services.cache.write("visuals", [])
        assert services.loader.get_all_visuals() == []

    def test_getters_seed_empty_tables(self, services):
        assert len(services.loader.get_visual_categories()) == 4
        assert len(services.loader.get_lotteries()) == 3
        assert services.loader.get_products()[0]["price"] == 29.99
