"""Startup data loading with remote, cache and seed fallbacks.

Read paths here never raise.  When the remote store is reachable the
catalogue tables are refreshed from it; otherwise (or when a refresh
fails) the cached snapshot is served, and an empty snapshot is replaced
by the built-in seed data, which is persisted so later reads agree.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from . import seeds
from .sync.cache import LocalCacheStore
from .sync.engine import SyncEngine
from .sync.guard import ConnectivityGuard

logger = logging.getLogger(__name__)

# Catalogue tables refreshed at startup, with their seed factories.
PRELOAD_TABLES: dict[str, Callable[[], list[dict]]] = {
    "products": seeds.seed_products,
    "lotteries": seeds.seed_lotteries,
    "visual_categories": seeds.seed_visual_categories,
    "visuals": seeds.seed_visuals,
}


class DataLoader:
    """Serve catalogue data from the best available source.

    Args:
        cache: Local cache store.
        engine: Sync engine used to pull fresh rows.
        guard: Decides whether remote reads are attempted at all.
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        engine: SyncEngine,
        guard: ConnectivityGuard,
    ) -> None:
        self.cache = cache
        self.engine = engine
        self.guard = guard

    async def preload_all(self) -> dict[str, list[dict]]:
        """Refresh every catalogue table and return what is now served.

        Runs a connectivity check first if none has been made yet.
        """
        if self.guard.status is None:
            await self.guard.check()
        online = self.guard.is_online
        if not online:
            logger.info("Offline: serving catalogue from local cache")

        loaded: dict[str, list[dict]] = {}
        for table in PRELOAD_TABLES:
            if online:
                try:
                    outcome = await self.engine.pull(table, notify=False)
                    if not outcome.succeeded:
                        logger.warning(
                            "Could not refresh %s, using cache", table
                        )
                except Exception:
                    logger.exception("Unexpected error refreshing %s", table)
            loaded[table] = self._cached_or_seed(table)
        return loaded

    def get_all_visuals(self) -> list[dict]:
        """Return the cached visuals, seeding them on first use.

        The seed is written only when the ``visuals`` key is absent, so an
        intentionally emptied list stays empty.
        """
        if not self.cache.has("visuals"):
            return self._seed("visuals")
        return self.cache.read("visuals")

    def get_products(self) -> list[dict]:
        return self._cached_or_seed("products")

    def get_lotteries(self) -> list[dict]:
        return self._cached_or_seed("lotteries")

    def get_visual_categories(self) -> list[dict]:
        return self._cached_or_seed("visual_categories")

    def _cached_or_seed(self, table: str) -> list[dict]:
        records = self.cache.read(table)
        if records:
            return records
        return self._seed(table)

    def _seed(self, table: str) -> list[dict]:
        records = PRELOAD_TABLES[table]()
        logger.info("Seeding %s with %d default record(s)", table, len(records))
        if not self.cache.write(table, records):
            logger.warning("Seed for %s could not be persisted", table)
        return records
