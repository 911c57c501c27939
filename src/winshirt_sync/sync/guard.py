"""Connectivity and schema guard.

Decides whether the sync layer runs ONLINE (remote store reachable and
every registered table present) or OFFLINE (local cache only).  None of
the checks raise: an unreachable store is an expected state.
"""

from __future__ import annotations

import logging

from .cache import LocalCacheStore
from .models import ConnectivityStatus, SyncMode, utc_now
from .registry import REMOTE_CONNECTED_KEY, TABLE_NAMES
from .remote import RemoteStoreAdapter

logger = logging.getLogger(__name__)

# Table counted to decide reachability.
PROBE_TABLE = "lotteries"


class ConnectivityGuard:
    """Track remote reachability and schema presence.

    Args:
        remote: Remote store adapter used for the checks.
        cache: Cache store in which the connection flag is persisted.
    """

    def __init__(
        self, remote: RemoteStoreAdapter, cache: LocalCacheStore
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.mode = SyncMode.OFFLINE
        self.status: ConnectivityStatus | None = None
        self.missing_tables: list[str] = []

    @property
    def is_online(self) -> bool:
        return self.mode == SyncMode.ONLINE

    async def probe(self) -> ConnectivityStatus:
        """Count a known table and record whether the store answered."""
        result = await self.remote.count(PROBE_TABLE)
        if result.ok:
            status = ConnectivityStatus(connected=True, checked_at=utc_now())
            logger.info("Remote store reachable")
        else:
            status = ConnectivityStatus(
                connected=False,
                error=str(result.error),
                checked_at=utc_now(),
            )
            logger.warning("Remote store unreachable: %s", result.error)
        self.status = status
        self.cache.write_value(REMOTE_CONNECTED_KEY, status.connected)
        return status

    async def ensure_schema(self) -> bool:
        """Check that every registered table exists remotely.

        Tables are never created here; a missing table is only logged.

        Returns:
            ``True`` when every table answered a trivial select.
        """
        missing: list[str] = []
        for table in TABLE_NAMES:
            result = await self.remote.select_sample(table)
            if result.ok:
                continue
            if result.error.is_schema:
                logger.error("Remote table %s is missing", table)
            else:
                logger.error(
                    "Could not verify remote table %s: %s",
                    table,
                    result.error,
                )
            missing.append(table)
        self.missing_tables = missing
        return not missing

    async def check(self) -> SyncMode:
        """Probe, then verify the schema, and set ``mode`` accordingly."""
        status = await self.probe()
        if status.connected and await self.ensure_schema():
            self.mode = SyncMode.ONLINE
        else:
            if not status.connected:
                self.missing_tables = []
            self.mode = SyncMode.OFFLINE
        logger.info("Sync mode: %s", self.mode.value)
        return self.mode

    def last_known_connected(self) -> bool:
        """Return the persisted connection flag from a previous probe."""
        return bool(self.cache.read_value(REMOTE_CONNECTED_KEY, False))
