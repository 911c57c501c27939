"""Per-table sync history.

The last ``SyncStatus`` of every table lives in the cache under the
``sync_status`` key as one JSON object keyed by table name, so the history
is persisted with the same atomic writes as the table snapshots.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from .cache import LocalCacheStore
from .models import SyncStatus
from .registry import SYNC_STATUS_KEY, get_table

logger = logging.getLogger(__name__)


class SyncHistory:
    """Load, save and query the last sync status of each table.

    Args:
        cache: Cache store that persists the history.
    """

    def __init__(self, cache: LocalCacheStore) -> None:
        self._cache = cache

    def _load(self) -> dict:
        raw = self._cache.read_value(SYNC_STATUS_KEY, {})
        return raw if isinstance(raw, dict) else {}

    def get_sync_status(self, table: str) -> SyncStatus | None:
        """Return the last recorded status of *table*, or ``None``."""
        get_table(table)
        entry = self._load().get(table)
        if entry is None:
            return None
        try:
            return SyncStatus.model_validate(entry)
        except ValidationError:
            logger.warning("Ignoring malformed sync status for %s", table)
            return None

    def set_sync_status(self, table: str, status: SyncStatus) -> bool:
        """Record *status* as the last sync of *table*."""
        get_table(table)
        history = self._load()
        history[table] = status.model_dump()
        return self._cache.write_value(SYNC_STATUS_KEY, history)

    def get_sync_history(self) -> dict[str, SyncStatus]:
        """Return every recorded status, skipping malformed entries."""
        result: dict[str, SyncStatus] = {}
        for table, entry in self._load().items():
            try:
                result[table] = SyncStatus.model_validate(entry)
            except ValidationError:
                logger.warning(
                    "Ignoring malformed sync status for %s", table
                )
        return result

    def clear_sync_history(self) -> None:
        self._cache.delete_value(SYNC_STATUS_KEY)
