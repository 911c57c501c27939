"""Local/remote table synchronisation.

Keeps the local cache (camelCase records, one JSON file per table)
consistent with the hosted relational store (underscore_case rows).

Modules:

- ``registry`` -- ``TableDescriptor`` and the static table list.
- ``models``   -- ``SyncOutcome``, ``SyncReport``, ``TableCounts`` and
  the other data contracts.
- ``events``   -- ``TableChangeNotifier``: the "table changed" channel.
- ``cache``    -- ``LocalCacheStore``: atomic keyed JSON persistence.
- ``remote``   -- ``RemoteStoreAdapter``: async CRUD returning results.
- ``engine``   -- ``SyncEngine``: push, pull, ``sync_all``, ``pull_all``.
- ``guard``    -- ``ConnectivityGuard``: online/offline decision.
- ``reporter`` -- ``StatisticsReporter`` and report formatting.
- ``state``    -- ``SyncHistory``: last sync status per table.
- ``links``    -- product/lottery cross-reference repair.

Usage example
-------------
::

    from winshirt_sync.app import SyncServices

    services = SyncServices(config)
    services.open()
    try:
        if await services.guard.check() == SyncMode.ONLINE:
            report = await services.engine.sync_all()
            print(format_sync_report(report))
    finally:
        services.close()
"""

from .cache import LocalCacheStore
from .engine import SyncEngine
from .events import TableChangeNotifier
from .guard import ConnectivityGuard
from .links import LinkSyncResult, sync_product_lottery_links
from .models import (
    ConnectivityStatus,
    SyncDirection,
    SyncMode,
    SyncOutcome,
    SyncPhase,
    SyncRecord,
    SyncReport,
    SyncStatus,
    TableCounts,
)
from .registry import TABLE_NAMES, TABLES, TableDescriptor, get_table
from .remote import RemoteStoreAdapter
from .reporter import (
    StatisticsReporter,
    format_data_counts,
    format_sync_report,
    needs_sync,
    report_to_json,
)
from .state import SyncHistory

__all__ = [
    "ConnectivityGuard",
    "ConnectivityStatus",
    "LinkSyncResult",
    "LocalCacheStore",
    "RemoteStoreAdapter",
    "StatisticsReporter",
    "SyncDirection",
    "SyncEngine",
    "SyncHistory",
    "SyncMode",
    "SyncOutcome",
    "SyncPhase",
    "SyncRecord",
    "SyncReport",
    "SyncStatus",
    "TABLES",
    "TABLE_NAMES",
    "TableChangeNotifier",
    "TableCounts",
    "TableDescriptor",
    "format_data_counts",
    "format_sync_report",
    "get_table",
    "needs_sync",
    "report_to_json",
    "sync_product_lottery_links",
]
