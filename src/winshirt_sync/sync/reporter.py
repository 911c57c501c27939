"""Data statistics and sync report formatting.

- ``StatisticsReporter.get_data_counts`` -- local vs remote row counts.
- ``needs_sync`` -- tables whose counts disagree.
- ``format_data_counts`` -- counts as an aligned text table.
- ``format_sync_report`` -- post-run summary of a ``SyncReport``.
- ``report_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..core.async_utils import gather_limited
from .models import TableCounts
from .registry import TABLE_NAMES

if TYPE_CHECKING:
    from .cache import LocalCacheStore
    from .models import SyncReport
    from .remote import RemoteStoreAdapter

logger = logging.getLogger(__name__)


class StatisticsReporter:
    """Compare the local cache with the remote store, table by table.

    Args:
        cache: Local cache store.
        remote: Remote store adapter.
    """

    def __init__(
        self, cache: LocalCacheStore, remote: RemoteStoreAdapter
    ) -> None:
        self.cache = cache
        self.remote = remote

    async def _remote_count(self, table: str) -> int:
        result = await self.remote.count(table)
        if result.ok:
            return result.count
        # Unreachable and empty both read as 0 here.
        logger.warning(
            "Remote count of %s unavailable: %s", table, result.error
        )
        return 0

    async def get_data_counts(self) -> dict[str, TableCounts]:
        """Return local and remote row counts for every registered table.

        Remote counts run concurrently; a failed count is reported as 0.
        """
        remote_counts = await gather_limited(
            [self._remote_count(table) for table in TABLE_NAMES]
        )
        return {
            table: TableCounts(
                local=len(self.cache.read(table)), remote=remote
            )
            for table, remote in zip(TABLE_NAMES, remote_counts)
        }


def needs_sync(counts: dict[str, TableCounts]) -> list[str]:
    """Return the tables whose local and remote counts differ."""
    return [table for table, c in counts.items() if not c.synced]


# ------------------------------------------------------------------
# Human-readable output
# ------------------------------------------------------------------


def format_data_counts(counts: dict[str, TableCounts]) -> str:
    """Format counts as a fixed-width table.

    Args:
        counts: Result of ``get_data_counts``.

    Returns:
        Multi-line string, one row per table.
    """
    if not counts:
        return "No tables."
    width = max(len("Table"), *(len(t) for t in counts))
    lines = [
        f"{'Table':<{width}}  {'Local':>6}  {'Remote':>6}  Status",
        f"{'-' * width}  {'-' * 6}  {'-' * 6}  ------",
    ]
    for table, c in counts.items():
        status = "synced" if c.synced else "differs"
        lines.append(
            f"{table:<{width}}  {c.local:>6}  {c.remote:>6}  {status}"
        )
    pending = needs_sync(counts)
    lines.append("")
    if pending:
        lines.append(f"{len(pending)} table(s) out of sync")
    else:
        lines.append("All tables in sync")
    return "\n".join(lines)


def format_sync_report(report: SyncReport) -> str:
    """Format a multi-table sync report as human-readable text.

    Sections are only included when they contain at least one outcome.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    verb = "Push" if report.direction.value == "push" else "Pull"
    lines: list[str] = [f"{verb} report"]
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    if report.cancelled:
        lines.append("Cancelled before completion")
    lines.append("")

    succeeded = [o for o in report.outcomes if o.succeeded]
    lines.append(
        f"{len(report.outcomes)} tables: {len(succeeded)} succeeded, "
        f"{len(report.skipped)} skipped, {len(report.failed)} failed"
    )
    lines.append("")

    if succeeded:
        lines.append("Succeeded:")
        for o in succeeded:
            count = o.pushed if verb == "Push" else o.pulled
            lines.append(f"  {o.table}: {count} record(s)")
        lines.append("")

    if report.skipped:
        lines.append("Skipped (no local data):")
        for o in report.skipped:
            lines.append(f"  {o.table}")
        lines.append("")

    if report.failed:
        lines.append("Failed:")
        for o in report.failed:
            detail = o.error or "invalid records"
            if o.failed_ids:
                ids = ", ".join(str(i) for i in o.failed_ids[:10])
                more = len(o.failed_ids) - 10
                if more > 0:
                    ids += f" (+{more} more)"
                detail += f" [ids: {ids}]"
            lines.append(f"  {o.table}: {detail}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.
    """
    return {
        "direction": report.direction.value,
        "succeeded": report.succeeded,
        "cancelled": report.cancelled,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": len(report.outcomes),
            "succeeded": sum(1 for o in report.outcomes if o.succeeded),
            "skipped": len(report.skipped),
            "failed": len(report.failed),
        },
        "outcomes": [o.model_dump(mode="json") for o in report.outcomes],
    }


def counts_to_json(counts: dict[str, TableCounts]) -> dict:
    return {
        "tables": {t: c.model_dump() for t, c in counts.items()},
        "needs_sync": needs_sync(counts),
    }
