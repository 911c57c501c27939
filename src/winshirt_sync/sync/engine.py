"""Table sync engine.

``SyncEngine`` moves table snapshots between the local cache and the
remote store:

- **push** reads the cached records, validates them, converts their keys
  to underscore_case and upserts them in sequential batches.  A failing
  batch marks its ids as failed and the push moves on to the next batch;
  a schema error stops the table.
- **pull** fetches every remote row, converts the keys to camelCase and
  replaces the cached snapshot.  An error or an empty result leaves the
  cache untouched.
- **sync_all** / **pull_all** run every registered table in registry
  order, one at a time, and can be cancelled between batches and tables
  through an ``asyncio.Event``.

Error handling is per-table: a failure in one table never aborts the run,
and each failed table produces one notification naming it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from ..converters.case import to_camel
from ..notifications import Notifier
from ..validators import validate_record
from .cache import LocalCacheStore
from .models import (
    SyncDirection,
    SyncOutcome,
    SyncPhase,
    SyncRecord,
    SyncReport,
    SyncStatus,
    utc_now,
)
from .registry import TABLES, get_table
from .remote import RemoteStoreAdapter
from .state import SyncHistory

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20

PhaseListener = Callable[[str, SyncPhase], None]


def _is_cancelled(cancel: asyncio.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


class SyncEngine:
    """Push and pull registered tables between cache and remote store.

    Args:
        cache: Local cache store.
        remote: Remote store adapter.
        notifier: Receives user-visible sync notifications.
        history: Records the last status of each table, if given.
        batch_size: Records per upsert request.
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        remote: RemoteStoreAdapter,
        notifier: Notifier,
        history: SyncHistory | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.cache = cache
        self.remote = remote
        self.notifier = notifier
        self.history = history
        self.batch_size = batch_size
        self._phases: dict[str, SyncPhase] = {}
        self._phase_listeners: list[PhaseListener] = []

    # ------------------------------------------------------------------
    # Phase tracking
    # ------------------------------------------------------------------

    def phase(self, table: str) -> SyncPhase:
        """Return the current phase of *table* (``IDLE`` between runs)."""
        get_table(table)
        return self._phases.get(table, SyncPhase.IDLE)

    def add_phase_listener(self, listener: PhaseListener) -> None:
        self._phase_listeners.append(listener)

    def _set_phase(self, table: str, phase: SyncPhase) -> None:
        self._phases[table] = phase
        for listener in self._phase_listeners:
            listener(table, phase)

    # ------------------------------------------------------------------
    # Single table
    # ------------------------------------------------------------------

    async def push(
        self, table: str, cancel: asyncio.Event | None = None
    ) -> SyncOutcome:
        """Push the cached records of *table* to the remote store.

        Raises:
            UnknownTableError: If *table* is not registered.
        """
        outcome = await self._push(table, cancel)
        if outcome.succeeded:
            self.notifier.success(
                f"{table}: {outcome.pushed} record(s) synchronized"
            )
        return outcome

    async def pull(
        self,
        table: str,
        cancel: asyncio.Event | None = None,
        notify: bool = True,
    ) -> SyncOutcome:
        """Replace the cached records of *table* with the remote rows.

        Failures are always notified; *notify* only controls the success
        message.

        Raises:
            UnknownTableError: If *table* is not registered.
        """
        outcome = await self._pull(table, cancel)
        if notify and outcome.succeeded and outcome.pulled:
            self.notifier.success(
                f"{table}: {outcome.pulled} record(s) loaded"
            )
        return outcome

    async def _push(
        self, table: str, cancel: asyncio.Event | None
    ) -> SyncOutcome:
        descriptor = get_table(table)
        try:
            self._set_phase(table, SyncPhase.READING_LOCAL)
            records = self.cache.read(table)
            if not records:
                self.notifier.warning(f"{table}: no local data to sync")
                return self._finish(
                    SyncOutcome(
                        table=table,
                        direction=SyncDirection.PUSH,
                        succeeded=False,
                        skipped=True,
                    ),
                    SyncPhase.IDLE,
                    local_count=0,
                )

            failed_ids: list[int | str] = []
            valid: list[dict] = []
            invalid = 0
            for index, record in enumerate(records):
                ok, reason = validate_record(descriptor, record)
                if ok:
                    valid.append(record)
                    continue
                record_id = record.get("id")
                failed_id = (
                    record_id
                    if isinstance(record_id, (int, str))
                    and not isinstance(record_id, bool)
                    and record_id != ""
                    else f"#{index}"
                )
                logger.warning(
                    "Skipping invalid %s record %s: %s",
                    table,
                    failed_id,
                    reason,
                )
                failed_ids.append(failed_id)
                invalid += 1

            self._set_phase(table, SyncPhase.CONVERTING)
            rows = [
                SyncRecord.from_mapping(record, "camel")
                .convert("underscore")
                .to_mapping()
                for record in valid
            ]

            self._set_phase(table, SyncPhase.PUSHING)
            size = 1 if descriptor.single_record else self.batch_size
            pushed = 0
            first_error: str | None = None
            cancelled = False

            for start in range(0, len(rows), size):
                if _is_cancelled(cancel):
                    cancelled = True
                    failed_ids.extend(r["id"] for r in rows[start:])
                    logger.info("Push of %s cancelled", table)
                    break

                batch = rows[start : start + size]
                result = await self.remote.upsert_batch(table, batch)
                if result.ok:
                    pushed += len(batch)
                    continue

                error = result.error
                failed_ids.extend(r["id"] for r in batch)
                first_error = first_error or error.message
                self.notifier.error(
                    f"{table}: sync failed ({error.message})"
                )
                if error.is_schema:
                    failed_ids.extend(r["id"] for r in rows[start + size :])
                    logger.error(
                        "Schema error on %s, skipping the rest of the table",
                        table,
                    )
                    break

            if first_error is None and cancelled:
                self.notifier.error(f"{table}: sync cancelled")
            elif first_error is None and invalid:
                self.notifier.error(
                    f"{table}: {invalid} invalid record(s) not synchronized"
                )

            succeeded = not failed_ids and not cancelled
            outcome = SyncOutcome(
                table=table,
                direction=SyncDirection.PUSH,
                pushed=pushed,
                failed_ids=failed_ids,
                succeeded=succeeded,
                cancelled=cancelled,
                error=first_error or ("Cancelled" if cancelled else None),
            )
            final = (
                SyncPhase.SUCCEEDED
                if succeeded
                else SyncPhase.PARTIALLY_FAILED
            )
            return self._finish(
                outcome,
                final,
                local_count=len(records),
            )
        finally:
            self._set_phase(table, SyncPhase.IDLE)

    async def _pull(
        self, table: str, cancel: asyncio.Event | None
    ) -> SyncOutcome:
        get_table(table)
        try:
            if _is_cancelled(cancel):
                return self._finish(
                    self._cancelled(table, SyncDirection.PULL),
                    SyncPhase.FAILED,
                )

            self._set_phase(table, SyncPhase.FETCHING_REMOTE)
            result = await self.remote.select_all(table)
            if not result.ok:
                self.notifier.error(
                    f"{table}: could not load remote data "
                    f"({result.error.message})"
                )
                return self._finish(
                    SyncOutcome(
                        table=table,
                        direction=SyncDirection.PULL,
                        succeeded=False,
                        error=result.error.message,
                    ),
                    SyncPhase.FAILED,
                )

            if not result.data:
                # Keep whatever is cached: an empty remote table never
                # wipes local data.
                logger.info("Remote %s is empty, local data kept", table)
                return self._finish(
                    SyncOutcome(
                        table=table,
                        direction=SyncDirection.PULL,
                        succeeded=True,
                    ),
                    SyncPhase.SUCCEEDED,
                    local_count=len(self.cache.read(table)),
                )

            self._set_phase(table, SyncPhase.CONVERTING)
            rows = to_camel(result.data)

            self._set_phase(table, SyncPhase.WRITING_LOCAL)
            if not self.cache.write(table, rows):
                return self._finish(
                    SyncOutcome(
                        table=table,
                        direction=SyncDirection.PULL,
                        succeeded=False,
                        error="Local cache write failed",
                    ),
                    SyncPhase.FAILED,
                )

            return self._finish(
                SyncOutcome(
                    table=table,
                    direction=SyncDirection.PULL,
                    pulled=len(rows),
                    succeeded=True,
                ),
                SyncPhase.SUCCEEDED,
                local_count=len(rows),
            )
        finally:
            self._set_phase(table, SyncPhase.IDLE)

    # ------------------------------------------------------------------
    # All tables
    # ------------------------------------------------------------------

    async def sync_all(self, cancel: asyncio.Event | None = None) -> SyncReport:
        """Push every registered table, parents before children."""
        return await self._run_all(SyncDirection.PUSH, cancel)

    async def pull_all(self, cancel: asyncio.Event | None = None) -> SyncReport:
        """Pull every registered table, parents before children."""
        return await self._run_all(SyncDirection.PULL, cancel)

    async def _run_all(
        self, direction: SyncDirection, cancel: asyncio.Event | None
    ) -> SyncReport:
        started_at = utc_now()
        step = self._push if direction == SyncDirection.PUSH else self._pull
        outcomes: list[SyncOutcome] = []

        for descriptor in TABLES:
            name = descriptor.name
            if _is_cancelled(cancel):
                outcomes.append(
                    self._finish(
                        self._cancelled(name, direction), SyncPhase.FAILED
                    )
                )
                continue
            try:
                outcomes.append(await step(name, cancel))
            except Exception as exc:
                logger.exception("Unexpected error syncing %s", name)
                self.notifier.error(f"{name}: sync failed ({exc})")
                outcomes.append(
                    self._finish(
                        SyncOutcome(
                            table=name,
                            direction=direction,
                            succeeded=False,
                            error=str(exc),
                        ),
                        SyncPhase.FAILED,
                    )
                )

        report = SyncReport(
            direction=direction,
            outcomes=outcomes,
            started_at=started_at,
            completed_at=utc_now(),
            cancelled=_is_cancelled(cancel),
        )

        verb = "synchronized" if direction == SyncDirection.PUSH else "loaded"
        if report.succeeded:
            self.notifier.success(f"All tables {verb} successfully")
        else:
            names = ", ".join(
                o.table for o in outcomes if not o.succeeded
            )
            self.notifier.warning(
                f"Some tables could not be {verb}: {names}"
            )
        logger.info("%s", report.summary())
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _cancelled(table: str, direction: SyncDirection) -> SyncOutcome:
        return SyncOutcome(
            table=table,
            direction=direction,
            succeeded=False,
            cancelled=True,
            error="Cancelled",
        )

    def _finish(
        self,
        outcome: SyncOutcome,
        phase: SyncPhase,
        local_count: int | None = None,
    ) -> SyncOutcome:
        self._set_phase(outcome.table, phase)
        if self.history is not None:
            self.history.set_sync_status(
                outcome.table,
                SyncStatus.from_outcome(outcome, local_count),
            )
        return outcome
