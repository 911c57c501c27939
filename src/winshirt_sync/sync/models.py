"""Pydantic models for the table sync engine.

Defines the data contracts shared by the sync modules:

- ``SyncRecord``: one record with its id split from the other fields.
- ``SyncOutcome``: result of pushing or pulling one table.
- ``SyncReport``: aggregate of one multi-table run.
- ``ConnectivityStatus``: last known reachability of the remote store.
- ``TableCounts``: local/remote row counts for one table.
- ``SyncStatus``: persisted per-table history entry.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, computed_field, model_validator

from ..converters.case import Convention, convert_keys


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncDirection(str, Enum):
    PUSH = "push"
    PULL = "pull"


class SyncPhase(str, Enum):
    """Where a table currently is within a push or pull."""

    IDLE = "idle"
    READING_LOCAL = "reading_local"
    FETCHING_REMOTE = "fetching_remote"
    CONVERTING = "converting"
    PUSHING = "pushing"
    WRITING_LOCAL = "writing_local"
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


class SyncMode(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class SyncRecord(BaseModel):
    """A record with ``id`` held apart from its remaining fields.

    Converting a record between conventions rewrites the keys of
    ``fields`` only; ``id`` is carried unchanged.
    """

    id: int | str
    fields: dict[str, Any]
    naming_convention: Convention

    model_config = {"frozen": True}

    @classmethod
    def from_mapping(
        cls, row: dict[str, Any], convention: Convention
    ) -> SyncRecord:
        """Split *row* into id and fields.

        Raises:
            KeyError: If *row* has no ``id``.
        """
        fields = {k: v for k, v in row.items() if k != "id"}
        return cls(id=row["id"], fields=fields, naming_convention=convention)

    def convert(self, convention: Convention) -> SyncRecord:
        if convention == self.naming_convention:
            return self
        return SyncRecord(
            id=self.id,
            fields=convert_keys(self.fields, convention),
            naming_convention=convention,
        )

    def to_mapping(self) -> dict[str, Any]:
        return {"id": self.id, **self.fields}


class SyncOutcome(BaseModel):
    """Result of pushing or pulling one table.

    Attributes:
        table: Table name.
        direction: Push or pull.
        pushed: Records accepted by the remote store.
        pulled: Rows written into the local cache.
        failed_ids: Ids of records that were not written.
        succeeded: True only when nothing failed.
        skipped: Push found nothing to send (benign, but not a success).
        cancelled: The run was cancelled before this table finished.
        error: Table-level error message, if any.
    """

    table: str
    direction: SyncDirection
    pushed: int = 0
    pulled: int = 0
    failed_ids: list[int | str] = []
    succeeded: bool
    skipped: bool = False
    cancelled: bool = False
    error: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _no_success_with_failures(self) -> SyncOutcome:
        if self.succeeded and (self.failed_ids or self.error):
            raise ValueError(
                "an outcome with failed ids or an error cannot succeed"
            )
        return self


class SyncReport(BaseModel):
    """Aggregate result of ``sync_all`` or ``pull_all``.

    Attributes:
        direction: Push or pull.
        outcomes: One outcome per table, in run order.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run finished.
        cancelled: Whether cancellation was requested during the run.
    """

    direction: SyncDirection
    outcomes: list[SyncOutcome] = []
    started_at: str
    completed_at: str | None = None
    cancelled: bool = False

    model_config = {"frozen": True}

    @property
    def succeeded(self) -> bool:
        """True only if every table succeeded."""
        return all(o.succeeded for o in self.outcomes)

    @property
    def failed(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if not o.succeeded and not o.skipped]

    @property
    def skipped(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if o.skipped]

    def summary(self) -> str:
        """Format a short human-readable summary of the run."""
        ok = sum(1 for o in self.outcomes if o.succeeded)
        lines = [
            f"{self.direction.value.capitalize()} of "
            f"{len(self.outcomes)} table(s)"
            + (" (cancelled)" if self.cancelled else ""),
            f"  Succeeded: {ok}",
            f"  Skipped:   {len(self.skipped)}",
            f"  Failed:    {len(self.failed)}",
        ]
        return "\n".join(lines)


class ConnectivityStatus(BaseModel):
    connected: bool
    error: str | None = None
    checked_at: str

    model_config = {"frozen": True}


class TableCounts(BaseModel):
    """Row counts for one table.

    ``synced`` means the two counts agree, nothing more: equal counts of
    different rows still read as synced.
    """

    local: int
    remote: int

    model_config = {"frozen": True}

    @computed_field
    @property
    def synced(self) -> bool:
        return self.local == self.remote


class SyncStatus(BaseModel):
    """Persisted history entry for the last sync of one table."""

    success: bool
    last_sync: str | None = None
    error: str | None = None
    local_count: int | None = None
    remote_count: int | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_outcome(
        cls, outcome: SyncOutcome, local_count: int | None = None
    ) -> SyncStatus:
        return cls(
            success=outcome.succeeded,
            last_sync=utc_now() if outcome.succeeded else None,
            error=outcome.error,
            local_count=local_count,
            remote_count=outcome.pushed
            if outcome.direction == SyncDirection.PUSH
            else outcome.pulled,
        )
