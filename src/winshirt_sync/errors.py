"""Error taxonomy for the sync layer.

Expected runtime failures (remote unreachable, session rejected, missing
table, invalid record, cache full) are represented as ``RemoteError``
values and carried inside result objects.  Only programmer errors, such as
an unregistered table name passed by internal code, are raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Category of a sync-layer failure."""

    CONNECTIVITY = "connectivity"
    AUTH = "auth"
    SCHEMA = "schema"
    VALIDATION = "validation"
    QUOTA = "quota"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class RemoteError:
    """Structured description of a failed remote (or cache) operation.

    Attributes:
        kind: Error category used by callers to branch.
        message: Human-readable message from the backend or client.
        code: Backend error code when available (e.g. ``42P01``).
        status: HTTP status code when available.
    """

    kind: ErrorKind
    message: str
    code: str | None = None
    status: int | None = None

    @property
    def is_connectivity(self) -> bool:
        return self.kind == ErrorKind.CONNECTIVITY

    @property
    def is_auth(self) -> bool:
        return self.kind == ErrorKind.AUTH

    @property
    def is_schema(self) -> bool:
        return self.kind == ErrorKind.SCHEMA

    def __str__(self) -> str:
        if self.code:
            return f"{self.kind.value}: {self.message} ({self.code})"
        return f"{self.kind.value}: {self.message}"


class SyncLayerError(Exception):
    """Base exception for the sync layer."""


class UnknownTableError(SyncLayerError, ValueError):
    """A table name outside the static registry was passed by internal code."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Unknown table: {table_name!r}")


class CacheQuotaError(SyncLayerError):
    """A cache write would exceed the configured storage quota."""

    def __init__(self, key: str, required: int, quota: int):
        self.key = key
        self.required = required
        self.quota = quota
        super().__init__(
            f"Cache quota exceeded writing '{key}': "
            f"{required} bytes needed, quota is {quota} bytes"
        )


class RemoteRequestError(SyncLayerError):
    """Raised by ``RestClient`` when the backend answers with an error.

    The adapter converts this into a ``RemoteError`` value.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
    ):
        self.message = message
        self.status = status
        self.code = code
        super().__init__(message)
