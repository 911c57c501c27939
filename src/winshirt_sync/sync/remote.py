"""Async adapter over the REST client.

Every operation returns a result object whose ``error`` is ``None`` on
success or a classified ``RemoteError`` otherwise.  Expected failures
(network down, rejected session, missing table, constraint violation,
timeout) never raise.  An unregistered table name does: it is a
programming error and raises ``UnknownTableError`` before any request is
made.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, TypeVar

import requests

from ..core.async_utils import run_sync_limited
from ..core.client import RestClient
from ..errors import ErrorKind, RemoteError, RemoteRequestError
from .registry import get_table

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Backend error codes, see the gateway and database error references.
_AUTH_CODES = {"42501", "PGRST301", "PGRST302"}
_SCHEMA_CODES = {"42P01", "42703", "PGRST204", "PGRST205"}


# ---------------------------------------------------------------------------
# Result objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SelectResult:
    data: list[dict] = field(default_factory=list)
    error: RemoteError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class UpsertResult:
    inserted_count: int = 0
    error: RemoteError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class DeleteResult:
    error: RemoteError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CountResult:
    count: int = 0
    error: RemoteError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RpcResult:
    data: Any = None
    error: RemoteError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


def classify_status(
    status: int | None, code: str | None, message: str
) -> ErrorKind:
    """Map an error response onto an ``ErrorKind``.

    Checks run in order: auth, schema, conflict, validation,
    connectivity.  A 409 is a conflict even when the database code is a
    constraint violation.
    """
    lowered = message.lower()
    code = code or ""

    if (
        status in (401, 403)
        or code in _AUTH_CODES
        or "jwt" in lowered
        or "permission denied" in lowered
    ):
        return ErrorKind.AUTH
    if (
        status == 404
        or code in _SCHEMA_CODES
        or "does not exist" in lowered
    ):
        return ErrorKind.SCHEMA
    if status == 409:
        return ErrorKind.CONFLICT
    if status in (400, 422) or code.startswith(("22", "23")):
        return ErrorKind.VALIDATION
    if status is not None and status >= 500:
        return ErrorKind.CONNECTIVITY
    return ErrorKind.UNKNOWN


def classify_exception(exc: BaseException) -> RemoteError:
    """Convert an exception raised by a client call into a ``RemoteError``."""
    match exc:
        case RemoteRequestError():
            return RemoteError(
                kind=classify_status(exc.status, exc.code, exc.message),
                message=exc.message,
                code=exc.code,
                status=exc.status,
            )
        case TimeoutError() | requests.Timeout():
            detail = str(exc)
            return RemoteError(
                kind=ErrorKind.CONNECTIVITY,
                message=f"Request timed out: {detail}"
                if detail
                else "Request timed out",
            )
        case requests.RequestException() | OSError():
            return RemoteError(
                kind=ErrorKind.CONNECTIVITY,
                message=str(exc) or type(exc).__name__,
            )
        case _:
            return RemoteError(
                kind=ErrorKind.UNKNOWN,
                message=str(exc) or type(exc).__name__,
            )


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class RemoteStoreAdapter:
    """Async CRUD over the registered remote tables.

    Args:
        client: Blocking REST client; its calls run in worker threads.
        timeout: Seconds before a call is abandoned and reported as a
            connectivity error.
        max_parallel: Requests this adapter keeps in flight at once.
    """

    def __init__(
        self, client: RestClient, timeout: float, max_parallel: int = 4
    ) -> None:
        self.client = client
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_parallel)

    async def _call(
        self, label: str, func: Callable[..., T], *args: Any
    ) -> tuple[T | None, RemoteError | None]:
        try:
            coro: Awaitable[T] = run_sync_limited(self.semaphore, func, *args)
            return await asyncio.wait_for(coro, timeout=self.timeout), None
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = classify_exception(exc)
            logger.warning("Remote %s failed: %s", label, error)
            return None, error

    async def select_all(self, table: str) -> SelectResult:
        get_table(table)
        data, error = await self._call(
            f"select {table}", self.client.select, table
        )
        if error:
            return SelectResult(error=error)
        return SelectResult(data=list(data or []))

    async def upsert_batch(
        self, table: str, records: list[dict], conflict_key: str = "id"
    ) -> UpsertResult:
        """Upsert *records* in one request.  No retry is attempted."""
        get_table(table)
        if not records:
            return UpsertResult()
        data, error = await self._call(
            f"upsert {table}",
            self.client.upsert,
            table,
            records,
            conflict_key,
        )
        if error:
            return UpsertResult(error=error)
        # An empty representation still means the batch was accepted.
        return UpsertResult(
            inserted_count=len(data) if data else len(records)
        )

    async def insert(self, table: str, records: list[dict]) -> UpsertResult:
        get_table(table)
        data, error = await self._call(
            f"insert {table}", self.client.insert, table, records
        )
        if error:
            return UpsertResult(error=error)
        return UpsertResult(
            inserted_count=len(data) if data else len(records)
        )

    async def update_where(
        self,
        table: str,
        values: dict,
        predicate: Mapping[str, Any],
    ) -> SelectResult:
        get_table(table)
        data, error = await self._call(
            f"update {table}", self.client.update, table, values, predicate
        )
        if error:
            return SelectResult(error=error)
        return SelectResult(data=list(data or []))

    async def delete_where(
        self, table: str, predicate: Mapping[str, Any]
    ) -> DeleteResult:
        get_table(table)
        _, error = await self._call(
            f"delete {table}", self.client.delete, table, predicate
        )
        return DeleteResult(error=error)

    async def count(self, table: str) -> CountResult:
        get_table(table)
        value, error = await self._call(
            f"count {table}", self.client.count, table
        )
        if error:
            return CountResult(error=error)
        return CountResult(count=value or 0)

    async def rpc(self, function: str, payload: dict | None = None) -> RpcResult:
        data, error = await self._call(
            f"rpc {function}", self.client.rpc, function, payload
        )
        return RpcResult(data=data, error=error)

    async def select_sample(self, table: str, limit: int = 1) -> SelectResult:
        """Fetch at most *limit* rows; used to check that a table exists."""
        get_table(table)
        data, error = await self._call(
            f"select {table}",
            self.client.select,
            table,
            "*",
            None,
            None,
            limit,
        )
        if error:
            return SelectResult(error=error)
        return SelectResult(data=list(data or []))
