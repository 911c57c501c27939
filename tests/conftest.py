"""Shared pytest fixtures for winshirt-sync tests."""

from __future__ import annotations

from typing import Any

import pytest
import requests
from dotenv import load_dotenv

from winshirt_sync.config import Config
from winshirt_sync.errors import RemoteRequestError
from winshirt_sync.notifications import Notifier
from winshirt_sync.sync.cache import LocalCacheStore
from winshirt_sync.sync.events import TableChangeNotifier

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live backend",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live backend"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeRestClient:
    """In-memory stand-in for ``RestClient``.

    Tables are lists of underscore_case rows.  Failures are injected per
    operation and table (``errors[("upsert", "products")] = exc``, with
    ``"*"`` matching any table), per upsert call number
    (``upsert_errors[2] = exc`` fails the second upsert), or by listing a
    table in ``missing_tables``.
    """

    def __init__(self, tables: dict[str, list[dict]] | None = None):
        self.tables: dict[str, list[dict]] = {
            name: [dict(r) for r in rows]
            for name, rows in (tables or {}).items()
        }
        self.errors: dict[tuple[str, str], BaseException] = {}
        self.upsert_errors: dict[int, BaseException] = {}
        self.missing_tables: set[str] = set()
        self.unreachable = False
        self.calls: list[tuple[str, str]] = []
        self.upserted_batches: list[tuple[str, list[dict]]] = []
        self.closed = False
        self._session: dict | None = None
        self._listeners: list = []

    def _enter(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        if self.unreachable:
            raise requests.ConnectionError("Connection refused")
        if table in self.missing_tables:
            raise RemoteRequestError(
                f'relation "public.{table}" does not exist',
                status=404,
                code="42P01",
            )
        exc = self.errors.get((op, table)) or self.errors.get((op, "*"))
        if exc is not None:
            raise exc

    # Table operations

    def select(
        self,
        table: str,
        columns: str = "*",
        predicate: dict | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        self._enter("select", table)
        rows = [dict(r) for r in self.tables.get(table, [])]
        if predicate:
            rows = [
                r
                for r in rows
                if all(r.get(k) == v for k, v in predicate.items())
            ]
        if limit is not None:
            rows = rows[:limit]
        return rows

    def upsert(
        self, table: str, rows: list[dict], on_conflict: str = "id"
    ) -> list[dict]:
        self._enter("upsert", table)
        exc = self.upsert_errors.get(len(self.upserted_batches) + 1)
        self.upserted_batches.append((table, [dict(r) for r in rows]))
        if exc is not None:
            raise exc
        stored = self.tables.setdefault(table, [])
        for row in rows:
            for index, existing in enumerate(stored):
                if existing.get(on_conflict) == row.get(on_conflict):
                    stored[index] = {**existing, **row}
                    break
            else:
                stored.append(dict(row))
        return [dict(r) for r in rows]

    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        self._enter("insert", table)
        self.tables.setdefault(table, []).extend(dict(r) for r in rows)
        return [dict(r) for r in rows]

    def update(self, table: str, values: dict, predicate: dict) -> list[dict]:
        self._enter("update", table)
        changed = []
        for row in self.tables.get(table, []):
            if all(row.get(k) == v for k, v in predicate.items()):
                row.update(values)
                changed.append(dict(row))
        return changed

    def delete(self, table: str, predicate: dict) -> None:
        self._enter("delete", table)
        self.tables[table] = [
            r
            for r in self.tables.get(table, [])
            if not all(r.get(k) == v for k, v in predicate.items())
        ]

    def count(self, table: str) -> int:
        self._enter("count", table)
        return len(self.tables.get(table, []))

    def rpc(self, function: str, payload: dict | None = None) -> Any:
        self._enter("rpc", function)
        return {"function": function, "payload": payload or {}}

    def close(self) -> None:
        self.closed = True

    # Auth

    def get_session(self) -> dict | None:
        return self._session

    def set_session(self, session: dict | None) -> None:
        self._session = session

    def sign_in_with_password(self, email: str, password: str) -> dict:
        self._session = {"access_token": "token", "user": {"email": email}}
        for listener in list(self._listeners):
            listener("SIGNED_IN", self._session)
        return self._session

    def sign_out(self) -> None:
        self._session = None
        for listener in list(self._listeners):
            listener("SIGNED_OUT", None)

    def on_auth_state_change(self, listener):
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


@pytest.fixture
def mock_config(tmp_path):
    """Create a Config pointing at a per-test cache directory."""
    return Config(
        remote_url="https://project.example.co",
        api_key="test-key",
        cache_dir=str(tmp_path / "cache"),
        request_timeout=5.0,
    )


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def events():
    return TableChangeNotifier()


@pytest.fixture
def cache(tmp_path, notifier, events):
    """A LocalCacheStore with a generous quota."""
    return LocalCacheStore(
        tmp_path / "cache",
        5 * 1024 * 1024,
        notifier=notifier,
        events=events,
    )


@pytest.fixture
def fake_client():
    return FakeRestClient()


@pytest.fixture
def services(mock_config, fake_client):
    """SyncServices wired to the in-memory client (not opened)."""
    from winshirt_sync.app import SyncServices

    return SyncServices(mock_config, client=fake_client)
