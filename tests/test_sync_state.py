"""Tests for SyncHistory persistence."""

import pytest

from winshirt_sync.errors import UnknownTableError
from winshirt_sync.sync.models import SyncDirection, SyncOutcome, SyncStatus
from winshirt_sync.sync.registry import SYNC_STATUS_KEY
from winshirt_sync.sync.state import SyncHistory


@pytest.fixture
def history(cache):
    return SyncHistory(cache)


def test_empty_history(history):
    assert history.get_sync_history() == {}
    assert history.get_sync_status("orders") is None


def test_set_and_get(history):
    status = SyncStatus(success=True, last_sync="2026-10-19T10:00:00+00:00")
    assert history.set_sync_status("orders", status) is True
    assert history.get_sync_status("orders") == status


def test_survives_new_instance(history, cache):
    history.set_sync_status("clients", SyncStatus(success=False, error="x"))
    reloaded = SyncHistory(cache)
    assert reloaded.get_sync_status("clients").error == "x"


def test_history_keeps_every_table(history):
    history.set_sync_status("orders", SyncStatus(success=True))
    history.set_sync_status("clients", SyncStatus(success=False))
    assert set(history.get_sync_history()) == {"orders", "clients"}


def test_malformed_entries_skipped(history, cache):
    cache.write_value(
        SYNC_STATUS_KEY,
        {"orders": {"success": "not-a-bool-at-all"}, "clients": {"success": True}},
    )
    assert list(history.get_sync_history()) == ["clients"]
    assert history.get_sync_status("orders") is None


def test_non_dict_value_reads_empty(history, cache):
    cache.write_value(SYNC_STATUS_KEY, ["bad"])
    assert history.get_sync_history() == {}


def test_clear(history):
    history.set_sync_status("orders", SyncStatus(success=True))
    history.clear_sync_history()
    assert history.get_sync_history() == {}


def test_unknown_table(history):
    with pytest.raises(UnknownTableError):
        history.get_sync_status("invoices")


def test_status_from_failed_outcome():
    outcome = SyncOutcome(
        table="orders",
        direction=SyncDirection.PUSH,
        pushed=3,
        failed_ids=[4],
        succeeded=False,
        error="boom",
    )
    status = SyncStatus.from_outcome(outcome, local_count=4)
    assert status.success is False
    assert status.last_sync is None
    assert status.error == "boom"
    assert status.local_count == 4
    assert status.remote_count == 3
