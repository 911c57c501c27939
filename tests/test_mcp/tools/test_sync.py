"""Tests for MCP sync tool definitions and handlers.

Covers:
- Tool definitions and their permissions
- sync_push / sync_pull against the in-memory backend
- sync_all in both directions and invalid direction
- data_counts and sync_history structured output
- Argument errors surface through the registry as validation errors
"""

from __future__ import annotations

import mcp.types as types
import pytest

from winshirt_sync.mcp.tools.registry import (
    SYNC_PULL,
    SYNC_PUSH,
    SYNC_VIEW,
    ToolRegistry,
)
from winshirt_sync.mcp.tools.sync import SYNC_SPECS, SYNC_TOOLS
from winshirt_sync.sync.registry import TABLE_NAMES

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_HANDLERS = {spec.tool.name: spec.handler for spec in SYNC_SPECS}


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


_PRODUCTS = [
    {"id": 1, "name": "T-Shirt", "price": 29.99, "imageUrl": "/t.png"},
    {"id": 2, "name": "Hoodie", "price": 49.0, "imageUrl": "/h.png"},
]


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


class TestDefinitions:
    def test_tool_names(self):
        assert [t.name for t in SYNC_TOOLS] == [
            "sync_push",
            "sync_pull",
            "sync_all",
            "data_counts",
            "sync_history",
        ]

    def test_table_enum_matches_registry(self):
        push = SYNC_TOOLS[0]
        assert push.inputSchema["properties"]["table"]["enum"] == list(TABLE_NAMES)
        assert push.inputSchema["required"] == ["table"]

    def test_permissions(self):
        perms = {spec.tool.name: spec.permissions for spec in SYNC_SPECS}
        assert perms["sync_push"] == frozenset({SYNC_PUSH})
        assert perms["sync_pull"] == frozenset({SYNC_PULL})
        assert perms["sync_all"] == frozenset({SYNC_PUSH, SYNC_PULL})
        assert perms["data_counts"] == frozenset({SYNC_VIEW})

    def test_read_only_hints(self):
        hints = {t.name: t.annotations.readOnlyHint for t in SYNC_TOOLS}
        assert hints["data_counts"] is True
        assert hints["sync_push"] is False


# ---------------------------------------------------------------------------
# sync_push / sync_pull
# ---------------------------------------------------------------------------


class TestPushPull:
    async def test_push(self, services, fake_client):
        services.cache.write("products", _PRODUCTS)

        result = await _HANDLERS["sync_push"](services, {"table": "products"})

        assert not result.isError
        assert "Pushed 2 record(s) for products" in _text(result)
        assert result.structuredContent["pushed"] == 2
        assert result.structuredContent["direction"] == "push"
        assert fake_client.tables["products"][0]["image_url"] == "/t.png"

    async def test_push_empty_is_not_an_error(self, services):
        result = await _HANDLERS["sync_push"](services, {"table": "lotteries"})

        assert not result.isError
        assert "no local data to push" in _text(result)
        assert result.structuredContent["skipped"] is True
        assert result.structuredContent["succeeded"] is False

    async def test_push_reports_failed_ids(self, services):
        services.cache.write("products", [*_PRODUCTS, {"id": 3, "name": "No price"}])

        result = await _HANDLERS["sync_push"](services, {"table": "products"})

        assert result.isError
        assert "Failed ids: 3" in _text(result)
        assert "Status: failed" in _text(result)

    async def test_pull(self, services, fake_client):
        fake_client.tables["lotteries"] = [
            {"id": 9, "title": "Grand tirage", "end_date": "2026-12-01"}
        ]

        result = await _HANDLERS["sync_pull"](services, {"table": "lotteries"})

        assert not result.isError
        assert "Pulled 1 record(s) for lotteries" in _text(result)
        assert services.cache.read("lotteries") == [
            {"id": 9, "title": "Grand tirage", "endDate": "2026-12-01"}
        ]

    async def test_pull_unreachable(self, services, fake_client):
        fake_client.unreachable = True
        result = await _HANDLERS["sync_pull"](services, {"table": "orders"})
        assert result.isError
        assert "Status: failed" in _text(result)

    @pytest.mark.parametrize(
        "args, message",
        [({}, "table is required"), ({"table": "widgets"}, "Unknown table")],
    )
    async def test_bad_table_through_registry(self, services, args, message):
        registry = ToolRegistry(SYNC_SPECS)
        result = await registry.call_tool("sync_push", args, services)
        assert result.isError
        assert "validation_error" in _text(result)
        assert message in _text(result)


# ---------------------------------------------------------------------------
# sync_all
# ---------------------------------------------------------------------------


class TestSyncAll:
    async def test_push_direction_default(self, services):
        services.cache.write("products", _PRODUCTS)

        result = await _HANDLERS["sync_all"](services, {})

        assert _text(result).startswith("Push report")
        data = result.structuredContent
        assert data["direction"] == "push"
        assert data["counts"]["total"] == len(TABLE_NAMES)
        assert data["counts"]["succeeded"] == 1
        assert data["succeeded"] is False

    async def test_pull_direction(self, services, fake_client):
        fake_client.tables["products"] = [{"id": 1, "name": "A", "price": 1}]

        result = await _HANDLERS["sync_all"](services, {"direction": "pull"})

        assert _text(result).startswith("Pull report")
        assert result.structuredContent["direction"] == "pull"
        assert services.cache.read("products") == [
            {"id": 1, "name": "A", "price": 1}
        ]

    async def test_invalid_direction(self, services):
        result = await _HANDLERS["sync_all"](services, {"direction": "sideways"})
        assert result.isError
        assert "Invalid direction: 'sideways'" in _text(result)


# ---------------------------------------------------------------------------
# data_counts / sync_history
# ---------------------------------------------------------------------------


class TestViews:
    async def test_data_counts(self, services, fake_client):
        services.cache.write("products", _PRODUCTS)
        fake_client.tables["products"] = [{"id": 1}]

        result = await _HANDLERS["data_counts"](services, {})

        tables = result.structuredContent["tables"]
        assert tables["products"] == {"local": 2, "remote": 1, "synced": False}
        assert "products" in result.structuredContent["needs_sync"]
        assert "out of sync" in _text(result)

    async def test_history_empty(self, services):
        result = await _HANDLERS["sync_history"](services, {})
        assert _text(result) == "No sync recorded yet."
        assert result.structuredContent == {"history": {}}

    async def test_history_after_push(self, services):
        services.cache.write("products", _PRODUCTS)
        await services.engine.push("products")

        result = await _HANDLERS["sync_history"](services, {"table": "products"})

        assert "products: ok, last success" in _text(result)
        entry = result.structuredContent["history"]["products"]
        assert entry["success"] is True
        assert entry["remote_count"] == 2

    async def test_history_filter_without_entry(self, services):
        result = await _HANDLERS["sync_history"](services, {"table": "orders"})
        assert result.structuredContent == {"history": {}}
