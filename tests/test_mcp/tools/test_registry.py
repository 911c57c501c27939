"""Tests for ToolSpec, ToolRegistry, and load_permissions_file.

Covers:
- ToolSpec immutability
- ToolRegistry permission filtering, list_tools, tool_count, call_tool
- Exception translation in call_tool
- load_permissions_file parsing and validation
"""

import asyncio
import unittest
from unittest.mock import MagicMock

import mcp.types as types
import pytest

from winshirt_sync.errors import CacheQuotaError, UnknownTableError
from winshirt_sync.mcp.tools import ALL_SPECS
from winshirt_sync.mcp.tools.registry import (
    CACHE_ADMIN,
    KNOWN_PERMISSIONS,
    SYNC_PULL,
    SYNC_PUSH,
    SYNC_VIEW,
    ToolRegistry,
    ToolSpec,
    load_permissions_file,
)


def _make_spec(name, permissions=frozenset(), handler=None) -> ToolSpec:
    if handler is None:

        async def handler(services, args):
            return types.CallToolResult(
                content=[types.TextContent(type="text", text=f"ok:{name}")]
            )

    return ToolSpec(
        tool=types.Tool(
            name=name,
            description=f"Test tool {name}",
            inputSchema={"type": "object", "properties": {}},
        ),
        permissions=permissions,
        handler=handler,
    )


def _raising(exc):
    async def handler(services, args):
        raise exc

    return handler


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


class TestToolSpec(unittest.TestCase):
    def test_frozen(self):
        spec = _make_spec("data_counts", frozenset({SYNC_VIEW}))
        with self.assertRaises(AttributeError):
            spec.permissions = frozenset()  # type: ignore[misc]

    def test_all_specs_use_known_permissions(self):
        for spec in ALL_SPECS:
            self.assertTrue(spec.permissions <= KNOWN_PERMISSIONS, spec.tool.name)

    def test_all_spec_names_unique(self):
        names = [spec.tool.name for spec in ALL_SPECS]
        self.assertEqual(len(names), len(set(names)))


class TestToolRegistry(unittest.TestCase):
    def setUp(self):
        self.specs = [
            _make_spec("ping"),
            _make_spec("data_counts", frozenset({SYNC_VIEW})),
            _make_spec("sync_push", frozenset({SYNC_PUSH})),
            _make_spec("sync_all", frozenset({SYNC_PUSH, SYNC_PULL})),
            _make_spec("cache_clear", frozenset({CACHE_ADMIN})),
        ]

    def test_no_filter(self):
        self.assertEqual(ToolRegistry(self.specs).tool_count(), 5)

    def test_filter_by_permissions(self):
        registry = ToolRegistry(self.specs, frozenset({SYNC_VIEW, SYNC_PUSH}))
        names = [t.name for t in registry.list_tools()]
        self.assertEqual(names, ["ping", "data_counts", "sync_push"])

    def test_multi_permission_needs_all(self):
        registry = ToolRegistry(self.specs, frozenset({SYNC_PUSH, SYNC_PULL}))
        names = [t.name for t in registry.list_tools()]
        self.assertIn("sync_all", names)
        self.assertNotIn("cache_clear", names)

    def test_call_dispatches_with_services(self):
        calls = []

        async def handler(services, args):
            calls.append((services, args))
            return types.CallToolResult(
                content=[types.TextContent(type="text", text="dispatched")]
            )

        registry = ToolRegistry([_make_spec("t", handler=handler)])
        services = MagicMock()

        result = asyncio.run(registry.call_tool("t", None, services))

        self.assertEqual(calls, [(services, {})])
        self.assertEqual(_text(result), "dispatched")

    def test_unknown_tool_raises(self):
        registry = ToolRegistry(self.specs, frozenset({SYNC_VIEW}))
        for name in ("nonexistent", "cache_clear"):
            with self.assertRaises(ValueError) as ctx:
                asyncio.run(registry.call_tool(name, {}, MagicMock()))
            self.assertIn("Unknown tool", str(ctx.exception))


class TestCallToolErrorTranslation(unittest.TestCase):
    def _call(self, exc) -> types.CallToolResult:
        registry = ToolRegistry([_make_spec("t", handler=_raising(exc))])
        return asyncio.run(registry.call_tool("t", {}, MagicMock()))

    def test_unknown_table(self):
        result = self._call(UnknownTableError("widgets"))
        self.assertTrue(result.isError)
        self.assertIn("validation_error", _text(result))
        self.assertIn("Unknown table: 'widgets'", _text(result))
        self.assertIn("Use one of: visual_categories, visuals", _text(result))

    def test_value_error(self):
        result = self._call(ValueError("table is required"))
        self.assertIn("Error (validation_error): table is required", _text(result))

    def test_sync_layer_error(self):
        result = self._call(CacheQuotaError("products", 10, 5))
        self.assertIn("server_error", _text(result))
        self.assertIn("Cache quota exceeded", _text(result))

    def test_unexpected_error(self):
        result = self._call(RuntimeError("boom"))
        self.assertTrue(result.isError)
        self.assertIn("server_error", _text(result))


class TestLoadPermissionsFile:
    def test_valid_file(self, tmp_path):
        path = tmp_path / "dashboard.permissions"
        path.write_text("# Read-only\nSYNC_VIEW\n\n  # indented\nSYNC_PULL\nSYNC_VIEW\n")
        assert load_permissions_file(path) == frozenset({SYNC_VIEW, SYNC_PULL})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_permissions_file(tmp_path / "missing.permissions")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.permissions"
        path.write_text("# only comments\n\n")
        with pytest.raises(ValueError, match="No permissions found"):
            load_permissions_file(path)

    def test_invalid_permission(self, tmp_path):
        path = tmp_path / "bad.permissions"
        path.write_text("SYNC_VIEW\nTICKET_VIEW\n")
        with pytest.raises(ValueError, match="Invalid permission 'TICKET_VIEW' at line 2"):
            load_permissions_file(path)
