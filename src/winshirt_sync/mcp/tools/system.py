"""System tool handlers for MCP server.

Connectivity check, local cache maintenance (including product/lottery
link repair) and visual library export/import.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import mcp.types as types

from ...sync.links import sync_product_lottery_links
from ...sync.registry import TABLE_NAMES, get_table
from ...visuals_io import (
    export_visuals_to_file_async,
    import_visuals_from_file_async,
)
from .errors import build_error_response
from .registry import CACHE_ADMIN, SYNC_VIEW, VISUALS_ADMIN, ToolSpec

if TYPE_CHECKING:
    from ...app import SyncServices

logger = logging.getLogger(__name__)


# Tool definitions for list_tools()
SYSTEM_TOOLS = [
    types.Tool(
        name="connectivity_check",
        description=(
            "Probe the backend and verify that every registered table exists. "
            "Returns the resulting sync mode (online or offline) and the "
            "missing tables, if any."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="cache_clear",
        description=(
            "Remove cached data. With 'table', only that table is cleared; "
            "without it every table and setting is removed."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "table": {
                    "type": "string",
                    "enum": list(TABLE_NAMES),
                    "description": "Table to clear (default: everything)",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="links_sync",
        description=(
            "Repair the cached product/lottery cross-references: drop links "
            "to records that no longer exist and make every link "
            "bidirectional."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="visuals_export",
        description=(
            "Export the cached visual library as a JSON file. "
            "A directory path receives winshirt-visuals-YYYY-MM-DD.json."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute output file or directory path",
                },
            },
            "required": ["path"],
        },
    ),
    types.Tool(
        name="visuals_import",
        description=(
            "Replace the cached visual library with the contents of a JSON "
            "export file. Encoding is auto-detected."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute path of the export file",
                },
            },
            "required": ["path"],
        },
    ),
]


async def _handle_connectivity_check(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    mode = await services.guard.check()
    status = services.guard.status
    missing = services.guard.missing_tables

    lines = [f"Sync mode: {mode.value}"]
    if status is not None and not status.connected:
        lines.append(f"Backend unreachable: {status.error}")
    if missing:
        lines.append(f"Missing tables: {', '.join(missing)}")

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={
            "mode": mode.value,
            "connected": bool(status and status.connected),
            "error": status.error if status else None,
            "checked_at": status.checked_at if status else None,
            "missing_tables": list(missing),
        },
        isError=not services.guard.is_online,
    )


async def _handle_cache_clear(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    table = args.get("table")
    if table:
        get_table(table)
        services.cache.clear(table)
        text = f"Cleared local cache for {table}"
    else:
        services.cache.clear_all()
        text = "Cleared the whole local cache"
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent={"cleared": table or "all"},
    )


async def _handle_links_sync(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    result = sync_product_lottery_links(services.cache, services.notifier)
    if not result.ok:
        return build_error_response(
            "server_error",
            "Product and lottery links could not be synchronized",
            "Load products and lotteries into the cache first.",
        )
    if result.updated:
        text = f"Links synchronized in: {', '.join(result.updated)}"
    else:
        text = "Product and lottery links already consistent"
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent={"updated": list(result.updated)},
    )


async def _handle_visuals_export(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    path_str = args.get("path")
    if not path_str:
        return build_error_response(
            "validation_error",
            "path is required",
            "Provide an absolute file or directory path.",
        )
    try:
        written, size = await export_visuals_to_file_async(
            services.cache, path_str
        )
    except OSError as e:
        return build_error_response(
            "server_error",
            f"Could not write export: {e}",
            "Check that the directory is writable.",
        )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"Exported visuals to {written} ({size} bytes)",
            )
        ],
        structuredContent={"path": str(written), "bytes_written": size},
    )


async def _handle_visuals_import(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    path_str = args.get("path")
    if not path_str:
        return build_error_response(
            "validation_error",
            "path is required",
            "Provide the absolute path of an export file.",
        )
    count = await import_visuals_from_file_async(services.cache, path_str)
    services.notifier.success(f"{count} visual(s) imported")
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text", text=f"Imported {count} visual(s) from {path_str}"
            )
        ],
        structuredContent={"path": path_str, "imported": count},
    )


SYSTEM_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=SYSTEM_TOOLS[0],
        permissions=frozenset({SYNC_VIEW}),
        handler=_handle_connectivity_check,
    ),
    ToolSpec(
        tool=SYSTEM_TOOLS[1],
        permissions=frozenset({CACHE_ADMIN}),
        handler=_handle_cache_clear,
    ),
    ToolSpec(
        tool=SYSTEM_TOOLS[2],
        permissions=frozenset({CACHE_ADMIN}),
        handler=_handle_links_sync,
    ),
    ToolSpec(
        tool=SYSTEM_TOOLS[3],
        permissions=frozenset({VISUALS_ADMIN}),
        handler=_handle_visuals_export,
    ),
    ToolSpec(
        tool=SYSTEM_TOOLS[4],
        permissions=frozenset({VISUALS_ADMIN}),
        handler=_handle_visuals_import,
    ),
]
