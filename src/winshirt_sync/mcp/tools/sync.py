"""MCP tool handlers for the admin sync dashboard.

Defines five tools:

- ``sync_push`` -- push one table from the local cache to the backend.
- ``sync_pull`` -- pull one table from the backend into the local cache.
- ``sync_all`` -- push (or pull) every registered table in order.
- ``data_counts`` -- local vs remote row counts per table.
- ``sync_history`` -- last recorded sync status per table.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import mcp.types as types

from ...sync.models import SyncOutcome
from ...sync.registry import TABLE_NAMES, get_table
from ...sync.reporter import (
    counts_to_json,
    format_data_counts,
    format_sync_report,
    report_to_json,
)
from .errors import build_error_response
from .registry import SYNC_PULL, SYNC_PUSH, SYNC_VIEW, ToolSpec

if TYPE_CHECKING:
    from ...app import SyncServices

logger = logging.getLogger(__name__)

_TABLE_PROPERTY = {
    "type": "string",
    "enum": list(TABLE_NAMES),
    "description": "Registered table name",
}


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="sync_push",
        description=(
            "Push the locally cached records of one table to the backend. "
            "Records are upserted by id in batches; invalid records and "
            "failed batches are reported by id."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {"table": _TABLE_PROPERTY},
            "required": ["table"],
        },
    ),
    types.Tool(
        name="sync_pull",
        description=(
            "Replace the local cache of one table with the backend rows. "
            "An empty backend table leaves the local cache untouched."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {"table": _TABLE_PROPERTY},
            "required": ["table"],
        },
    ),
    types.Tool(
        name="sync_all",
        description=(
            "Synchronize every registered table, parents before children. "
            "Direction 'push' sends the local cache to the backend, 'pull' "
            "refreshes the local cache from it."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "direction": {
                    "type": "string",
                    "enum": ["push", "pull"],
                    "default": "push",
                    "description": "Sync direction",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="data_counts",
        description=(
            "Compare local and backend row counts for every table. "
            "A backend that cannot be counted reports 0."
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
        name="sync_history",
        description="Show the last sync status recorded for each table.",
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "table": {
                    **_TABLE_PROPERTY,
                    "description": "Only show this table",
                },
            },
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_table(args: dict[str, Any]) -> str:
    table = args.get("table")
    if not table:
        raise ValueError("table is required")
    get_table(table)
    return table


def _format_outcome(outcome: SyncOutcome) -> str:
    verb = "Pushed" if outcome.direction.value == "push" else "Pulled"
    count = (
        outcome.pushed if outcome.direction.value == "push" else outcome.pulled
    )
    if outcome.skipped:
        return f"{outcome.table}: no local data to push"
    lines = [f"{verb} {count} record(s) for {outcome.table}"]
    if outcome.failed_ids:
        ids = ", ".join(str(i) for i in outcome.failed_ids)
        lines.append(f"Failed ids: {ids}")
    if outcome.error:
        lines.append(f"Error: {outcome.error}")
    lines.append("Status: " + ("ok" if outcome.succeeded else "failed"))
    return "\n".join(lines)


def _outcome_result(outcome: SyncOutcome) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=_format_outcome(outcome))],
        structuredContent=outcome.model_dump(mode="json"),
        isError=not outcome.succeeded and not outcome.skipped,
    )


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_push(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    table = _require_table(args)
    outcome = await services.engine.push(table)
    return _outcome_result(outcome)


async def _handle_pull(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    table = _require_table(args)
    outcome = await services.engine.pull(table)
    return _outcome_result(outcome)


async def _handle_sync_all(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    direction = args.get("direction", "push")
    match direction:
        case "push":
            report = await services.engine.sync_all()
        case "pull":
            report = await services.engine.pull_all()
        case _:
            return build_error_response(
                "validation_error",
                f"Invalid direction: {direction!r}",
                "Use 'push' or 'pull'.",
            )
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_sync_report(report))
        ],
        structuredContent=report_to_json(report),
    )


async def _handle_data_counts(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    counts = await services.reporter.get_data_counts()
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_data_counts(counts))
        ],
        structuredContent=counts_to_json(counts),
    )


async def _handle_sync_history(
    services: SyncServices, args: dict[str, Any]
) -> types.CallToolResult:
    table = args.get("table")
    if table:
        get_table(table)
        status = services.history.get_sync_status(table)
        history = {table: status} if status else {}
    else:
        history = services.history.get_sync_history()

    if not history:
        text = "No sync recorded yet."
    else:
        lines = ["Sync history:"]
        for name, status in history.items():
            state = "ok" if status.success else "failed"
            when = status.last_sync or "never"
            line = f"  {name}: {state}, last success {when}"
            if status.error:
                line += f" ({status.error})"
            lines.append(line)
        text = "\n".join(lines)

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent={
            "history": {
                name: status.model_dump() for name, status in history.items()
            }
        },
    )


# ToolSpec list for registry-based dispatch
SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=SYNC_TOOLS[0],
        permissions=frozenset({SYNC_PUSH}),
        handler=_handle_push,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[1],
        permissions=frozenset({SYNC_PULL}),
        handler=_handle_pull,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[2],
        permissions=frozenset({SYNC_PUSH, SYNC_PULL}),
        handler=_handle_sync_all,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[3],
        permissions=frozenset({SYNC_VIEW}),
        handler=_handle_data_counts,
    ),
    ToolSpec(
        tool=SYNC_TOOLS[4],
        permissions=frozenset({SYNC_VIEW}),
        handler=_handle_sync_history,
    ),
]
