"""ToolSpec and ToolRegistry for permission-based tool filtering.

Operators can restrict which admin tools an agent sees by passing a
permissions file: a tool is exposed only when every permission it
requires is listed.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition, required
  permissions, and an async handler ``(services, args) -> CallToolResult``.
- ToolRegistry: Filters specs at construction time, then provides
  list_tools() and call_tool() dispatch with error translation.
- load_permissions_file: Reads a text file of permission names.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import mcp.types as types

from ...errors import SyncLayerError, UnknownTableError

if TYPE_CHECKING:
    from ...app import SyncServices

logger = logging.getLogger(__name__)

# Permissions understood by the admin tools.
SYNC_VIEW = "SYNC_VIEW"
SYNC_PUSH = "SYNC_PUSH"
SYNC_PULL = "SYNC_PULL"
CACHE_ADMIN = "CACHE_ADMIN"
VISUALS_ADMIN = "VISUALS_ADMIN"

KNOWN_PERMISSIONS = frozenset(
    {SYNC_VIEW, SYNC_PUSH, SYNC_PULL, CACHE_ADMIN, VISUALS_ADMIN}
)

ToolHandler = Callable[["SyncServices", dict], Awaitable[types.CallToolResult]]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        permissions: Permissions required to use this tool.  Empty means
            the tool is always available.
        handler: Async handler with signature (services, args) -> CallToolResult.
    """

    tool: types.Tool
    permissions: frozenset[str]
    handler: ToolHandler


class ToolRegistry:
    """Registry of ToolSpecs with optional permission-based filtering.

    If allowed_permissions is None, all specs are included.  Otherwise a
    spec is included only if its permissions are empty or a subset of
    allowed_permissions.
    """

    def __init__(
        self,
        specs: list[ToolSpec],
        allowed_permissions: frozenset[str] | None = None,
    ):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if (
                allowed_permissions is None
                or not spec.permissions
                or spec.permissions <= allowed_permissions
            ):
                self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        services: SyncServices,
    ) -> types.CallToolResult:
        """Dispatch a tool call to its registered handler.

        Exceptions escaping the handler are translated into structured
        error responses.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        from .errors import build_error_response, unknown_table_response

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(services, args)
        except UnknownTableError as e:
            return unknown_table_response(e.table_name)
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except SyncLayerError as e:
            logger.warning("Sync layer error in %s: %s", name, e)
            return build_error_response(
                "server_error",
                str(e),
                "Check local storage and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log and retry later.",
            )


def load_permissions_file(path: str | Path) -> frozenset[str]:
    """Load permissions from a text file.

    Format: one permission per line, ``#`` for comments, blank lines ignored.

    Example file::

        # Read-only dashboard
        SYNC_VIEW

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a line is not a known permission or the file is empty.
    """
    path = Path(path)
    permissions: set[str] = set()
    for line_num, line in enumerate(path.read_text().splitlines(), 1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped not in KNOWN_PERMISSIONS:
            raise ValueError(
                f"Invalid permission '{stripped}' at line {line_num} in {path}. "
                f"Expected one of: {', '.join(sorted(KNOWN_PERMISSIONS))}."
            )
        permissions.add(stripped)
    if not permissions:
        raise ValueError(
            f"No permissions found in {path}. File must contain at least one permission."
        )
    return frozenset(permissions)
