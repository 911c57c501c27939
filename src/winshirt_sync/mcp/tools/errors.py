"""Error response builders for MCP tool handlers.

Responses carry a corrective action so that an agent can recover from the
error without human intervention.
"""

import mcp.types as types

from ...errors import ErrorKind, RemoteError
from ...sync.registry import TABLE_NAMES


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, permission_denied,
            validation_error, connectivity_error, server_error, ...)
        message: Human-readable error description
        corrective_action: Specific action the agent can take

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("validation_error", "Unknown table: 'foo'", "Use one of: ...")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def unknown_table_response(table: str) -> types.CallToolResult:
    return build_error_response(
        "validation_error",
        f"Unknown table: {table!r}",
        f"Use one of: {', '.join(TABLE_NAMES)}.",
    )


_REMOTE_ACTIONS: dict[ErrorKind, tuple[str, str]] = {
    ErrorKind.CONNECTIVITY: (
        "connectivity_error",
        "Run connectivity_check, then retry once the backend is reachable.",
    ),
    ErrorKind.AUTH: (
        "permission_denied",
        "Check WINSHIRT_API_KEY and the row-level access policies.",
    ),
    ErrorKind.SCHEMA: (
        "not_found",
        "Create the missing table in the backend; run connectivity_check "
        "to list missing tables.",
    ),
    ErrorKind.VALIDATION: (
        "validation_error",
        "Fix the offending records in the local cache and retry.",
    ),
    ErrorKind.CONFLICT: (
        "conflict",
        "Pull the table to refresh local data, then retry the push.",
    ),
    ErrorKind.QUOTA: (
        "quota_exceeded",
        "Clear unused cache tables with cache_clear or raise "
        "WINSHIRT_CACHE_QUOTA_BYTES.",
    ),
}


def translate_remote_error(error: RemoteError) -> types.CallToolResult:
    """Translate a classified remote error into a structured response."""
    error_type, action = _REMOTE_ACTIONS.get(
        error.kind,
        ("server_error", "Check the server log and retry later."),
    )
    return build_error_response(error_type, error.message, action)
