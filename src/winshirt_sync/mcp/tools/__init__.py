"""MCP tool handlers for the WinShirt sync layer.

This package wraps the sync services with async handlers, text plus
structured output, and structured error responses.
"""

from .errors import build_error_response, translate_remote_error
from .registry import ToolRegistry, ToolSpec, load_permissions_file
from .sync import SYNC_SPECS, SYNC_TOOLS
from .system import SYSTEM_SPECS, SYSTEM_TOOLS

ALL_SPECS: list[ToolSpec] = SYSTEM_SPECS + SYNC_SPECS

__all__ = [
    "build_error_response",
    "translate_remote_error",
    # Registry
    "ToolSpec",
    "ToolRegistry",
    "load_permissions_file",
    # Spec lists
    "ALL_SPECS",
    "SYNC_SPECS",
    "SYSTEM_SPECS",
    "SYNC_TOOLS",
    "SYSTEM_TOOLS",
]
