"""MCP server for the WinShirt sync layer using stdio transport.

Exposes the admin dashboard operations (connectivity check, push, pull,
sync all, data counts, cache maintenance, visual export/import) as tools.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..app import SyncServices
from ..logger import DEFAULT_LOG_FILE, setup_logging
from ..sync.guard import PROBE_TABLE
from .lifespan import server_lifespan
from .tools import (
    ALL_SPECS,
    ToolRegistry,
    build_error_response,
    load_permissions_file,
    translate_remote_error,
)
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

server = Server("winshirt-sync")

# Initialized in main()
_services: SyncServices | None = None
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available, no permission required)
# ---------------------------------------------------------------------------


async def _handle_ping(
    services: SyncServices, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- test backend reachability."""
    result = await services.remote.count(PROBE_TABLE)
    if not result.ok:
        return translate_remote_error(result.error)
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"WinShirt sync server {__version__} connected to "
                f"{services.config.remote_url}",
            )
        ]
    )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test backend connectivity and return the server version",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    permissions=frozenset(),
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_services() -> SyncServices:
    """Get the global SyncServices instance.

    Raises:
        RuntimeError: If services are not initialized
    """
    if _services is None:
        raise RuntimeError(
            "SyncServices not initialized. Server lifespan not started."
        )
    return _services


def set_services(services: SyncServices | None) -> None:
    global _services
    _services = services


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """Return all registered (and permitted) tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    services = get_services()
    try:
        return await get_registry().call_tool(name, arguments, services)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def build_registry(permissions_file: str | None = None) -> ToolRegistry:
    """Build the tool registry, filtered by an optional permissions file."""
    allowed_permissions = None
    if permissions_file:
        allowed_permissions = load_permissions_file(permissions_file)
        logger.info(
            "Loaded %d permissions from %s",
            len(allowed_permissions),
            permissions_file,
        )
    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, allowed_permissions)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )
    return registry


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Args:
        config_overrides: Optional dict with config values to override
            (url, api_key, cache_dir, insecure, log_file, permissions_file)
    """
    overrides = config_overrides or {}

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file"),
    )

    permissions_file = overrides.get("permissions_file")
    registry = build_registry(permissions_file)
    if permissions_file:
        print(
            f"Permissions file: {permissions_file} "
            f"({registry.tool_count()} of {len(ALL_SPECS) + 1} tools enabled)",
            file=sys.stderr,
        )
    set_registry(registry)

    # set_services() is called here rather than inside the lifespan so that
    # running this file as __main__ installs into the right module globals.
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_services(ctx["services"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="winshirt-sync",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_services(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="WinShirt Sync - MCP server for the shop data sync layer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or config.yml)
  winshirt-sync-mcp

  # Override backend URL and cache directory
  winshirt-sync-mcp --url https://project.example.co --cache-dir ~/.winshirt/cache

  # Read-only dashboard
  winshirt-sync-mcp --permissions-file /etc/winshirt/view-only.permissions

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument(
        "--url",
        help="Override backend URL (takes precedence over WINSHIRT_REMOTE_URL and config files)",
    )
    parser.add_argument(
        "--api-key",
        help="Override backend API key (visible in process list -- prefer WINSHIRT_API_KEY)",
    )
    parser.add_argument(
        "--cache-dir",
        help="Override local cache directory (takes precedence over WINSHIRT_CACHE_DIR)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--permissions-file",
        help="Path to permissions file restricting available tools. "
        "Format: one permission per line (e.g., SYNC_VIEW), # for comments. "
        "If not specified, all tools are available.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"winshirt-sync version {__version__}",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Collect the CLI options that were actually given."""
    config_overrides = {}
    if args.url:
        config_overrides["url"] = args.url
    if args.api_key:
        config_overrides["api_key"] = args.api_key
    if args.cache_dir:
        config_overrides["cache_dir"] = args.cache_dir
    if args.insecure:
        config_overrides["insecure"] = True
    if args.debug:
        config_overrides["debug"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.permissions_file:
        config_overrides["permissions_file"] = args.permissions_file
    return config_overrides


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args()
    config_overrides = overrides_from_args(args)

    if config_overrides:
        override_keys = [k for k in config_overrides if k != "api_key"]
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Already reported on stderr by the lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
