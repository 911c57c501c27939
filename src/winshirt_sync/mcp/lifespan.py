"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..app import SyncServices
from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config
from ..sync.models import SyncMode

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Open the sync services and check connectivity

    An unreachable backend is not fatal: the server starts in offline
    mode and the tools keep working against the local cache.

    On shutdown:
    - Close the REST client sessions

    Args:
        config_overrides: Optional dict with config values from CLI
            (url, api_key, cache_dir, insecure, debug)

    Yields:
        Dict with 'services' key containing the opened SyncServices

    Raises:
        RuntimeError: If configuration is invalid.
    """
    logger.info("MCP server starting...")
    _stderr_print("WinShirt Sync MCP Server starting...")

    try:
        # .env first so ${VAR} interpolation in YAML can use its values
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            raw = load_hierarchical_config()
            yaml_fallbacks = build_config(raw).fallbacks()
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            remote_url=overrides.get("url"),
            api_key=overrides.get("api_key"),
            cache_dir=overrides.get("cache_dir"),
            insecure=overrides.get("insecure", False),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Remote URL: %s", config.remote_url)
        _stderr_print(f"  Remote URL: {config.remote_url}")
        _stderr_print(f"  Cache directory: {config.cache_dir}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure WINSHIRT_REMOTE_URL and WINSHIRT_API_KEY are set.")
        raise RuntimeError(
            f"Configuration error: {e}. Ensure WINSHIRT_REMOTE_URL and WINSHIRT_API_KEY are set."
        ) from e

    services = SyncServices(config)
    services.open()
    try:
        _stderr_print("  Checking backend connectivity...")
        mode = await services.guard.check()
        if mode == SyncMode.ONLINE:
            _stderr_print("  Backend reachable, all tables present")
        elif services.guard.missing_tables:
            _stderr_print(
                "  WARNING: missing remote tables: "
                + ", ".join(services.guard.missing_tables)
            )
        else:
            _stderr_print("  WARNING: backend unreachable, running offline")
        preloaded = await services.loader.preload_all()
        logger.info(
            "Preloaded %s",
            ", ".join(f"{t}={len(rows)}" for t, rows in preloaded.items()),
        )
        _stderr_print(
            f"  Parallel requests: {config.max_parallel_requests}"
        )
        _stderr_print("Server ready. Waiting for MCP client connection...")

        yield {"services": services}
    finally:
        logger.info("MCP server shutting down")
        services.close()
        _stderr_print("WinShirt Sync MCP Server shutting down.")
