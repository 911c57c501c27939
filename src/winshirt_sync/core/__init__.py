"""HTTP client and async helpers shared by the sync layer and MCP server."""

from .async_utils import run_sync, run_sync_limited
from .client import RestClient

__all__ = ["RestClient", "run_sync", "run_sync_limited"]
