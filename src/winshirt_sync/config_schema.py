"""Unified configuration schema for winshirt_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the remote store, the local cache, sync tunables and logging,
plus an adapter to the flat ``Config`` dataclass used at runtime.

Usage:
    from winshirt_sync.config_schema import build_config, to_legacy_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = to_legacy_config(unified, cli_overrides={"url": "https://..."})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from .config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CACHE_DIR,
    DEFAULT_CACHE_QUOTA_BYTES,
    DEFAULT_MAX_PARALLEL_REQUESTS,
    DEFAULT_REQUEST_TIMEOUT,
)

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RemoteConfig(BaseModel):
    """Hosted backend connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    url: str | None = Field(default=None, description="Backend base URL")
    api_key: str | None = Field(default=None, description="API key")
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT,
        gt=0,
        le=600,
        description="Per-call timeout in seconds",
    )
    max_parallel_requests: int = Field(
        default=DEFAULT_MAX_PARALLEL_REQUESTS,
        ge=1,
        le=100,
        description="Maximum concurrent requests to the backend (1-100)",
    )

    model_config = {"frozen": True}


class CacheConfig(BaseModel):
    """Local cache settings."""

    directory: str = Field(
        default=DEFAULT_CACHE_DIR, description="Cache directory"
    )
    quota_bytes: int = Field(
        default=DEFAULT_CACHE_QUOTA_BYTES,
        ge=1,
        description="Maximum total size of cached values in bytes",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Sync engine tunables."""

    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        ge=1,
        le=1000,
        description="Records per upsert batch",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()`` is valid.
    """

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    def fallbacks(self) -> dict:
        """Flatten the remote, cache and sync sections for ``load_config``.

        ``None`` values are dropped so they never shadow env vars.
        """
        merged: dict = {}
        for section in (self.remote, self.cache, self.sync):
            merged.update(
                {
                    k: v
                    for k, v in section.model_dump().items()
                    if v is not None
                }
            )
        return merged


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the runtime ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value > default

    CLI overrides dict keys: url, api_key, cache_dir, insecure, debug.

    Returns:
        ``Config`` instance (NOT validated; call ``validate_config()``).
    """
    from .config import Config

    overrides = cli_overrides or {}

    return Config(
        remote_url=overrides.get("url") or unified.remote.url or "",
        api_key=overrides.get("api_key") or unified.remote.api_key or "",
        cache_dir=overrides.get("cache_dir") or unified.cache.directory,
        batch_size=unified.sync.batch_size,
        request_timeout=unified.remote.request_timeout,
        max_parallel_requests=unified.remote.max_parallel_requests,
        cache_quota_bytes=unified.cache.quota_bytes,
        insecure=overrides.get("insecure", False)
        or unified.remote.insecure,
        debug=overrides.get("debug", False) or unified.remote.debug,
    )
