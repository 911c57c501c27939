"""Runtime configuration for the sync layer.

Reads remote-store connection settings and sync tunables from CLI args,
environment variables, .env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    WINSHIRT_REMOTE_URL: Base URL of the hosted backend (required)
    WINSHIRT_API_KEY: Anonymous/service API key (required)
    WINSHIRT_CACHE_DIR: Local cache directory (optional, default: .winshirt/cache)
    WINSHIRT_BATCH_SIZE: Records per push batch (optional, default: 20)
    WINSHIRT_REQUEST_TIMEOUT: Per-call timeout in seconds (optional, default: 30)
    WINSHIRT_MAX_PARALLEL_REQUESTS: Max concurrent HTTP calls (optional, default: 4)
    WINSHIRT_CACHE_QUOTA_BYTES: Cache size limit (optional, default: 5 MiB)
    WINSHIRT_INSECURE: Skip SSL verification (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = ".winshirt/cache"
DEFAULT_BATCH_SIZE = 20
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_MAX_PARALLEL_REQUESTS = 4
# Same order of magnitude as a browser origin's storage allowance.
DEFAULT_CACHE_QUOTA_BYTES = 5 * 1024 * 1024


@dataclass
class Config:
    remote_url: str
    api_key: str
    cache_dir: str = DEFAULT_CACHE_DIR
    batch_size: int = DEFAULT_BATCH_SIZE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_parallel_requests: int = DEFAULT_MAX_PARALLEL_REQUESTS
    cache_quota_bytes: int = DEFAULT_CACHE_QUOTA_BYTES
    insecure: bool = False
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the URL is malformed, the API key is empty, or a
            tunable is out of range.
    """
    config.remote_url = config.remote_url.strip()

    if not config.remote_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid remote URL '{config.remote_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.remote_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid remote URL '{config.remote_url}': URL must include a hostname"
        )

    config.remote_url = config.remote_url.removesuffix("/")

    if not config.api_key.strip():
        raise ValueError(
            "API key cannot be empty. Set WINSHIRT_API_KEY environment variable."
        )

    if not (1 <= config.batch_size <= 1000):
        raise ValueError(
            f"Invalid batch size {config.batch_size}: must be between 1 and 1000"
        )

    if config.request_timeout <= 0:
        raise ValueError(
            f"Invalid request timeout {config.request_timeout}: must be positive"
        )

    if config.cache_quota_bytes <= 0:
        raise ValueError(
            f"Invalid cache quota {config.cache_quota_bytes}: must be positive"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_number_env(
    key: str, cast, low: float, high: float
) -> float | int | None:
    """Parse a numeric env var within [low, high], or None if unset."""
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    remote_url: str | None = None,
    api_key: str | None = None,
    cache_dir: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        remote_url: Override backend URL.
        api_key: Override API key.
        cache_dir: Override local cache directory.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML config file
            (``remote``, ``cache`` and ``sync`` sections merged).

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the URL or API key is missing after checking all
            sources, or a numeric value is out of range.
    """
    fb = yaml_fallbacks or {}

    final_url = (
        remote_url or os.getenv("WINSHIRT_REMOTE_URL") or fb.get("url")
    )
    if not final_url:
        raise ValueError(
            "Remote URL not found. Set WINSHIRT_REMOTE_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    final_key = api_key or os.getenv("WINSHIRT_API_KEY") or fb.get("api_key")
    if not final_key:
        raise ValueError(
            "API key not found. Set WINSHIRT_API_KEY environment variable, "
            "pass --api-key CLI argument, or add 'api_key' to config.yml."
        )

    final_cache_dir = (
        cache_dir
        or os.getenv("WINSHIRT_CACHE_DIR")
        or fb.get("directory")
        or DEFAULT_CACHE_DIR
    )

    if insecure:
        final_insecure = True
    else:
        env_insecure = _get_bool_env("WINSHIRT_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("WINSHIRT_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    # --- Numeric fields: env > YAML > default ---

    batch_size = _get_number_env("WINSHIRT_BATCH_SIZE", int, 1, 1000)
    if batch_size is None:
        batch_size = int(fb.get("batch_size", DEFAULT_BATCH_SIZE))

    timeout = _get_number_env(
        "WINSHIRT_REQUEST_TIMEOUT", float, 0.1, 600
    )
    if timeout is None:
        timeout = float(
            fb.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)
        )

    max_parallel = _get_number_env(
        "WINSHIRT_MAX_PARALLEL_REQUESTS", int, 1, 100
    )
    if max_parallel is None:
        max_parallel = int(
            fb.get("max_parallel_requests", DEFAULT_MAX_PARALLEL_REQUESTS)
        )

    quota = _get_number_env(
        "WINSHIRT_CACHE_QUOTA_BYTES", int, 1, 10 * 1024**3
    )
    if quota is None:
        quota = int(fb.get("quota_bytes", DEFAULT_CACHE_QUOTA_BYTES))

    config = Config(
        remote_url=final_url.strip(),
        api_key=final_key.strip(),
        cache_dir=final_cache_dir,
        batch_size=batch_size,
        request_timeout=timeout,
        max_parallel_requests=max_parallel,
        cache_quota_bytes=quota,
        insecure=final_insecure,
        debug=final_debug,
    )

    validate_config(config)

    return config
