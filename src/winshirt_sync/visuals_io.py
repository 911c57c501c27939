"""Visual library export and import.

Exports are a JSON array of the cached visuals, UTF-8, indented with two
spaces.  Imports accept the same format in any encoding that
charset-normalizer can detect and replace the cached visuals wholesale.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path

from charset_normalizer import from_bytes

from .core.async_utils import run_sync
from .errors import SyncLayerError
from .sync.cache import LocalCacheStore

logger = logging.getLogger(__name__)

VISUALS_TABLE = "visuals"


def default_export_filename(today: date | None = None) -> str:
    """Return ``winshirt-visuals-YYYY-MM-DD.json`` for *today*."""
    today = today or date.today()
    return f"winshirt-visuals-{today.isoformat()}.json"


# =============================================================================
# Export
# =============================================================================


def export_visuals(cache: LocalCacheStore) -> str:
    """Serialize the cached visuals as an indented JSON array."""
    return json.dumps(
        cache.read(VISUALS_TABLE), indent=2, ensure_ascii=False
    )


def resolve_export_path(path_str: str) -> Path:
    """Validate an export destination.

    A directory receives the default dated file name.

    Raises:
        ValueError: If the path is relative or its parent does not exist.
    """
    path = Path(path_str)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {path_str}")
    resolved = path.resolve()
    if resolved.is_dir():
        return resolved / default_export_filename()
    if not resolved.parent.exists():
        raise ValueError(
            f"Output parent directory not found: {resolved.parent}"
        )
    return resolved


def export_visuals_to_file(
    cache: LocalCacheStore, path_str: str
) -> tuple[Path, int]:
    """Write the export to *path_str*.

    Returns:
        Tuple of (written_path, bytes_written).
    """
    target = resolve_export_path(path_str)
    encoded = export_visuals(cache).encode("utf-8")
    target.write_bytes(encoded)
    logger.info("Exported visuals to %s (%d bytes)", target, len(encoded))
    return (target, len(encoded))


# =============================================================================
# Import
# =============================================================================


def parse_visuals(text: str) -> list[dict]:
    """Parse an export document.

    Raises:
        ValueError: If *text* is not a JSON array of objects.
    """
    try:
        data = json.loads(text.lstrip("\ufeff"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc}") from None
    if not isinstance(data, list):
        raise ValueError("Visuals import must be a JSON array")
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(f"Item {index} is not an object")
    return data


def import_visuals(cache: LocalCacheStore, text: str) -> int:
    """Replace the cached visuals with the contents of *text*.

    Returns:
        Number of visuals imported.

    Raises:
        ValueError: If *text* is not a JSON array of objects.
        SyncLayerError: If the cache refused the write.
    """
    visuals = parse_visuals(text)
    if not cache.write(VISUALS_TABLE, visuals):
        raise SyncLayerError("Imported visuals could not be stored")
    logger.info("Imported %d visual(s)", len(visuals))
    return len(visuals)


def read_text_with_encoding(path: Path) -> tuple[str, str]:
    """Read *path*, detecting its encoding.

    Empty files and failed detection fall back to UTF-8.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    match = from_bytes(raw).best()
    if match is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")
    encoding = (
        "utf-8" if match.encoding in ("ascii", "utf_8") else match.encoding
    )
    return (str(match), encoding)


def import_visuals_from_file(cache: LocalCacheStore, path_str: str) -> int:
    """Import visuals from an export file.

    Raises:
        ValueError: If the path is relative, missing, not a file, or the
            content is not a JSON array of objects.
    """
    path = Path(path_str)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {path_str}")
    resolved = path.resolve()
    if not resolved.is_file():
        raise ValueError(f"File not found: {path_str}")
    text, encoding = read_text_with_encoding(resolved)
    logger.debug("Read %s as %s", resolved, encoding)
    return import_visuals(cache, text)


# =============================================================================
# Async wrappers
# =============================================================================


async def export_visuals_to_file_async(
    cache: LocalCacheStore, path_str: str
) -> tuple[Path, int]:
    return await run_sync(export_visuals_to_file, cache, path_str)


async def import_visuals_from_file_async(
    cache: LocalCacheStore, path_str: str
) -> int:
    return await run_sync(import_visuals_from_file, cache, path_str)
