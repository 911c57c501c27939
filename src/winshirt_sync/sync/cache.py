"""Local cache store.

Each cache key is persisted as ``<directory>/<key>.json``.  Table keys hold
a JSON array of camelCase records; the remaining keys (developer-mode
toggle, connection flag, auth session, sync status) hold arbitrary JSON
values.

Writes are atomic: the value goes to a temp file in the same directory,
which then replaces the target with ``os.replace()``, so a reader in
another process never sees a half-written file.  A successful table write
or clear publishes the table name on the ``TableChangeNotifier`` before
returning.
"""

from __future__ import annotations

import errno
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from ..errors import CacheQuotaError, UnknownTableError
from ..notifications import Notifier
from .events import TableChangeNotifier
from .registry import SETTING_KEYS, TABLE_NAMES, get_table, is_table

logger = logging.getLogger(__name__)

_DISK_FULL_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class LocalCacheStore:
    """Keyed JSON persistence for table snapshots and settings.

    Args:
        directory: Directory holding one file per key.  Created on first
            write.
        quota_bytes: Maximum combined size of all cached values.
        notifier: Receives an error notification when a write is refused.
        events: Channel on which table changes are published.
    """

    def __init__(
        self,
        directory: Path | str,
        quota_bytes: int,
        notifier: Notifier | None = None,
        events: TableChangeNotifier | None = None,
    ) -> None:
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes
        self.notifier = notifier if notifier is not None else Notifier()
        self.events = events if events is not None else TableChangeNotifier()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Table snapshots
    # ------------------------------------------------------------------

    def read(self, table_name: str) -> list[dict]:
        """Return the cached records of *table_name*.

        A missing, unreadable or malformed entry yields ``[]``.

        Raises:
            UnknownTableError: If *table_name* is not registered.
        """
        get_table(table_name)
        value = self._load(table_name, None)
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning(
                "Cache entry %s is not a list (%s), ignoring",
                table_name,
                type(value).__name__,
            )
            return []
        records = [item for item in value if isinstance(item, dict)]
        if len(records) != len(value):
            logger.warning(
                "Cache entry %s: dropped %d non-object item(s)",
                table_name,
                len(value) - len(records),
            )
        return records

    def write(self, table_name: str, records: list[dict]) -> bool:
        """Replace the cached records of *table_name*.

        Returns:
            ``True`` on success, ``False`` when the value could not be
            stored (quota exceeded, disk full, I/O error).

        Raises:
            UnknownTableError: If *table_name* is not registered.
        """
        get_table(table_name)
        if not self._store(table_name, list(records)):
            return False
        self.events.publish(table_name)
        return True

    def clear(self, table_name: str) -> None:
        """Remove the cached records of *table_name*."""
        get_table(table_name)
        with self._lock:
            self._path(table_name).unlink(missing_ok=True)
        self.events.publish(table_name)

    def clear_all(self) -> None:
        """Remove every managed key, tables and settings alike."""
        with self._lock:
            for key in (*TABLE_NAMES, *SETTING_KEYS):
                self._path(key).unlink(missing_ok=True)
        logger.info("Cleared local cache at %s", self.directory)
        self.events.publish(None)

    # ------------------------------------------------------------------
    # Setting keys
    # ------------------------------------------------------------------

    def read_value(self, key: str, default: Any = None) -> Any:
        """Return the JSON value stored under a setting *key*."""
        self._check_setting_key(key)
        return self._load(key, default)

    def write_value(self, key: str, value: Any) -> bool:
        """Store *value* under a setting *key*; same failure contract as ``write``."""
        self._check_setting_key(key)
        return self._store(key, value)

    def delete_value(self, key: str) -> None:
        self._check_setting_key(key)
        with self._lock:
            self._path(key).unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def has(self, key: str) -> bool:
        return self._path(key).exists()

    def keys(self) -> list[str]:
        """Return the managed keys currently present, in registry order."""
        return [
            key
            for key in (*TABLE_NAMES, *sorted(SETTING_KEYS))
            if self._path(key).exists()
        ]

    def size_bytes(self) -> int:
        """Total size of every cached value."""
        total = 0
        for key in self.keys():
            try:
                total += self._path(key).stat().st_size
            except OSError:
                pass
        return total

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    @staticmethod
    def _check_setting_key(key: str) -> None:
        if key not in SETTING_KEYS and not is_table(key):
            raise UnknownTableError(key)

    def _load(self, key: str, default: Any) -> Any:
        path = self._path(key)
        with self._lock:
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return default
            except OSError as exc:
                logger.error("Failed to read cache key %s: %s", key, exc)
                return default
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Corrupt cache entry %s: %s", key, exc)
            return default

    def _store(self, key: str, value: Any) -> bool:
        payload = json.dumps(value, ensure_ascii=False).encode("utf-8")
        with self._lock:
            try:
                self._check_quota(key, len(payload))
                self._atomic_write(self._path(key), payload)
            except CacheQuotaError as exc:
                self._report_write_failure(key, str(exc))
                return False
            except OSError as exc:
                if exc.errno in _DISK_FULL_ERRNOS:
                    message = f"Storage full while writing '{key}'"
                else:
                    message = f"Could not write '{key}': {exc}"
                self._report_write_failure(key, message)
                return False
        return True

    def _check_quota(self, key: str, new_size: int) -> None:
        current = self.size_bytes()
        path = self._path(key)
        if path.exists():
            current -= path.stat().st_size
        required = current + new_size
        if required > self.quota_bytes:
            raise CacheQuotaError(key, required, self.quota_bytes)

    def _atomic_write(self, target: Path, payload: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.directory), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp_path, target)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def _report_write_failure(self, key: str, message: str) -> None:
        logger.error("Cache write refused for %s: %s", key, message)
        self.notifier.error(f"Local storage error ({key}): {message}")
