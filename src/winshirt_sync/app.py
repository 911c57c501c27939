"""Service container wiring the sync layer together.

``SyncServices`` builds every collaborator explicitly from a ``Config``
so that tests and the MCP server can each own an isolated instance.
"""

from __future__ import annotations

import logging

from .config import Config
from .core.client import RestClient
from .loader import DataLoader
from .notifications import Notifier
from .sync.cache import LocalCacheStore
from .sync.engine import SyncEngine
from .sync.events import TableChangeNotifier
from .sync.guard import ConnectivityGuard
from .sync.registry import AUTH_SESSION_KEY, DEV_MODE_KEY
from .sync.remote import RemoteStoreAdapter
from .sync.reporter import StatisticsReporter
from .sync.state import SyncHistory

logger = logging.getLogger(__name__)


class SyncServices:
    """All sync-layer services for one configuration.

    Args:
        config: Validated runtime configuration.
        client: REST client to use instead of building one from *config*.
    """

    def __init__(self, config: Config, client: RestClient | None = None):
        self.config = config
        self.notifier = Notifier()
        self.events = TableChangeNotifier()
        self.cache = LocalCacheStore(
            config.cache_dir,
            config.cache_quota_bytes,
            notifier=self.notifier,
            events=self.events,
        )
        self.client = client or RestClient(config)
        self.remote = RemoteStoreAdapter(
            self.client,
            config.request_timeout,
            max_parallel=config.max_parallel_requests,
        )
        self.history = SyncHistory(self.cache)
        self.engine = SyncEngine(
            self.cache,
            self.remote,
            self.notifier,
            history=self.history,
            batch_size=config.batch_size,
        )
        self.guard = ConnectivityGuard(self.remote, self.cache)
        self.reporter = StatisticsReporter(self.cache, self.remote)
        self.loader = DataLoader(self.cache, self.engine, self.guard)
        self._unsubscribe_auth = None

    def open(self) -> None:
        """Restore the saved auth session and start persisting changes."""
        saved = self.cache.read_value(AUTH_SESSION_KEY)
        if isinstance(saved, dict):
            self.client.set_session(saved)
            logger.info("Restored saved auth session")
        self._unsubscribe_auth = self.client.on_auth_state_change(
            self._persist_auth_session
        )

    def close(self) -> None:
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None
        self.client.close()

    def __enter__(self) -> SyncServices:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _persist_auth_session(self, event: str, session: dict | None) -> None:
        logger.info("Auth state changed: %s", event)
        if session is None:
            self.cache.delete_value(AUTH_SESSION_KEY)
        else:
            self.cache.write_value(AUTH_SESSION_KEY, session)

    # ------------------------------------------------------------------
    # Developer mode
    # ------------------------------------------------------------------

    @property
    def dev_mode(self) -> bool:
        return bool(self.cache.read_value(DEV_MODE_KEY, False))

    def set_dev_mode(self, enabled: bool) -> None:
        self.cache.write_value(DEV_MODE_KEY, enabled)
