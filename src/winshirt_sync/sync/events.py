"""Same-process "table changed" channel."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

# Receives the changed table name, or None after a clear-all.
TableChangeListener = Callable[[str | None], None]


class TableChangeNotifier:
    """Fan a table-changed event out to every subscriber.

    Delivery is synchronous, in subscription order.  A failing listener is
    logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._listeners: list[TableChangeListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: TableChangeListener) -> Callable[[], None]:
        """Register *listener* and return a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, table: str | None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(table)
            except Exception:
                logger.exception("Table change listener failed for %s", table)

    def __len__(self) -> int:
        return len(self._listeners)
