"""User-visible notifications.

The storefront shows sync results as short toast messages.  ``Notifier``
is the server-side equivalent: each message is logged and kept in a
bounded history that the admin tools can display.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 100


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


class Notification(BaseModel):
    level: NotificationLevel
    message: str
    created_at: str

    model_config = {"frozen": True}


class Notifier:
    """Collect notifications for display.

    Args:
        history_size: Number of most recent notifications kept.
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self._history: deque[Notification] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(
            level=level,
            message=message,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.log(_LOG_LEVELS[level], "[%s] %s", level.value, message)
        with self._lock:
            self._history.append(notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message)

    def info(self, message: str) -> Notification:
        return self.notify(NotificationLevel.INFO, message)

    def warning(self, message: str) -> Notification:
        return self.notify(NotificationLevel.WARNING, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationLevel.ERROR, message)

    def history(self, limit: int | None = None) -> list[Notification]:
        """Return notifications oldest first, optionally only the last *limit*."""
        with self._lock:
            items = list(self._history)
        if limit is not None:
            return items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
