# catalog_admin/services/notifications.py

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Deque, List, Optional, Protocol

from catalog_admin.core.config import settings

log = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    success = "success"
    error = "error"
    warning = "warning"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier(Protocol):

    def success(self, message: str) -> Notification:
        ...

    def error(self, message: str) -> Notification:
        ...

    def warning(self, message: str) -> Notification:
        ...


class LoggingNotifier:
    """
    Transient admin toasts. Each one is logged and kept in a short history so a
    terminal or a test can show what the admin would have seen.
    """

    def __init__(self, history_size: Optional[int] = None) -> None:
        size = history_size or settings.NOTIFICATION_HISTORY_SIZE
        self._history: Deque[Notification] = deque(maxlen=size)

    def _push(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._history.append(notification)
        log_level = logging.INFO if level == NotificationLevel.success else logging.WARNING
        log.log(log_level, "Toast [%s]: %s", level.value, message)
        return notification

    def success(self, message: str) -> Notification:
        return self._push(NotificationLevel.success, message)

    def error(self, message: str) -> Notification:
        return self._push(NotificationLevel.error, message)

    def warning(self, message: str) -> Notification:
        return self._push(NotificationLevel.warning, message)

    @property
    def history(self) -> List[Notification]:
        return list(self._history)

    @property
    def last(self) -> Optional[Notification]:
        return self._history[-1] if self._history else None

    def clear(self) -> None:
        self._history.clear()
