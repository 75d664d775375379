"""Single channel through which the console reports outcomes to the operator"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A message shown to the operator"""
    level: str  # "success", "error" or "info"
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationCenter:
    """Keeps the most recent notifications and mirrors them to the log"""

    _LOG_LEVELS = {
        "success": logging.INFO,
        "info": logging.INFO,
        "error": logging.ERROR,
    }

    def __init__(self, backlog: int = 50):
        self._items: deque[Notification] = deque(maxlen=backlog)

    def notify(self, level: str, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._items.append(notification)
        logger.log(self._LOG_LEVELS.get(level, logging.INFO), f"[{level}] {message}")
        return notification

    def success(self, message: str) -> Notification:
        return self.notify("success", message)

    def error(self, message: str) -> Notification:
        return self.notify("error", message)

    def info(self, message: str) -> Notification:
        return self.notify("info", message)

    def recent(self, limit: int = 10) -> list[Notification]:
        """Most recent first"""
        return list(reversed(self._items))[:limit]

    def clear(self) -> None:
        self._items.clear()
