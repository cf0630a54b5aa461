"""Transient user-facing notifications."""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime

from prison_console.errors import BackendError, failure_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A toast-style message shown once to the operator."""

    level: str
    message: str
    created_at: datetime


@dataclass
class NotificationCenter:
    """Bounded queue of notifications waiting to be shown."""

    environment: str = "local"
    max_items: int = 50
    _queue: deque[Notification] = field(default_factory=deque)

    def success(self, message: str) -> None:
        self._push("success", message)

    def info(self, message: str) -> None:
        self._push("info", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    def failure(self, exc: Exception, fallback: str) -> str:
        """Log a caught failure, queue its message and return that message."""
        message = failure_message(exc, fallback, self.environment)
        if isinstance(exc, BackendError):
            logger.warning(
                "%s: backend returned %s", fallback, exc.status_code,
                extra={"backend_message": exc.message},
            )
        else:
            logger.error("%s", fallback, exc_info=exc)
        self.error(message)
        return message

    def drain(self) -> list[Notification]:
        """Return queued notifications oldest first and clear the queue."""
        items = list(self._queue)
        self._queue.clear()
        return items

    def _push(self, level: str, message: str) -> None:
        self._queue.append(
            Notification(level=level, message=message, created_at=datetime.now(tz=UTC))
        )
        while len(self._queue) > self.max_items:
            self._queue.popleft()
