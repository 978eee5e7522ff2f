"""User-facing transient notifications."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..utils import now_utc

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    """Outcome reported to the user."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A single toast-style message."""

    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=now_utc)

    @property
    def is_error(self) -> bool:
        """Whether this reports a failed operation."""
        return self.level is NotificationLevel.ERROR


NotificationListener = Callable[[Notification], None]


class NotificationCenter:
    """Records notifications and fans them out to listeners."""

    def __init__(self, max_history: int = 100) -> None:
        self.history: deque[Notification] = deque(maxlen=max_history)
        self._listeners: list[NotificationListener] = []

    def add_listener(self, listener: NotificationListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def success(self, message: str) -> Notification:
        """Emit a success notification."""
        return self._emit(Notification(NotificationLevel.SUCCESS, message))

    def error(self, message: str) -> Notification:
        """Emit a failure notification."""
        return self._emit(Notification(NotificationLevel.ERROR, message))

    @property
    def last(self) -> Notification | None:
        """Most recent notification, if any."""
        return self.history[-1] if self.history else None

    @property
    def errors(self) -> list[Notification]:
        """All recorded failure notifications."""
        return [n for n in self.history if n.is_error]

    def clear(self) -> None:
        """Forget recorded notifications."""
        self.history.clear()

    def _emit(self, notification: Notification) -> Notification:
        self.history.append(notification)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("Notification listener failed")
        return notification
