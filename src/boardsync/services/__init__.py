"""Service layer for board state."""

from .board_store import BoardStore, StoreSnapshot
from .notifications import Notification, NotificationCenter, NotificationLevel

__all__ = [
    "BoardStore",
    "Notification",
    "NotificationCenter",
    "NotificationLevel",
    "StoreSnapshot",
]
