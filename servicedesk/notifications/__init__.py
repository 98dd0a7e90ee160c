"""Notification persistence and best-effort dispatch."""

from .dispatcher import NotificationDispatcher
from .store import Notification, NotificationStore

__all__ = ["Notification", "NotificationDispatcher", "NotificationStore"]
