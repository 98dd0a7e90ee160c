"""Route modules exposed by the API package."""

from . import metrics, notifications, ping, tasks, tickets

__all__ = ["metrics", "notifications", "ping", "tasks", "tickets"]
