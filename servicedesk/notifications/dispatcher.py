from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from servicedesk.errors import NotificationFailure
from servicedesk.metrics import MetricsRegistry, metrics_registry
from servicedesk.metrics.definitions import NOTIFICATION_FAILURES, NOTIFICATIONS_DISPATCHED

from .store import NotificationStore

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fire-and-forget delivery of notifications.

    ``notify`` never raises: a missing recipient is a no-op and any store failure is
    logged and counted, so callers do not need to guard their call sites.
    """

    def __init__(self, store: NotificationStore, *, registry: MetricsRegistry | None = None) -> None:
        self._store = store
        self._registry = registry or metrics_registry

    async def notify(self, user_id: int | None, title: str, message: str, link: str | None = None) -> None:
        if not user_id:
            return
        try:
            await self._deliver(user_id, title or "Notification", message, link)
        except NotificationFailure:
            logger.exception("Dropping notification %r for user %s", title, user_id)
            self._registry.counter(NOTIFICATION_FAILURES).inc()
            return
        self._registry.counter(NOTIFICATIONS_DISPATCHED).inc()

    async def notify_many(
        self, user_ids: Iterable[int | None], title: str, message: str, link: str | None = None
    ) -> None:
        await asyncio.gather(*(self.notify(user_id, title, message, link) for user_id in user_ids))

    async def _deliver(self, user_id: int, title: str, message: str, link: str | None) -> None:
        try:
            await self._store.create(user_id=user_id, title=title, message=message, link_url=link)
        except Exception as exc:
            raise NotificationFailure(f"Notification to user {user_id} could not be stored") from exc

    async def notify_resolved(
        self,
        resolve: Callable[[], Awaitable[Iterable[int]]],
        title: str,
        message: str,
        link: str | None = None,
    ) -> None:
        """Fan out to the recipients produced by ``resolve``; a failed lookup drops the fan-out."""

        try:
            user_ids = list(await resolve())
        except Exception:
            logger.exception("Recipient lookup for %r failed", title)
            self._registry.counter(NOTIFICATION_FAILURES).inc()
            return
        await self.notify_many(user_ids, title, message, link)
