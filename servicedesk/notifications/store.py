from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from servicedesk.db.models import NotificationTable
from servicedesk.db.session import ensure_aware, unit_of_work, utcnow


@dataclass(slots=True)
class Notification:
    """Message addressed to a single user."""

    id: int
    user_id: int
    title: str
    message: str
    link_url: str | None
    is_read: bool
    created_at: datetime
    read_at: datetime | None = None


class NotificationStore:
    """Persistence for notifications; recipients only ever flip the read flag."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(self, *, user_id: int, title: str, message: str, link_url: str | None = None) -> Notification:
        async with unit_of_work(self._session_factory) as session:
            row = NotificationTable(
                user_id=user_id,
                title=title,
                message=message,
                link_url=link_url,
                is_read=False,
                created_at=utcnow(),
            )
            session.add(row)
            await session.flush()
            return self._row_to_notification(row)

    async def list_for_user(self, user_id: int, *, unread_only: bool = False) -> list[Notification]:
        statement = select(NotificationTable).where(NotificationTable.user_id == user_id)
        if unread_only:
            statement = statement.where(NotificationTable.is_read.is_(False))
        statement = statement.order_by(NotificationTable.created_at.desc(), NotificationTable.id.desc())
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [self._row_to_notification(row) for row in result.scalars().all()]

    async def count_unread(self, user_id: int) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(NotificationTable)
                .where(NotificationTable.user_id == user_id, NotificationTable.is_read.is_(False))
            )
            return int(result.scalar_one())

    async def mark_read(self, notification_id: int, user_id: int) -> Notification | None:
        async with unit_of_work(self._session_factory) as session:
            row = await session.get(NotificationTable, notification_id)
            if row is None or row.user_id != user_id:
                return None
            if not row.is_read:
                row.is_read = True
                row.read_at = utcnow()
                await session.flush()
            return self._row_to_notification(row)

    async def mark_all_read(self, user_id: int) -> int:
        async with unit_of_work(self._session_factory) as session:
            result = await session.execute(
                update(NotificationTable)
                .where(NotificationTable.user_id == user_id, NotificationTable.is_read.is_(False))
                .values(is_read=True, read_at=utcnow())
            )
            return int(result.rowcount or 0)

    @staticmethod
    def _row_to_notification(row: NotificationTable) -> Notification:
        return Notification(
            id=int(row.id),
            user_id=row.user_id,
            title=row.title,
            message=row.message,
            link_url=row.link_url,
            is_read=bool(row.is_read),
            created_at=ensure_aware(row.created_at),
            read_at=ensure_aware(row.read_at),
        )
