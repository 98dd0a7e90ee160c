"""Progress history of tasks.

Unlike the ticket audit trail, a progress entry carries one mutable part: the admin
annotation. :meth:`TaskProgressLog.annotate` replaces it wholesale; callers that want
to keep earlier text must include it in the new comment.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from servicedesk.db.models import TaskProgressTable
from servicedesk.db.session import ensure_aware, unit_of_work, utcnow

from .models import TaskProgressEntry
from .state import TaskStatus


class TaskProgressLog:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, entry: TaskProgressEntry, *, session: AsyncSession | None = None) -> TaskProgressEntry:
        if session is not None:
            return await self._insert(session, entry)
        async with unit_of_work(self._session_factory) as own_session:
            return await self._insert(own_session, entry)

    async def list_for_task(self, task_id: int) -> list[TaskProgressEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskProgressTable)
                .where(TaskProgressTable.task_id == task_id)
                .order_by(TaskProgressTable.created_at.asc(), TaskProgressTable.id.asc())
            )
            return [self._row_to_entry(row) for row in result.scalars().all()]

    async def annotate(
        self,
        session: AsyncSession,
        progress_id: int,
        *,
        task_id: int,
        admin_id: int,
        comment: str | None,
    ) -> TaskProgressEntry | None:
        """Set the admin annotation of an entry of ``task_id``; ``None`` if there is no such entry."""

        row = await session.get(TaskProgressTable, progress_id)
        if row is None or row.task_id != task_id:
            return None
        row.admin_comment = comment
        row.admin_id = admin_id
        await session.flush()
        return self._row_to_entry(row)

    async def _insert(self, session: AsyncSession, entry: TaskProgressEntry) -> TaskProgressEntry:
        row = TaskProgressTable(
            task_id=entry.task_id,
            technician_id=entry.technician_id,
            status=entry.status.value,
            note=entry.note,
            admin_comment=entry.admin_comment,
            admin_id=entry.admin_id,
            created_at=entry.created_at or utcnow(),
        )
        session.add(row)
        await session.flush()
        return self._row_to_entry(row)

    @staticmethod
    def _row_to_entry(row: TaskProgressTable) -> TaskProgressEntry:
        return TaskProgressEntry(
            id=int(row.id),
            task_id=row.task_id,
            technician_id=row.technician_id,
            status=TaskStatus(row.status),
            note=row.note,
            admin_comment=row.admin_comment,
            admin_id=row.admin_id,
            created_at=ensure_aware(row.created_at),
        )
