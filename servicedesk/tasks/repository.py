from __future__ import annotations

from contextlib import AbstractAsyncContextManager

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from servicedesk.db.models import TaskProgressTable, TaskTable
from servicedesk.db.session import ensure_aware, unit_of_work, utcnow
from servicedesk.errors import NotFoundError

from .models import Task, TaskFilters
from .state import TaskPriority, TaskStatus

# domain attribute -> column
_COLUMNS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "assigned_to_id": "assigned_to",
    "created_by_id": "created_by",
    "due_date": "due_date",
    "technician_note": "technician_note",
    "technician_rating": "technician_rating",
}


class TaskRepository:
    """Task records; mutations run on the caller's session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    def transaction(self) -> AbstractAsyncContextManager[AsyncSession]:
        return unit_of_work(self._session_factory)

    async def get_task(self, task_id: int) -> Task | None:
        async with self._session_factory() as session:
            row = await session.get(TaskTable, task_id)
            return None if row is None else self._table_to_task(row)

    async def list_tasks(self, filters: TaskFilters | None = None) -> list[Task]:
        filters = filters or TaskFilters()
        statement = select(TaskTable)
        if filters.status is not None:
            statement = statement.where(TaskTable.status == filters.status.value)
        if filters.assigned_to_id is not None:
            statement = statement.where(TaskTable.assigned_to == filters.assigned_to_id)
        statement = statement.order_by(TaskTable.created_at.desc(), TaskTable.id.desc())
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [self._table_to_task(row) for row in result.scalars().all()]

    async def lock_task(self, session: AsyncSession, task_id: int) -> Task | None:
        row = await session.get(TaskTable, task_id, with_for_update=True)
        return None if row is None else self._table_to_task(row)

    async def insert_task(self, session: AsyncSession, **values: object) -> Task:
        now = utcnow()
        row = TaskTable(created_at=now, updated_at=now, **self._to_columns(values))
        session.add(row)
        await session.flush()
        return self._table_to_task(row)

    async def update_task(self, session: AsyncSession, task_id: int, **values: object) -> Task:
        row = await session.get(TaskTable, task_id)
        if row is None:
            raise NotFoundError(f"Task {task_id} vanished inside its transaction")
        for column, value in self._to_columns(values).items():
            setattr(row, column, value)
        row.updated_at = utcnow()
        await session.flush()
        return self._table_to_task(row)

    async def delete_task(self, session: AsyncSession, task_id: int) -> None:
        # SQLite does not enforce ON DELETE CASCADE unless asked to
        await session.execute(delete(TaskProgressTable).where(TaskProgressTable.task_id == task_id))
        await session.execute(delete(TaskTable).where(TaskTable.id == task_id))

    @staticmethod
    def _to_columns(values: dict[str, object]) -> dict[str, object]:
        columns: dict[str, object] = {}
        for name, value in values.items():
            if isinstance(value, (TaskStatus, TaskPriority)):
                value = value.value
            columns[_COLUMNS.get(name, name)] = value
        return columns

    @staticmethod
    def _table_to_task(row: TaskTable) -> Task:
        return Task(
            id=int(row.id),
            title=row.title,
            description=row.description,
            status=TaskStatus(row.status),
            priority=TaskPriority(row.priority),
            assigned_to_id=row.assigned_to,
            created_by_id=row.created_by,
            due_date=row.due_date,
            technician_note=row.technician_note,
            technician_rating=row.technician_rating,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
        )
