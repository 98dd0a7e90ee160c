from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from .state import TaskPriority, TaskStatus


@dataclass(slots=True)
class Task:
    """Internal work item an administrator hands to a technician."""

    id: int
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    assigned_to_id: int | None
    created_by_id: int | None
    due_date: date | None
    technician_note: str | None
    technician_rating: int | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_locked(self) -> bool:
        return self.technician_rating is not None


@dataclass(slots=True)
class TaskProgressEntry:
    """Snapshot of a task after a status or note change.

    ``admin_comment``/``admin_id`` form a mutable annotation; every other field is fixed
    once written.
    """

    task_id: int
    status: TaskStatus
    technician_id: int | None = None
    note: str | None = None
    admin_comment: str | None = None
    admin_id: int | None = None
    created_at: datetime | None = None
    id: int | None = None


@dataclass(slots=True, frozen=True)
class TaskFilters:
    status: TaskStatus | None = None
    assigned_to_id: int | None = None
