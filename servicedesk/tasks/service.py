from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.logging import operation_context
from servicedesk.errors import InvalidInputError, LockedError, NotFoundError, PermissionDeniedError
from servicedesk.metrics import MetricsRegistry, track_operation
from servicedesk.notifications import NotificationDispatcher, links
from servicedesk.users import Actor, RecipientResolver, Role
from servicedesk.validation import optional_text, rating_value, required_text

from .models import Task, TaskFilters, TaskProgressEntry
from .progress import TaskProgressLog
from .repository import TaskRepository
from .state import INITIAL_TASK_STATUS, RATABLE_STATUS, normalize_task_priority, parse_task_status

logger = logging.getLogger(__name__)

ADMIN_FIELDS = frozenset(
    {"title", "description", "status", "priority", "assigned_to_id", "due_date", "technician_note"}
)
TECHNICIAN_FIELDS = frozenset({"status", "technician_note"})


class TaskLifecycleService:
    """Orchestrates internal task mutations.

    Administrators may change anything on an unrated task; technicians may only move
    the status and note of tasks assigned to them. Every status or note change leaves a
    progress entry written in the same transaction as the task update. Once rated, a
    task is frozen.
    """

    def __init__(
        self,
        repository: TaskRepository,
        progress_log: TaskProgressLog,
        dispatcher: NotificationDispatcher,
        recipients: RecipientResolver,
        *,
        registry: MetricsRegistry | None = None,
    ) -> None:
        self._repository = repository
        self._progress = progress_log
        self._dispatcher = dispatcher
        self._recipients = recipients
        self._registry = registry

    async def get_task(self, task_id: int, actor: Actor) -> Task:
        self._ensure_staff(actor)
        task = await self._repository.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    async def list_tasks(
        self, actor: Actor, *, status: str | None = None, assigned_to_id: int | None = None
    ) -> list[Task]:
        self._ensure_staff(actor)
        filters = TaskFilters(
            status=parse_task_status(status) if status is not None else None,
            assigned_to_id=assigned_to_id,
        )
        return await self._repository.list_tasks(filters)

    async def list_progress(self, task_id: int, actor: Actor) -> list[TaskProgressEntry]:
        await self.get_task(task_id, actor)
        return await self._progress.list_for_task(task_id)

    async def create_task(
        self,
        actor: Actor,
        *,
        title: str | None,
        description: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        assigned_to_id: int | None = None,
        due_date: date | None = None,
        technician_note: str | None = None,
    ) -> Task:
        with self._tracked("create", actor):
            self._ensure_admin(actor, "Only administrators can create tasks")
            values = {
                "title": required_text(title, "Title"),
                "description": optional_text(description),
                "status": INITIAL_TASK_STATUS if status is None else parse_task_status(status),
                "priority": normalize_task_priority(priority),
                "assigned_to_id": _assignee(assigned_to_id),
                "created_by_id": actor.id,
                "due_date": due_date,
                "technician_note": optional_text(technician_note),
            }
            async with self._repository.transaction() as session:
                task = await self._repository.insert_task(session, **values)
            logger.info("Task %s created by user %s", task.id, actor.id)

            await self._dispatcher.notify(
                task.assigned_to_id,
                "New task assigned to you",
                f'Task "{task.title}" has been assigned to you.',
                links.technician_task(task.id),
            )
            return task

    async def update_task(self, task_id: int, actor: Actor, changes: Mapping[str, Any]) -> Task:
        """Apply ``changes`` (only the keys present) through the actor's update path."""

        unknown = set(changes) - ADMIN_FIELDS
        if unknown:
            raise InvalidInputError(f"Unsupported task fields: {', '.join(sorted(unknown))}")
        if actor.is_admin:
            return await self._admin_update(task_id, actor, changes)
        if actor.is_technician:
            return await self._technician_update(task_id, actor, changes)
        raise PermissionDeniedError("Not allowed to update this task")

    async def rate_task(self, task_id: int, actor: Actor, rating: object) -> Task:
        with self._tracked("rate", actor):
            self._ensure_admin(actor, "Only administrators can rate tasks")
            async with self._repository.transaction() as session:
                current = await self._load(session, task_id)
                if current.technician_rating is not None:
                    raise LockedError("This task has already been rated")
                if current.status is not RATABLE_STATUS:
                    raise PermissionDeniedError("Only tasks in status DONE can be rated")
                score = rating_value(rating)
                task = await self._repository.update_task(session, task_id, technician_rating=score)
            logger.info("Task %s rated %s/5 by user %s", task_id, score, actor.id)

            await self._dispatcher.notify(
                task.assigned_to_id,
                "Task rated",
                f'Task "{task.title}" was rated {score}/5.',
                links.technician_task(task.id),
            )
            return task

    async def delete_task(self, task_id: int, actor: Actor) -> None:
        with self._tracked("delete", actor):
            self._ensure_admin(actor, "Only administrators can delete tasks")
            async with self._repository.transaction() as session:
                await self._load_unlocked(session, task_id)
                await self._repository.delete_task(session, task_id)
            logger.info("Task %s deleted by user %s", task_id, actor.id)

    async def comment_on_progress(
        self, task_id: int, progress_id: int, actor: Actor, comment: str | None
    ) -> TaskProgressEntry:
        with self._tracked("comment_on_progress", actor):
            self._ensure_admin(actor, "Only administrators can comment on progress")
            async with self._repository.transaction() as session:
                task = await self._load_unlocked(session, task_id)
                entry = await self._progress.annotate(
                    session,
                    progress_id,
                    task_id=task_id,
                    admin_id=actor.id,
                    comment=optional_text(comment),
                )
                if entry is None:
                    raise NotFoundError(f"Progress entry {progress_id} not found on task {task_id}")

            await self._dispatcher.notify(
                task.assigned_to_id,
                "Admin commented on task progress",
                f'A new admin comment was added on task "{task.title}".',
                links.technician_task(task.id),
            )
            return entry

    # -- update paths ----------------------------------------------------------------

    async def _admin_update(self, task_id: int, actor: Actor, changes: Mapping[str, Any]) -> Task:
        with self._tracked("admin_update", actor):
            values = self._clean(changes)
            records_progress = "status" in values or "technician_note" in values

            async with self._repository.transaction() as session:
                current = await self._load_unlocked(session, task_id)
                task = await self._repository.update_task(session, task_id, **values) if values else current
                if records_progress:
                    await self._progress.append(
                        TaskProgressEntry(task_id=task_id, status=task.status, note=values.get("technician_note")),
                        session=session,
                    )
            logger.info("Task %s updated by admin %s (%s)", task_id, actor.id, ", ".join(sorted(values)) or "no fields")

            reassigned = "assigned_to_id" in values and task.assigned_to_id != current.assigned_to_id
            fan_out = []
            if reassigned or records_progress:
                fan_out.append(
                    self._dispatcher.notify(
                        task.assigned_to_id,
                        "Task assigned/updated",
                        f'Task "{task.title}" has been assigned or updated.',
                        links.technician_task(task.id),
                    )
                )
            if records_progress:
                fan_out.append(
                    self._dispatcher.notify_resolved(
                        self._recipients.admin_ids,
                        "Task updated",
                        f'Task "{task.title}" was updated (status or note).',
                        links.admin_task(task.id),
                    )
                )
            await asyncio.gather(*fan_out)
            return task

    async def _technician_update(self, task_id: int, actor: Actor, changes: Mapping[str, Any]) -> Task:
        with self._tracked("technician_update", actor):
            forbidden = set(changes) - TECHNICIAN_FIELDS
            if forbidden:
                raise PermissionDeniedError(
                    f"Technicians may only change status and technician_note, not {', '.join(sorted(forbidden))}"
                )
            values = self._clean(changes)

            async with self._repository.transaction() as session:
                current = await self._load(session, task_id)
                if current.assigned_to_id != actor.id:
                    raise PermissionDeniedError("Not allowed to update this task")
                if current.is_locked:
                    raise LockedError("This task has been rated and can no longer be changed")
                if not values:
                    return current
                task = await self._repository.update_task(session, task_id, **values)
                await self._progress.append(
                    TaskProgressEntry(
                        task_id=task_id,
                        technician_id=actor.id,
                        status=task.status,
                        note=values.get("technician_note"),
                    ),
                    session=session,
                )
            logger.info("Task %s progress updated by technician %s", task_id, actor.id)

            await self._dispatcher.notify_resolved(
                self._recipients.admin_ids,
                "Task progress updated",
                f'Task "{task.title}" was updated by a technician.',
                links.admin_task(task.id),
            )
            return task

    # -- helpers ---------------------------------------------------------------------

    @contextmanager
    def _tracked(self, operation: str, actor: Actor) -> Iterator[None]:
        with operation_context("task", operation, actor.id), track_operation("task", operation, self._registry):
            yield

    @staticmethod
    def _clean(changes: Mapping[str, Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name, value in changes.items():
            if name == "title":
                values[name] = required_text(value, "Title")
            elif name == "status":
                values[name] = parse_task_status(value)
            elif name == "priority":
                values[name] = normalize_task_priority(value)
            elif name == "assigned_to_id":
                values[name] = _assignee(value)
            elif name in ("description", "technician_note"):
                values[name] = optional_text(value)
            else:
                values[name] = value
        return values

    @staticmethod
    def _ensure_admin(actor: Actor, message: str) -> None:
        if not actor.is_admin:
            raise PermissionDeniedError(message)

    @staticmethod
    def _ensure_staff(actor: Actor) -> None:
        if actor.role is Role.EMPLOYEE:
            raise PermissionDeniedError("Tasks are only visible to staff")

    async def _load(self, session: AsyncSession, task_id: int) -> Task:
        task = await self._repository.lock_task(session, task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    async def _load_unlocked(self, session: AsyncSession, task_id: int) -> Task:
        task = await self._load(session, task_id)
        if task.is_locked:
            raise LockedError("This task has been rated and can no longer be changed")
        return task


def _assignee(value: object) -> int | None:
    # 0 and None both mean "unassigned"
    if value is None or value == 0:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInputError("assigned_to_id must be a positive user id")
    return value
