from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from conftest import ADMIN, EMPLOYEE, OTHER_TECHNICIAN, SECOND_ADMIN, TECHNICIAN
from servicedesk.errors import (
    DependencyFailure,
    InvalidInputError,
    LockedError,
    NotFoundError,
    PermissionDeniedError,
)
from servicedesk.tasks import TaskPriority, TaskRepository, TaskStatus


async def _create(service, **overrides):
    values = {"title": "Replace projector lamp", "assigned_to_id": TECHNICIAN.id, "priority": "HIGH"}
    values.update(overrides)
    return await service.create_task(ADMIN, **values)


async def _titles(store, user_id):
    return [item.title for item in await store.list_for_user(user_id)]


async def _done_task(service):
    task = await _create(service)
    return await service.update_task(task.id, TECHNICIAN, {"status": "DONE"})


@pytest.mark.asyncio
async def test_create_task_defaults_and_assignee_notification(task_service, notification_store):
    task = await _create(task_service, due_date=date(2026, 11, 2))

    assert task.status is TaskStatus.OPEN
    assert task.priority is TaskPriority.HIGH
    assert task.created_by_id == ADMIN.id
    assert task.due_date == date(2026, 11, 2)
    notes = await notification_store.list_for_user(TECHNICIAN.id)
    assert [n.title for n in notes] == ["New task assigned to you"]
    assert notes[0].message == 'Task "Replace projector lamp" has been assigned to you.'
    assert notes[0].link_url == f"/technician/tasks/{task.id}"
    assert await task_service.list_progress(task.id, ADMIN) == []


@pytest.mark.asyncio
async def test_create_task_validation(task_service):
    with pytest.raises(PermissionDeniedError):
        await task_service.create_task(TECHNICIAN, title="Self assigned")
    with pytest.raises(InvalidInputError):
        await _create(task_service, title=" ")
    with pytest.raises(InvalidInputError):
        await _create(task_service, status="WAITING")

    unknown_priority = await _create(task_service, priority="CRITICAL", assigned_to_id=None)
    assert unknown_priority.priority is TaskPriority.MEDIUM
    assert unknown_priority.assigned_to_id is None


@pytest.mark.asyncio
async def test_technician_update_writes_progress_and_notifies_admins(task_service, notification_store):
    task = await _create(task_service)

    updated = await task_service.update_task(
        task.id, TECHNICIAN, {"status": "IN_PROGRESS", "technician_note": "Lamp ordered"}
    )

    assert updated.status is TaskStatus.IN_PROGRESS
    assert updated.technician_note == "Lamp ordered"
    progress = await task_service.list_progress(task.id, ADMIN)
    assert len(progress) == 1
    assert progress[0].technician_id == TECHNICIAN.id
    assert progress[0].status is TaskStatus.IN_PROGRESS
    assert progress[0].note == "Lamp ordered"
    for admin in (ADMIN, SECOND_ADMIN):
        assert await _titles(notification_store, admin.id) == ["Task progress updated"]


@pytest.mark.asyncio
async def test_technician_update_is_constrained(task_service):
    task = await _create(task_service)

    with pytest.raises(PermissionDeniedError):
        await task_service.update_task(task.id, TECHNICIAN, {"title": "Renamed"})
    with pytest.raises(PermissionDeniedError):
        await task_service.update_task(task.id, OTHER_TECHNICIAN, {"status": "DONE"})
    with pytest.raises(PermissionDeniedError):
        await task_service.update_task(task.id, EMPLOYEE, {"status": "DONE"})
    with pytest.raises(InvalidInputError):
        await task_service.update_task(task.id, TECHNICIAN, {"status": "done"})

    assert await task_service.list_progress(task.id, ADMIN) == []


@pytest.mark.asyncio
async def test_technician_update_without_fields_is_a_no_op(task_service, notification_store):
    task = await _create(task_service)

    unchanged = await task_service.update_task(task.id, TECHNICIAN, {})

    assert unchanged.status is TaskStatus.OPEN
    assert await task_service.list_progress(task.id, ADMIN) == []
    assert await notification_store.list_for_user(ADMIN.id) == []


@pytest.mark.asyncio
async def test_admin_reassignment_notifies_new_assignee_only(task_service, notification_store):
    task = await _create(task_service)

    updated = await task_service.update_task(
        task.id, ADMIN, {"assigned_to_id": OTHER_TECHNICIAN.id, "priority": "LOW"}
    )

    assert updated.assigned_to_id == OTHER_TECHNICIAN.id
    assert updated.priority is TaskPriority.LOW
    assert await task_service.list_progress(task.id, ADMIN) == []
    assert await _titles(notification_store, OTHER_TECHNICIAN.id) == ["Task assigned/updated"]
    assert await notification_store.list_for_user(ADMIN.id) == []


@pytest.mark.asyncio
async def test_admin_status_change_writes_progress_without_technician(task_service, notification_store):
    task = await _create(task_service)

    updated = await task_service.update_task(task.id, ADMIN, {"status": "CANCELLED"})

    assert updated.status is TaskStatus.CANCELLED
    progress = await task_service.list_progress(task.id, ADMIN)
    assert len(progress) == 1
    assert progress[0].technician_id is None
    assert progress[0].note is None
    assert await _titles(notification_store, SECOND_ADMIN.id) == ["Task updated"]
    assert "Task assigned/updated" in await _titles(notification_store, TECHNICIAN.id)


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(task_service):
    task = await _create(task_service)

    with pytest.raises(InvalidInputError):
        await task_service.update_task(task.id, ADMIN, {"technician_rating": 5})


@pytest.mark.asyncio
async def test_update_unknown_task(task_service):
    with pytest.raises(NotFoundError):
        await task_service.update_task(404, ADMIN, {"status": "DONE"})


@pytest.mark.asyncio
async def test_rating_requires_done_and_is_set_once(task_service, notification_store):
    task = await _create(task_service)

    with pytest.raises(PermissionDeniedError):
        await task_service.rate_task(task.id, ADMIN, 4)

    await task_service.update_task(task.id, TECHNICIAN, {"status": "DONE"})
    with pytest.raises(PermissionDeniedError):
        await task_service.rate_task(task.id, TECHNICIAN, 4)
    with pytest.raises(InvalidInputError):
        await task_service.rate_task(task.id, ADMIN, 9)

    rated = await task_service.rate_task(task.id, ADMIN, 4)
    assert rated.technician_rating == 4
    assert "Task rated" in await _titles(notification_store, TECHNICIAN.id)

    with pytest.raises(LockedError):
        await task_service.rate_task(task.id, ADMIN, 2)
    assert (await task_service.get_task(task.id, ADMIN)).technician_rating == 4


@pytest.mark.asyncio
async def test_rated_task_is_frozen(task_service):
    task = await _done_task(task_service)
    entry = (await task_service.list_progress(task.id, ADMIN))[0]
    await task_service.rate_task(task.id, ADMIN, 5)

    with pytest.raises(LockedError):
        await task_service.update_task(task.id, TECHNICIAN, {"technician_note": "One more"})
    with pytest.raises(LockedError):
        await task_service.update_task(task.id, ADMIN, {"status": "OPEN"})
    with pytest.raises(LockedError):
        await task_service.comment_on_progress(task.id, entry.id, ADMIN, "Nice work")
    with pytest.raises(LockedError):
        await task_service.delete_task(task.id, ADMIN)

    assert len(await task_service.list_progress(task.id, ADMIN)) == 1


@pytest.mark.asyncio
async def test_comment_on_progress_replaces_annotation(task_service, notification_store):
    task = await _done_task(task_service)
    entry = (await task_service.list_progress(task.id, ADMIN))[0]

    first = await task_service.comment_on_progress(task.id, entry.id, ADMIN, "Check the fan too")
    second = await task_service.comment_on_progress(task.id, entry.id, SECOND_ADMIN, "Fan is fine")

    assert first.admin_comment == "Check the fan too"
    assert second.admin_comment == "Fan is fine"
    assert second.admin_id == SECOND_ADMIN.id
    assert second.note == entry.note
    assert second.status is entry.status
    stored = (await task_service.list_progress(task.id, ADMIN))[0]
    assert stored.admin_comment == "Fan is fine"
    assert (await _titles(notification_store, TECHNICIAN.id)).count("Admin commented on task progress") == 2

    cleared = await task_service.comment_on_progress(task.id, entry.id, ADMIN, "   ")
    assert cleared.admin_comment is None


@pytest.mark.asyncio
async def test_comment_on_progress_checks_ownership(task_service):
    task = await _done_task(task_service)
    other = await _done_task(task_service)
    foreign_entry = (await task_service.list_progress(other.id, ADMIN))[0]

    with pytest.raises(NotFoundError):
        await task_service.comment_on_progress(task.id, foreign_entry.id, ADMIN, "Wrong task")
    with pytest.raises(NotFoundError):
        await task_service.comment_on_progress(task.id, 999, ADMIN, "Missing")
    with pytest.raises(PermissionDeniedError):
        await task_service.comment_on_progress(task.id, foreign_entry.id, TECHNICIAN, "Not admin")


@pytest.mark.asyncio
async def test_delete_task_removes_progress(task_service):
    task = await _done_task(task_service)

    with pytest.raises(PermissionDeniedError):
        await task_service.delete_task(task.id, TECHNICIAN)
    await task_service.delete_task(task.id, ADMIN)

    with pytest.raises(NotFoundError):
        await task_service.get_task(task.id, ADMIN)
    with pytest.raises(NotFoundError):
        await task_service.delete_task(task.id, ADMIN)


@pytest.mark.asyncio
async def test_list_tasks_filters_and_visibility(task_service):
    first = await _create(task_service)
    second = await _create(task_service, title="Audit licences", assigned_to_id=OTHER_TECHNICIAN.id)
    await task_service.update_task(second.id, OTHER_TECHNICIAN, {"status": "IN_PROGRESS"})

    assert [t.id for t in await task_service.list_tasks(ADMIN, status="IN_PROGRESS")] == [second.id]
    assert [t.id for t in await task_service.list_tasks(TECHNICIAN, assigned_to_id=TECHNICIAN.id)] == [first.id]
    with pytest.raises(PermissionDeniedError):
        await task_service.list_tasks(EMPLOYEE)
    with pytest.raises(InvalidInputError):
        await task_service.list_tasks(ADMIN, status="ARCHIVED")


async def _failing_insert(session, entry):
    raise OperationalError("INSERT INTO task_progress", {}, Exception("disk I/O error"))


@pytest.mark.asyncio
async def test_failed_progress_write_rolls_back_task_update(
    task_service, progress_log, notification_store, monkeypatch
):
    task = await _create(task_service)
    monkeypatch.setattr(progress_log, "_insert", _failing_insert)

    with pytest.raises(DependencyFailure):
        await task_service.update_task(task.id, TECHNICIAN, {"status": "DONE", "technician_note": "Lamp fitted"})

    monkeypatch.undo()
    stored = await task_service.get_task(task.id, ADMIN)
    assert stored.status is TaskStatus.OPEN
    assert stored.technician_note is None
    assert await task_service.list_progress(task.id, ADMIN) == []
    assert await notification_store.list_for_user(ADMIN.id) == []


@pytest.mark.asyncio
async def test_repository_write_to_missing_task_raises_not_found(session_factory):
    repository = TaskRepository(session_factory)

    with pytest.raises(NotFoundError):
        async with repository.transaction() as session:
            await repository.update_task(session, 404, status=TaskStatus.DONE)
