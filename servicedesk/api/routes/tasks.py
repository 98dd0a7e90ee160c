from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict

from servicedesk.dependencies import AdminActor, CurrentActor, TaskServiceDep
from servicedesk.tasks import TaskPriority, TaskStatus

router = APIRouter(prefix="/tasks", tags=["tasks"])


class TaskCreateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    assigned_to_id: int | None = None
    due_date: date | None = None
    technician_note: str | None = None


class TaskUpdateRequest(BaseModel):
    """Only the fields present in the request body are applied.

    Unknown keys are kept so the lifecycle service can reject them.
    """

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    assigned_to_id: int | None = None
    due_date: date | None = None
    technician_note: str | None = None


class TaskRatingRequest(BaseModel):
    rating: int | None = None


class AdminCommentRequest(BaseModel):
    admin_comment: str | None = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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


class TaskProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    task_id: int
    status: TaskStatus
    technician_id: int | None
    note: str | None
    admin_comment: str | None
    admin_id: int | None
    created_at: datetime


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    service: TaskServiceDep,
    actor: CurrentActor,
    status_filter: str | None = Query(default=None, alias="status"),
    assigned_to_id: int | None = Query(default=None, alias="assigned_to"),
) -> list[TaskResponse]:
    tasks = await service.list_tasks(actor, status=status_filter, assigned_to_id=assigned_to_id)
    return [TaskResponse.model_validate(task) for task in tasks]


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(payload: TaskCreateRequest, service: TaskServiceDep, actor: AdminActor) -> TaskResponse:
    task = await service.create_task(actor, **payload.model_dump())
    return TaskResponse.model_validate(task)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, service: TaskServiceDep, actor: CurrentActor) -> TaskResponse:
    task = await service.get_task(task_id, actor)
    return TaskResponse.model_validate(task)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int, payload: TaskUpdateRequest, service: TaskServiceDep, actor: CurrentActor
) -> TaskResponse:
    changes = payload.model_dump(exclude_unset=True)
    changes.update(payload.model_extra or {})
    task = await service.update_task(task_id, actor, changes)
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/rating", response_model=TaskResponse)
async def rate_task(
    task_id: int, payload: TaskRatingRequest, service: TaskServiceDep, actor: AdminActor
) -> TaskResponse:
    task = await service.rate_task(task_id, actor, payload.rating)
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, service: TaskServiceDep, actor: AdminActor) -> None:
    await service.delete_task(task_id, actor)


@router.get("/{task_id}/progress", response_model=list[TaskProgressResponse])
async def list_task_progress(
    task_id: int, service: TaskServiceDep, actor: CurrentActor
) -> list[TaskProgressResponse]:
    entries = await service.list_progress(task_id, actor)
    return [TaskProgressResponse.model_validate(entry) for entry in entries]


@router.put("/{task_id}/progress/{progress_id}/admin-comment", response_model=TaskProgressResponse)
async def comment_on_task_progress(
    task_id: int,
    progress_id: int,
    payload: AdminCommentRequest,
    service: TaskServiceDep,
    actor: AdminActor,
) -> TaskProgressResponse:
    entry = await service.comment_on_progress(task_id, progress_id, actor, payload.admin_comment)
    return TaskProgressResponse.model_validate(entry)
