from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from servicedesk.metrics import MetricsRegistry, metrics_registry
from servicedesk.notifications import NotificationStore
from servicedesk.tasks import TaskLifecycleService
from servicedesk.tickets import TicketLifecycleService


def _from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{label} is not configured")
    return service


async def get_ticket_service(request: Request) -> TicketLifecycleService:
    return _from_state(request, "ticket_service", "Ticket service")


async def get_task_service(request: Request) -> TaskLifecycleService:
    return _from_state(request, "task_service", "Task service")


async def get_notification_store(request: Request) -> NotificationStore:
    return _from_state(request, "notification_store", "Notification store")


async def get_metrics_registry(request: Request) -> MetricsRegistry:
    return getattr(request.app.state, "metrics_registry", None) or metrics_registry


TicketServiceDep = Annotated[TicketLifecycleService, Depends(get_ticket_service)]
TaskServiceDep = Annotated[TaskLifecycleService, Depends(get_task_service)]
NotificationStoreDep = Annotated[NotificationStore, Depends(get_notification_store)]
MetricsRegistryDep = Annotated[MetricsRegistry, Depends(get_metrics_registry)]
