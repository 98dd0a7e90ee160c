"""FastAPI dependencies shared by the route modules."""

from .auth import AdminActor, CurrentActor, StaffActor, get_current_actor, role_required
from .services import (
    MetricsRegistryDep,
    NotificationStoreDep,
    TaskServiceDep,
    TicketServiceDep,
    get_metrics_registry,
    get_notification_store,
    get_task_service,
    get_ticket_service,
)

__all__ = [
    "AdminActor",
    "CurrentActor",
    "MetricsRegistryDep",
    "NotificationStoreDep",
    "StaffActor",
    "TaskServiceDep",
    "TicketServiceDep",
    "get_current_actor",
    "get_metrics_registry",
    "get_notification_store",
    "get_task_service",
    "get_ticket_service",
    "role_required",
]
