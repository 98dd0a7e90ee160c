"""Internal task domain: admin-assigned work items with technician progress."""

from .models import Task, TaskFilters, TaskProgressEntry
from .progress import TaskProgressLog
from .repository import TaskRepository
from .service import TaskLifecycleService
from .state import TaskPriority, TaskStatus, normalize_task_priority, parse_task_status

__all__ = [
    "Task",
    "TaskFilters",
    "TaskLifecycleService",
    "TaskPriority",
    "TaskProgressEntry",
    "TaskProgressLog",
    "TaskRepository",
    "TaskStatus",
    "normalize_task_priority",
    "parse_task_status",
]
