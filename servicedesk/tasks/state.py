from __future__ import annotations

from enum import Enum

from servicedesk.errors import InvalidInputError


class TaskStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


INITIAL_TASK_STATUS = TaskStatus.OPEN
RATABLE_STATUS = TaskStatus.DONE


def parse_task_status(value: object) -> TaskStatus:
    """Case-sensitive lookup; unknown values raise :class:`InvalidInputError`."""

    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(value)
    except ValueError:
        raise InvalidInputError(f"Invalid task status: {value!r}") from None


def normalize_task_priority(value: object) -> TaskPriority:
    if isinstance(value, TaskPriority):
        return value
    try:
        return TaskPriority(value)
    except ValueError:
        return TaskPriority.MEDIUM
