"""Database models and session utilities."""

from .models import (
    NotificationTable,
    TaskProgressTable,
    TaskTable,
    TicketAttachmentTable,
    TicketLogTable,
    TicketTable,
    UserTable,
)
from .session import create_engine, create_session_factory, ensure_schema, unit_of_work

__all__ = [
    "NotificationTable",
    "TaskProgressTable",
    "TaskTable",
    "TicketAttachmentTable",
    "TicketLogTable",
    "TicketTable",
    "UserTable",
    "create_engine",
    "create_session_factory",
    "ensure_schema",
    "unit_of_work",
]
