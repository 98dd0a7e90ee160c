"""SQLModel table definitions for the service desk data layer."""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class UserTable(SQLModel, table=True):
    """Directory of user accounts; maintained by the account service."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    full_name: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    role: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketTable(SQLModel, table=True):
    """Issue reports filed by employees."""

    __tablename__ = "tickets"

    id: int | None = Field(default=None, primary_key=True)
    ticket_code: str = Field(sa_column=Column(String(32), nullable=False, unique=True))
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    status: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    priority: str = Field(sa_column=Column(String(20), nullable=False))
    department_id: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    category_id: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    requester_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    assigned_to_id: int | None = Field(default=None, sa_column=Column(Integer, nullable=True, index=True))
    feedback_rating: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    feedback_comment: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    feedback_given_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketLogTable(SQLModel, table=True):
    """Append-only audit trail of ticket mutations."""

    __tablename__ = "ticket_logs"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    created_by_id: int = Field(sa_column=Column(Integer, nullable=False))
    action_type: str = Field(sa_column=Column(String(32), nullable=False))
    old_status: str | None = Field(default=None, sa_column=Column(String(20), nullable=True))
    new_status: str | None = Field(default=None, sa_column=Column(String(20), nullable=True))
    note: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketAttachmentTable(SQLModel, table=True):
    """Metadata of files stored for a ticket."""

    __tablename__ = "ticket_attachments"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    uploaded_by_id: int = Field(sa_column=Column(Integer, nullable=False))
    filename_original: str = Field(sa_column=Column(String(255), nullable=False))
    filename_stored: str = Field(sa_column=Column(String(255), nullable=False))
    mime_type: str | None = Field(default=None, sa_column=Column(String(127), nullable=True))
    size_bytes: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class NotificationTable(SQLModel, table=True):
    """User-facing messages produced by lifecycle transitions."""

    __tablename__ = "notifications"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    title: str = Field(sa_column=Column(String(255), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    link_url: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    is_read: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    read_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


class TaskTable(SQLModel, table=True):
    """Internal follow-up work assigned by administrators."""

    __tablename__ = "tasks"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    status: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    priority: str = Field(sa_column=Column(String(20), nullable=False))
    assigned_to: int | None = Field(default=None, sa_column=Column(Integer, nullable=True, index=True))
    created_by: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    due_date: date | None = Field(default=None, sa_column=Column(Date, nullable=True))
    technician_note: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    technician_rating: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TaskProgressTable(SQLModel, table=True):
    """Snapshot written on every status or note change of a task."""

    __tablename__ = "task_progress"

    id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    technician_id: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    status: str = Field(sa_column=Column(String(20), nullable=False))
    note: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    admin_comment: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    admin_id: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
