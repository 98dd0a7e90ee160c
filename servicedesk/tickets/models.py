from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .state import LOCKABLE_STATUSES, TicketPriority, TicketStatus


@dataclass(slots=True)
class Ticket:
    """Issue report owned by a requester and worked by an assignee."""

    id: int
    ticket_code: str
    title: str
    description: str | None
    status: TicketStatus
    priority: TicketPriority
    department_id: int | None
    category_id: int | None
    requester_id: int
    assigned_to_id: int | None
    feedback_rating: int | None
    feedback_comment: str | None
    feedback_given_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_locked(self) -> bool:
        """A rated ticket in a resolved or closed state accepts no further mutation."""

        return self.feedback_rating is not None and self.status in LOCKABLE_STATUSES


@dataclass(slots=True, frozen=True)
class AttachmentMetadata:
    """What the file storage returned for an uploaded file."""

    filename_original: str
    filename_stored: str
    mime_type: str | None
    size_bytes: int


@dataclass(slots=True)
class TicketAttachment:
    id: int
    ticket_id: int
    uploaded_by_id: int
    filename_original: str
    filename_stored: str
    mime_type: str | None
    size_bytes: int
    created_at: datetime


@dataclass(slots=True, frozen=True)
class TicketFilters:
    status: TicketStatus | None = None
    department_id: int | None = None
    category_id: int | None = None
    requester_id: int | None = None
    assigned_to_id: int | None = None
