from datetime import datetime, timezone

import pytest

from servicedesk.errors import InvalidInputError
from servicedesk.tasks import TaskPriority, TaskStatus, normalize_task_priority, parse_task_status
from servicedesk.tickets import TicketPriority, TicketStatus, normalize_priority, parse_ticket_status
from servicedesk.tickets.models import Ticket

NOW = datetime(2026, 2, 1, tzinfo=timezone.utc)


def _ticket(status: TicketStatus, rating: int | None) -> Ticket:
    return Ticket(
        id=1,
        ticket_code="ICT-2026-1234",
        title="Title",
        description=None,
        status=status,
        priority=TicketPriority.MEDIUM,
        department_id=None,
        category_id=None,
        requester_id=42,
        assigned_to_id=None,
        feedback_rating=rating,
        feedback_comment=None,
        feedback_given_at=None,
        created_at=NOW,
        updated_at=NOW,
    )


def test_parse_ticket_status_accepts_every_status():
    for status in TicketStatus:
        assert parse_ticket_status(status.value) is status


def test_parse_ticket_status_is_case_sensitive():
    with pytest.raises(InvalidInputError):
        parse_ticket_status("in_progress")
    with pytest.raises(InvalidInputError):
        parse_ticket_status(None)


def test_normalize_priority_falls_back_to_medium():
    assert normalize_priority("CRITICAL") is TicketPriority.CRITICAL
    assert normalize_priority("ASAP") is TicketPriority.MEDIUM
    assert normalize_priority(None) is TicketPriority.MEDIUM


def test_ticket_lock_needs_rating_and_end_state():
    assert _ticket(TicketStatus.RESOLVED, 4).is_locked
    assert _ticket(TicketStatus.CLOSED, 4).is_locked
    assert not _ticket(TicketStatus.RESOLVED, None).is_locked
    # a rated ticket reopened by an admin before the lock existed stays editable
    assert not _ticket(TicketStatus.IN_PROGRESS, 4).is_locked


def test_task_status_and_priority_rules():
    assert parse_task_status("CANCELLED") is TaskStatus.CANCELLED
    with pytest.raises(InvalidInputError):
        parse_task_status("CLOSED")
    assert normalize_task_priority("CRITICAL") is TaskPriority.MEDIUM
    assert normalize_task_priority(TaskPriority.LOW) is TaskPriority.LOW
