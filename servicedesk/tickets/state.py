from __future__ import annotations

from enum import Enum

from servicedesk.errors import InvalidInputError


class TicketStatus(str, Enum):
    """Supported states of a ticket.

    Any value may follow any other through an explicit status change; NEW is the only
    creation state, and RESOLVED/CLOSED end the employee-facing part of the lifecycle.
    """

    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


INITIAL_STATUS = TicketStatus.NEW
# employees may edit their ticket only before anyone has picked it up
EDITABLE_STATUS = TicketStatus.NEW
FEEDBACK_STATUS = TicketStatus.RESOLVED
LOCKABLE_STATUSES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})


def parse_ticket_status(value: object) -> TicketStatus:
    """Return the matching status or raise :class:`InvalidInputError`; matching is case-sensitive."""

    if isinstance(value, TicketStatus):
        return value
    try:
        return TicketStatus(value)
    except ValueError:
        raise InvalidInputError(f"Invalid ticket status: {value!r}") from None


def normalize_priority(value: object) -> TicketPriority:
    """Unknown or missing priorities fall back to MEDIUM."""

    if isinstance(value, TicketPriority):
        return value
    try:
        return TicketPriority(value)
    except ValueError:
        return TicketPriority.MEDIUM
