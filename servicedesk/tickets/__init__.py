"""Ticket domain: models, status rules, persistence and the lifecycle service."""

from .audit import TicketAction, TicketAuditLog, TicketLogEntry
from .codes import TicketCodeGenerator
from .models import AttachmentMetadata, Ticket, TicketAttachment, TicketFilters
from .repository import TicketRepository
from .service import TicketLifecycleService
from .state import TicketPriority, TicketStatus, normalize_priority, parse_ticket_status

__all__ = [
    "AttachmentMetadata",
    "Ticket",
    "TicketAction",
    "TicketAttachment",
    "TicketAuditLog",
    "TicketCodeGenerator",
    "TicketFilters",
    "TicketLifecycleService",
    "TicketLogEntry",
    "TicketPriority",
    "TicketRepository",
    "TicketStatus",
    "normalize_priority",
    "parse_ticket_status",
]
