from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.logging import operation_context
from servicedesk.db.session import utcnow
from servicedesk.errors import InvalidInputError, LockedError, NotFoundError, PermissionDeniedError
from servicedesk.metrics import MetricsRegistry, track_operation
from servicedesk.notifications import NotificationDispatcher, links
from servicedesk.users import Actor, RecipientResolver, Role
from servicedesk.validation import optional_text, positive_id, rating_value, required_text

from .audit import TicketAction, TicketAuditLog, TicketLogEntry
from .codes import TicketCodeGenerator
from .models import AttachmentMetadata, Ticket, TicketAttachment, TicketFilters
from .repository import TicketRepository
from .state import (
    EDITABLE_STATUS,
    FEEDBACK_STATUS,
    INITIAL_STATUS,
    TicketStatus,
    normalize_priority,
    parse_ticket_status,
)

logger = logging.getLogger(__name__)


class TicketLifecycleService:
    """Orchestrates ticket mutations.

    Every mutation checks the actor against the ticket, persists the change and its
    audit entry in one transaction, and only then fans out notifications. Notification
    delivery is best-effort and never changes the outcome of the operation.
    """

    def __init__(
        self,
        repository: TicketRepository,
        audit_log: TicketAuditLog,
        dispatcher: NotificationDispatcher,
        recipients: RecipientResolver,
        *,
        code_generator: TicketCodeGenerator | None = None,
        registry: MetricsRegistry | None = None,
    ) -> None:
        self._repository = repository
        self._audit_log = audit_log
        self._dispatcher = dispatcher
        self._recipients = recipients
        self._codes = code_generator or TicketCodeGenerator()
        self._registry = registry

    # -- queries ---------------------------------------------------------------------

    async def get_ticket(self, ticket_id: int, actor: Actor) -> Ticket:
        ticket = await self._repository.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        if actor.role is Role.EMPLOYEE and ticket.requester_id != actor.id:
            raise PermissionDeniedError("You can only view your own tickets")
        return ticket

    async def list_tickets(
        self,
        actor: Actor,
        *,
        status: str | None = None,
        department_id: int | None = None,
        category_id: int | None = None,
        mine: bool = False,
        assigned: bool = False,
    ) -> list[Ticket]:
        """List tickets visible to ``actor``; employees only ever see their own."""

        filters = TicketFilters(
            status=parse_ticket_status(status) if status is not None else None,
            department_id=department_id,
            category_id=category_id,
            requester_id=actor.id if mine or actor.role is Role.EMPLOYEE else None,
            assigned_to_id=actor.id if assigned and actor.is_technician else None,
        )
        return await self._repository.list_tickets(filters)

    async def list_logs(self, ticket_id: int, actor: Actor) -> list[TicketLogEntry]:
        await self.get_ticket(ticket_id, actor)
        return await self._audit_log.list_for_ticket(ticket_id)

    async def list_attachments(self, ticket_id: int, actor: Actor) -> list[TicketAttachment]:
        await self.get_ticket(ticket_id, actor)
        return await self._repository.list_attachments(ticket_id)

    # -- mutations -------------------------------------------------------------------

    async def create_ticket(
        self,
        actor: Actor,
        *,
        title: str | None,
        description: str | None = None,
        priority: str | None = None,
        department_id: int | None = None,
        category_id: int | None = None,
        requester_id: int | None = None,
    ) -> Ticket:
        with self._tracked("create", actor):
            title = required_text(title, "Title")
            # only admins may file on someone else's behalf
            requester = requester_id if actor.is_admin and requester_id else actor.id

            async with self._repository.transaction() as session:
                code = await self._codes.generate(lambda candidate: self._repository.code_exists(session, candidate))
                ticket = await self._repository.insert_ticket(
                    session,
                    ticket_code=code,
                    title=title,
                    description=optional_text(description),
                    status=INITIAL_STATUS,
                    priority=normalize_priority(priority),
                    requester_id=requester,
                    department_id=department_id,
                    category_id=category_id,
                )
                await self._record(
                    session,
                    ticket,
                    actor,
                    TicketAction.CREATED,
                    new_status=ticket.status,
                    note="Ticket created",
                )
            logger.info("Ticket %s (%s) created by user %s", ticket.id, ticket.ticket_code, actor.id)

            await asyncio.gather(
                self._dispatcher.notify(
                    ticket.requester_id,
                    "Ticket created",
                    f"Your ticket {ticket.ticket_code} was created.",
                    links.employee_ticket(ticket.id),
                ),
                self._dispatcher.notify_resolved(
                    self._recipients.admin_ids,
                    "New ticket created",
                    f"Ticket {ticket.ticket_code} was created by {actor.display_name}.",
                    links.admin_ticket(ticket.id),
                ),
            )
            return ticket

    async def change_status(self, ticket_id: int, actor: Actor, new_status: str | TicketStatus) -> Ticket:
        with self._tracked("change_status", actor):
            status = parse_ticket_status(new_status)

            async with self._repository.transaction() as session:
                current = await self._load_unlocked(session, ticket_id)
                if not (actor.is_admin or (actor.is_technician and current.assigned_to_id == actor.id)):
                    raise PermissionDeniedError("You are not allowed to change the status of this ticket")
                updated = await self._repository.update_status(session, ticket_id, status)
                await self._record(
                    session,
                    updated,
                    actor,
                    TicketAction.STATUS_CHANGED,
                    old_status=current.status,
                    new_status=status,
                )
            logger.info("Ticket %s status %s -> %s by user %s", ticket_id, current.status.value, status.value, actor.id)

            await self._dispatcher.notify(
                updated.requester_id,
                "Ticket status updated",
                f"Ticket {updated.ticket_code} is now {status.value} (updated by {actor.display_name}).",
                links.employee_ticket(updated.id),
            )
            return updated

    async def assign(self, ticket_id: int, actor: Actor, technician_id: int | None) -> Ticket:
        with self._tracked("assign", actor):
            if not actor.is_admin:
                raise PermissionDeniedError("Only administrators can assign tickets")
            technician_id = positive_id(technician_id, "assigned_to_id")

            async with self._repository.transaction() as session:
                current = await self._load_unlocked(session, ticket_id)
                updated = await self._repository.assign(session, ticket_id, technician_id)
                await self._record(
                    session,
                    updated,
                    actor,
                    TicketAction.ASSIGNED,
                    old_status=current.status,
                    new_status=updated.status,
                    note=f"Assigned to user ID {technician_id}",
                )
            logger.info("Ticket %s assigned to user %s by user %s", ticket_id, technician_id, actor.id)

            await asyncio.gather(
                self._dispatcher.notify(
                    updated.requester_id,
                    "Ticket assigned",
                    f"Ticket {updated.ticket_code} was assigned to a technician.",
                    links.employee_ticket(updated.id),
                ),
                self._dispatcher.notify(
                    updated.assigned_to_id,
                    "New ticket assigned to you",
                    f"You have been assigned to ticket {updated.ticket_code}.",
                    links.technician_ticket(updated.id),
                ),
            )
            return updated

    async def update_by_employee(
        self,
        ticket_id: int,
        actor: Actor,
        *,
        title: str | None,
        description: str | None,
        priority: str | None = None,
        department_id: int | None = None,
        category_id: int | None = None,
    ) -> Ticket:
        """Let the requester rewrite their ticket while nobody has started on it.

        Title and description are required. Priority, department and category keep
        their current values when passed as ``None``.
        """

        with self._tracked("update_by_employee", actor):
            async with self._repository.transaction() as session:
                current = await self._load(session, ticket_id)
                if current.requester_id != actor.id:
                    raise PermissionDeniedError("You can only edit your own tickets")
                if current.status is not EDITABLE_STATUS:
                    raise PermissionDeniedError("You can only edit tickets while they are NEW")
                clean_title = required_text(title, "Title")
                clean_description = required_text(description, "Description")

                updated = await self._repository.update_details(
                    session,
                    ticket_id,
                    title=clean_title,
                    description=clean_description,
                    priority=current.priority if priority is None else normalize_priority(priority),
                    department_id=current.department_id if department_id is None else department_id,
                    category_id=current.category_id if category_id is None else category_id,
                )
                await self._record(
                    session,
                    updated,
                    actor,
                    TicketAction.UPDATED_BY_EMPLOYEE,
                    note="Employee updated ticket details while status was NEW.",
                )
            logger.info("Ticket %s edited by requester %s", ticket_id, actor.id)
            return updated

    async def add_feedback(
        self, ticket_id: int, actor: Actor, rating: object, comment: str | None = None
    ) -> Ticket:
        with self._tracked("add_feedback", actor):
            async with self._repository.transaction() as session:
                current = await self._load(session, ticket_id)
                if current.requester_id != actor.id:
                    raise PermissionDeniedError("You are not allowed to rate this ticket")
                if current.feedback_rating is not None:
                    raise LockedError("You have already submitted feedback for this ticket")
                if current.status is not FEEDBACK_STATUS:
                    raise PermissionDeniedError("You can only rate a ticket when it is resolved")
                score = rating_value(rating)

                updated = await self._repository.set_feedback(
                    session,
                    ticket_id,
                    rating=score,
                    comment=optional_text(comment),
                    given_at=utcnow(),
                )
                await self._record(
                    session,
                    updated,
                    actor,
                    TicketAction.FEEDBACK_ADDED,
                    note=f"Employee satisfaction rating: {score}/5",
                )
            logger.info("Ticket %s rated %s/5 by user %s", ticket_id, score, actor.id)

            if updated.assigned_to_id:
                await self._dispatcher.notify(
                    updated.assigned_to_id,
                    "Ticket feedback received",
                    f"Ticket {updated.ticket_code} received a {score}/5 rating.",
                    links.technician_ticket(updated.id),
                )
            return updated

    async def add_note(
        self,
        ticket_id: int,
        actor: Actor,
        note: str | None,
        time_spent_minutes: int | None = None,
    ) -> TicketLogEntry:
        with self._tracked("add_note", actor):
            text = required_text(note, "Note")
            if time_spent_minutes is not None and (
                isinstance(time_spent_minutes, bool)
                or not isinstance(time_spent_minutes, int)
                or time_spent_minutes < 0
            ):
                raise InvalidInputError("time_spent_minutes must be a non-negative integer")
            if time_spent_minutes:
                text = f"{text} (Time spent: {time_spent_minutes} minutes)"

            async with self._repository.transaction() as session:
                current = await self._load_unlocked(session, ticket_id)
                if actor.is_technician and current.assigned_to_id != actor.id:
                    raise PermissionDeniedError("You are not assigned to this ticket")
                entry = await self._record(session, current, actor, TicketAction.NOTE_ADDED, note=text)

            await self._dispatcher.notify(
                current.requester_id,
                "New note on your ticket",
                f"A technician added a note to ticket {current.ticket_code}.",
                links.employee_ticket(current.id),
            )
            return entry

    async def attach_file(self, ticket_id: int, actor: Actor, metadata: AttachmentMetadata) -> TicketAttachment:
        with self._tracked("attach_file", actor):
            original_name = required_text(metadata.filename_original, "File name")
            if metadata.size_bytes < 0:
                raise InvalidInputError("File size cannot be negative")

            async with self._repository.transaction() as session:
                current = await self._load_unlocked(session, ticket_id)
                attachment = await self._repository.insert_attachment(session, ticket_id, actor.id, metadata)
                await self._record(
                    session,
                    current,
                    actor,
                    TicketAction.ATTACHMENT_ADDED,
                    note=f"Attachment: {original_name}",
                )

            message = f"An attachment was added to ticket {current.ticket_code}."
            await asyncio.gather(
                self._dispatcher.notify(
                    current.requester_id, "Attachment added", message, links.employee_ticket(current.id)
                ),
                self._dispatcher.notify(
                    current.assigned_to_id, "Attachment added", message, links.technician_ticket(current.id)
                ),
            )
            return attachment

    # -- helpers ---------------------------------------------------------------------

    @contextmanager
    def _tracked(self, operation: str, actor: Actor) -> Iterator[None]:
        with operation_context("ticket", operation, actor.id), track_operation("ticket", operation, self._registry):
            yield

    async def _load(self, session: AsyncSession, ticket_id: int) -> Ticket:
        ticket = await self._repository.lock_ticket(session, ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def _load_unlocked(self, session: AsyncSession, ticket_id: int) -> Ticket:
        """Load a ticket that may still be worked on; rated tickets are frozen."""

        ticket = await self._load(session, ticket_id)
        if ticket.is_locked:
            raise LockedError(f"Ticket {ticket.ticket_code} has been rated and can no longer be changed")
        return ticket

    async def _record(
        self,
        session: AsyncSession,
        ticket: Ticket,
        actor: Actor,
        action: TicketAction,
        *,
        old_status: TicketStatus | None = None,
        new_status: TicketStatus | None = None,
        note: str | None = None,
    ) -> TicketLogEntry:
        entry = TicketLogEntry(
            ticket_id=ticket.id,
            actor_id=actor.id,
            action_type=action,
            old_status=old_status,
            new_status=new_status,
            note=note,
        )
        return await self._audit_log.append(entry, session=session)

