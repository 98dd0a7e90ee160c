"""Append-only audit trail of ticket mutations.

Entries are written once per successful state-changing operation and are never edited
or removed; the store exposes no update or delete operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from servicedesk.db.models import TicketLogTable
from servicedesk.db.session import ensure_aware, unit_of_work, utcnow

from .state import TicketStatus


class TicketAction(str, Enum):
    CREATED = "CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    ASSIGNED = "ASSIGNED"
    ATTACHMENT_ADDED = "ATTACHMENT_ADDED"
    NOTE_ADDED = "NOTE_ADDED"
    UPDATED_BY_EMPLOYEE = "UPDATED_BY_EMPLOYEE"
    FEEDBACK_ADDED = "FEEDBACK_ADDED"


@dataclass(slots=True)
class TicketLogEntry:
    """One audit record; ``id`` is assigned by the store."""

    ticket_id: int
    actor_id: int
    action_type: TicketAction
    old_status: TicketStatus | None = None
    new_status: TicketStatus | None = None
    note: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None


class TicketAuditLog:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, entry: TicketLogEntry, *, session: AsyncSession | None = None) -> TicketLogEntry:
        """Persist ``entry``; with ``session`` the write joins the caller's transaction."""

        if session is not None:
            return await self._insert(session, entry)
        async with unit_of_work(self._session_factory) as own_session:
            return await self._insert(own_session, entry)

    async def list_for_ticket(self, ticket_id: int) -> list[TicketLogEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketLogTable)
                .where(TicketLogTable.ticket_id == ticket_id)
                .order_by(TicketLogTable.created_at.asc(), TicketLogTable.id.asc())
            )
            return [self._row_to_entry(row) for row in result.scalars().all()]

    async def _insert(self, session: AsyncSession, entry: TicketLogEntry) -> TicketLogEntry:
        row = TicketLogTable(
            ticket_id=entry.ticket_id,
            created_by_id=entry.actor_id,
            action_type=entry.action_type.value,
            old_status=entry.old_status.value if entry.old_status else None,
            new_status=entry.new_status.value if entry.new_status else None,
            note=entry.note,
            created_at=entry.created_at,
        )
        session.add(row)
        await session.flush()
        return replace(entry, id=int(row.id))

    @staticmethod
    def _row_to_entry(row: TicketLogTable) -> TicketLogEntry:
        return TicketLogEntry(
            id=int(row.id),
            ticket_id=row.ticket_id,
            actor_id=row.created_by_id,
            action_type=TicketAction(row.action_type),
            old_status=TicketStatus(row.old_status) if row.old_status else None,
            new_status=TicketStatus(row.new_status) if row.new_status else None,
            note=row.note,
            created_at=ensure_aware(row.created_at),
        )
