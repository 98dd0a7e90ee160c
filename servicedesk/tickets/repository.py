from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import select

from servicedesk.db.models import TicketAttachmentTable, TicketTable
from servicedesk.db.session import ensure_aware, ensure_schema, unit_of_work, utcnow
from servicedesk.errors import NotFoundError

from .models import AttachmentMetadata, Ticket, TicketAttachment, TicketFilters
from .state import TicketPriority, TicketStatus


class TicketRepository:
    """Ticket records and their mutation primitives.

    Mutations take the caller's session so that the row change and its audit entry
    commit in the same transaction (see :meth:`transaction`).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        await ensure_schema(self._engine)

    def transaction(self) -> AbstractAsyncContextManager[AsyncSession]:
        return unit_of_work(self._session_factory)

    async def get_ticket(self, ticket_id: int) -> Ticket | None:
        async with self._session_factory() as session:
            row = await session.get(TicketTable, ticket_id)
            return None if row is None else self._table_to_ticket(row)

    async def list_tickets(self, filters: TicketFilters | None = None) -> list[Ticket]:
        filters = filters or TicketFilters()
        statement = select(TicketTable)
        if filters.status is not None:
            statement = statement.where(TicketTable.status == filters.status.value)
        if filters.department_id is not None:
            statement = statement.where(TicketTable.department_id == filters.department_id)
        if filters.category_id is not None:
            statement = statement.where(TicketTable.category_id == filters.category_id)
        if filters.requester_id is not None:
            statement = statement.where(TicketTable.requester_id == filters.requester_id)
        if filters.assigned_to_id is not None:
            statement = statement.where(TicketTable.assigned_to_id == filters.assigned_to_id)
        statement = statement.order_by(TicketTable.created_at.desc(), TicketTable.id.desc())
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [self._table_to_ticket(row) for row in result.scalars().all()]

    async def list_attachments(self, ticket_id: int) -> list[TicketAttachment]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketAttachmentTable)
                .where(TicketAttachmentTable.ticket_id == ticket_id)
                .order_by(TicketAttachmentTable.created_at.asc(), TicketAttachmentTable.id.asc())
            )
            return [self._table_to_attachment(row) for row in result.scalars().all()]

    # -- primitives bound to an open transaction -------------------------------------

    async def lock_ticket(self, session: AsyncSession, ticket_id: int) -> Ticket | None:
        """Load the ticket row, holding a row lock until the transaction ends."""

        row = await session.get(TicketTable, ticket_id, with_for_update=True)
        return None if row is None else self._table_to_ticket(row)

    async def code_exists(self, session: AsyncSession, code: str) -> bool:
        result = await session.execute(select(TicketTable.id).where(TicketTable.ticket_code == code).limit(1))
        return result.first() is not None

    async def insert_ticket(
        self,
        session: AsyncSession,
        *,
        ticket_code: str,
        title: str,
        description: str | None,
        status: TicketStatus,
        priority: TicketPriority,
        requester_id: int,
        department_id: int | None,
        category_id: int | None,
    ) -> Ticket:
        now = utcnow()
        row = TicketTable(
            ticket_code=ticket_code,
            title=title,
            description=description,
            status=status.value,
            priority=priority.value,
            requester_id=requester_id,
            assigned_to_id=None,
            department_id=department_id,
            category_id=category_id,
            created_at=now,
            updated_at=now,
        )
        session.add(row)
        await session.flush()
        return self._table_to_ticket(row)

    async def update_status(self, session: AsyncSession, ticket_id: int, status: TicketStatus) -> Ticket:
        return await self._apply(session, ticket_id, status=status.value)

    async def assign(self, session: AsyncSession, ticket_id: int, assignee_id: int) -> Ticket:
        return await self._apply(session, ticket_id, assigned_to_id=assignee_id)

    async def update_details(
        self,
        session: AsyncSession,
        ticket_id: int,
        *,
        title: str,
        description: str,
        priority: TicketPriority,
        department_id: int | None,
        category_id: int | None,
    ) -> Ticket:
        return await self._apply(
            session,
            ticket_id,
            title=title,
            description=description,
            priority=priority.value,
            department_id=department_id,
            category_id=category_id,
        )

    async def set_feedback(
        self, session: AsyncSession, ticket_id: int, *, rating: int, comment: str | None, given_at: datetime
    ) -> Ticket:
        return await self._apply(
            session,
            ticket_id,
            feedback_rating=rating,
            feedback_comment=comment,
            feedback_given_at=given_at,
        )

    async def insert_attachment(
        self, session: AsyncSession, ticket_id: int, uploaded_by_id: int, metadata: AttachmentMetadata
    ) -> TicketAttachment:
        row = TicketAttachmentTable(
            ticket_id=ticket_id,
            uploaded_by_id=uploaded_by_id,
            filename_original=metadata.filename_original,
            filename_stored=metadata.filename_stored,
            mime_type=metadata.mime_type,
            size_bytes=metadata.size_bytes,
            created_at=utcnow(),
        )
        session.add(row)
        await session.flush()
        return self._table_to_attachment(row)

    async def _apply(self, session: AsyncSession, ticket_id: int, **values: object) -> Ticket:
        row = await session.get(TicketTable, ticket_id)
        if row is None:
            raise NotFoundError(f"Ticket {ticket_id} vanished inside its transaction")
        for name, value in values.items():
            setattr(row, name, value)
        row.updated_at = utcnow()
        await session.flush()
        return self._table_to_ticket(row)

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=int(row.id),
            ticket_code=row.ticket_code,
            title=row.title,
            description=row.description,
            status=TicketStatus(row.status),
            priority=TicketPriority(row.priority),
            department_id=row.department_id,
            category_id=row.category_id,
            requester_id=row.requester_id,
            assigned_to_id=row.assigned_to_id,
            feedback_rating=row.feedback_rating,
            feedback_comment=row.feedback_comment,
            feedback_given_at=ensure_aware(row.feedback_given_at),
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
        )

    @staticmethod
    def _table_to_attachment(row: TicketAttachmentTable) -> TicketAttachment:
        return TicketAttachment(
            id=int(row.id),
            ticket_id=row.ticket_id,
            uploaded_by_id=row.uploaded_by_id,
            filename_original=row.filename_original,
            filename_stored=row.filename_stored,
            mime_type=row.mime_type,
            size_bytes=row.size_bytes,
            created_at=ensure_aware(row.created_at),
        )
