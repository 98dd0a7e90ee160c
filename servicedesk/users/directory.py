from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from servicedesk.db.models import UserTable


class Role(str, Enum):
    """Roles known to the service desk."""

    ADMIN = "ADMIN"
    TECHNICIAN = "TECHNICIAN"
    EMPLOYEE = "EMPLOYEE"


@dataclass(slots=True, frozen=True)
class Actor:
    """Identity and role of the user performing an operation."""

    id: int
    role: Role
    full_name: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "System"

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_technician(self) -> bool:
        return self.role is Role.TECHNICIAN


class UserDirectory(Protocol):
    async def find_by_id(self, user_id: int) -> Actor | None:
        ...

    async def list_by_role(self, role: Role) -> Sequence[Actor]:
        ...


class RecipientResolver(Protocol):
    async def admin_ids(self) -> list[int]:
        ...


class SqlUserDirectory:
    """Read-only view over the ``users`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_id(self, user_id: int) -> Actor | None:
        async with self._session_factory() as session:
            row = await session.get(UserTable, user_id)
        if row is None or not row.is_active:
            return None
        return self._row_to_actor(row)

    async def list_by_role(self, role: Role) -> list[Actor]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserTable)
                .where(UserTable.role == role.value, UserTable.is_active.is_(True))
                .order_by(UserTable.id.asc())
            )
            rows = result.scalars().all()
        return [self._row_to_actor(row) for row in rows]

    @staticmethod
    def _row_to_actor(row: UserTable) -> Actor:
        return Actor(id=int(row.id), role=Role(row.role), full_name=row.full_name, email=row.email)


class DirectoryRecipientResolver:
    """Resolve fan-out recipients through the user directory."""

    def __init__(self, directory: UserDirectory) -> None:
        self._directory = directory

    async def admin_ids(self) -> list[int]:
        admins = await self._directory.list_by_role(Role.ADMIN)
        return [admin.id for admin in admins]
