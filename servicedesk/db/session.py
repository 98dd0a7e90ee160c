"""Engine construction and the unit-of-work boundary shared by repositories."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from servicedesk.errors import DependencyFailure

from . import models  # noqa: F401  # registers tables on SQLModel.metadata


def to_async_dsn(dsn: str) -> str:
    """Ensure a PostgreSQL DSN uses the asyncpg driver."""

    if dsn.startswith("postgresql+asyncpg://"):
        return dsn
    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    return dsn


def create_engine(dsn: str, *, echo: bool = False) -> AsyncEngine:
    return create_async_engine(to_async_dsn(dsn), echo=echo, future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def ensure_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def unit_of_work(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Yield a session whose writes commit together or not at all.

    Storage errors are re-raised as :class:`DependencyFailure`; domain errors raised by
    the caller propagate unchanged after the rollback.
    """

    try:
        async with session_factory() as session:
            async with session.begin():
                yield session
    except SQLAlchemyError as exc:
        raise DependencyFailure("Persistence layer failure") from exc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps returned by drivers without tz support."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
