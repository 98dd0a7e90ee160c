from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from servicedesk.db.models import UserTable
from servicedesk.metrics import MetricsRegistry, register_default_metrics
from servicedesk.notifications import NotificationDispatcher, NotificationStore
from servicedesk.tasks import TaskLifecycleService, TaskProgressLog, TaskRepository
from servicedesk.tickets import TicketAuditLog, TicketLifecycleService, TicketRepository
from servicedesk.users import Actor, DirectoryRecipientResolver, Role, SqlUserDirectory

ADMIN = Actor(id=1, role=Role.ADMIN, full_name="Ayla Admin", email="admin@example.com")
SECOND_ADMIN = Actor(id=2, role=Role.ADMIN, full_name=None, email="ops@example.com")
TECHNICIAN = Actor(id=55, role=Role.TECHNICIAN, full_name="Tarik Tech", email="tech@example.com")
OTHER_TECHNICIAN = Actor(id=56, role=Role.TECHNICIAN, full_name="Tuba Tech", email="tech2@example.com")
EMPLOYEE = Actor(id=42, role=Role.EMPLOYEE, full_name="Emre Employee", email="emre@example.com")
OTHER_EMPLOYEE = Actor(id=43, role=Role.EMPLOYEE, full_name="Elif Employee", email="elif@example.com")

ALL_ACTORS = (ADMIN, SECOND_ADMIN, TECHNICIAN, OTHER_TECHNICIAN, EMPLOYEE, OTHER_EMPLOYEE)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncEngine:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'servicedesk.db'}")
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        session.add_all(
            UserTable(id=actor.id, email=actor.email, full_name=actor.full_name, role=actor.role.value)
            for actor in ALL_ACTORS
        )
        session.add(UserTable(id=99, email="former@example.com", role=Role.ADMIN.value, is_active=False))
        await session.commit()
    return factory


@pytest.fixture
def registry() -> MetricsRegistry:
    registry = MetricsRegistry()
    register_default_metrics(registry)
    return registry


@pytest.fixture
def notification_store(session_factory) -> NotificationStore:
    return NotificationStore(session_factory)


@pytest.fixture
def dispatcher(notification_store, registry) -> NotificationDispatcher:
    return NotificationDispatcher(notification_store, registry=registry)


@pytest.fixture
def directory(session_factory) -> SqlUserDirectory:
    return SqlUserDirectory(session_factory)


@pytest.fixture
def audit_log(session_factory) -> TicketAuditLog:
    return TicketAuditLog(session_factory)


@pytest.fixture
def ticket_repository(session_factory, engine) -> TicketRepository:
    return TicketRepository(session_factory, engine=engine)


@pytest.fixture
def ticket_service(ticket_repository, audit_log, dispatcher, directory, registry) -> TicketLifecycleService:
    return TicketLifecycleService(
        ticket_repository,
        audit_log,
        dispatcher,
        DirectoryRecipientResolver(directory),
        registry=registry,
    )


@pytest.fixture
def progress_log(session_factory) -> TaskProgressLog:
    return TaskProgressLog(session_factory)


@pytest.fixture
def task_service(session_factory, progress_log, dispatcher, directory, registry) -> TaskLifecycleService:
    return TaskLifecycleService(
        TaskRepository(session_factory),
        progress_log,
        dispatcher,
        DirectoryRecipientResolver(directory),
        registry=registry,
    )
