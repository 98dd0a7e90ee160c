from contextlib import asynccontextmanager

from fastapi import FastAPI

from servicedesk.api.errors import register_exception_handlers
from servicedesk.api.routes import metrics, notifications, ping, tasks, tickets
from servicedesk.core.config import get_settings
from servicedesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from servicedesk.db import create_engine, create_session_factory
from servicedesk.metrics import metrics_registry
from servicedesk.notifications import NotificationDispatcher, NotificationStore
from servicedesk.tasks import TaskLifecycleService, TaskProgressLog, TaskRepository
from servicedesk.tickets import TicketAuditLog, TicketCodeGenerator, TicketLifecycleService, TicketRepository
from servicedesk.users import DirectoryRecipientResolver, SqlUserDirectory


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    app.state.metrics_registry = metrics_registry

    engine = create_engine(settings.database_dsn, echo=settings.database_echo)
    try:
        session_factory = create_session_factory(engine)
        ticket_repository = TicketRepository(session_factory, engine=engine)
        await ticket_repository.ensure_schema()

        directory = SqlUserDirectory(session_factory)
        recipients = DirectoryRecipientResolver(directory)
        store = NotificationStore(session_factory)
        dispatcher = NotificationDispatcher(store, registry=metrics_registry)

        app.state.db_engine = engine
        app.state.user_directory = directory
        app.state.notification_store = store
        app.state.ticket_service = TicketLifecycleService(
            ticket_repository,
            TicketAuditLog(session_factory),
            dispatcher,
            recipients,
            code_generator=TicketCodeGenerator(
                prefix=settings.ticket_code_prefix,
                max_attempts=settings.ticket_code_max_attempts,
            ),
            registry=metrics_registry,
        )
        app.state.task_service = TaskLifecycleService(
            TaskRepository(session_factory),
            TaskProgressLog(session_factory),
            dispatcher,
            recipients,
            registry=metrics_registry,
        )
        logger.info("Service desk started (%s)", settings.environment)
        yield
    finally:
        await engine.dispose()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(tasks.router)
    app.include_router(notifications.router)
    app.include_router(metrics.router)
    return app


app = create_app()
