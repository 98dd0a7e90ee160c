import logging

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from servicedesk.core.config import Settings
from servicedesk.core.logging import (
    OperationContextFilter,
    _parse_headers,
    configure_logging,
    init_tracer,
    operation_context,
)
from servicedesk.db.session import to_async_dsn


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("SERVICEDESK_TICKET_CODE_PREFIX", "HD")
    monkeypatch.setenv("SERVICEDESK_AUTH_TOKENS", '{"admin-token": 1}')

    settings = Settings(_env_file=None)

    assert settings.ticket_code_prefix == "HD"
    assert settings.ticket_code_max_attempts == 10
    assert settings.auth_tokens == {"admin-token": 1}


def test_to_async_dsn_rewrites_postgres_only():
    assert to_async_dsn("postgresql://u:p@db/sd") == "postgresql+asyncpg://u:p@db/sd"
    assert to_async_dsn("postgresql+asyncpg://u:p@db/sd") == "postgresql+asyncpg://u:p@db/sd"
    assert to_async_dsn("sqlite+aiosqlite:///x.db") == "sqlite+aiosqlite:///x.db"


def test_parse_headers_skips_malformed_items():
    assert _parse_headers(None) == {}
    assert _parse_headers("api-key=abc, tenant = ops,broken") == {"api-key": "abc", "tenant": "ops"}


def test_configure_logging_sets_application_level():
    logger = configure_logging(Settings(_env_file=None, log_level="debug"))

    assert logger.name == "servicedesk"
    assert logger.level == logging.DEBUG


def test_tracer_disabled_by_default():
    assert init_tracer(Settings(_env_file=None)) is None


def test_configure_logging_applies_area_overrides():
    settings = Settings(_env_file=None, log_levels={"servicedesk.notifications": "warning"})
    area = logging.getLogger("servicedesk.notifications")
    try:
        configure_logging(settings)

        assert area.level == logging.WARNING
        assert logging.getLogger("servicedesk").level == logging.INFO
    finally:
        area.setLevel(logging.NOTSET)


def test_operation_context_tags_log_records():
    context_filter = OperationContextFilter()
    inside = logging.LogRecord("servicedesk.tickets", logging.INFO, __file__, 1, "assigned", None, None)
    outside = logging.LogRecord("servicedesk.tickets", logging.INFO, __file__, 1, "idle", None, None)

    with operation_context("ticket", "assign", 7):
        context_filter.filter(inside)
    context_filter.filter(outside)

    assert (inside.operation, inside.actor_id) == ("ticket.assign", "7")
    assert (outside.operation, outside.actor_id) == ("-", "-")


@pytest.fixture
def spans(monkeypatch):
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(trace, "get_tracer", provider.get_tracer)
    return exporter


def test_operation_context_opens_a_span_per_operation(spans):
    with operation_context("task", "rate", 1):
        pass
    with pytest.raises(ValueError):
        with operation_context("ticket", "add_note"):
            raise ValueError("boom")

    finished = spans.get_finished_spans()
    assert [span.name for span in finished] == ["task.rate", "ticket.add_note"]
    assert finished[0].attributes["servicedesk.actor_id"] == 1
    assert "servicedesk.actor_id" not in finished[1].attributes
    assert finished[1].status.status_code is StatusCode.ERROR
