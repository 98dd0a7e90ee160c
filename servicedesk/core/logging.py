"""Logging and tracing for the service desk.

Every lifecycle operation runs inside :func:`operation_context`, which tags log
records with the entity, operation and acting user and opens a span named
``<entity>.<operation>`` on the configured tracer provider.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from servicedesk.core.config import Settings

APP_LOGGER = "servicedesk"

_operation: ContextVar[str] = ContextVar("servicedesk_operation", default="-")
_actor_id: ContextVar[str] = ContextVar("servicedesk_actor_id", default="-")

_installed_provider: TracerProvider | None = None


class OperationContextFilter(logging.Filter):
    """Copy the current operation and actor onto each record for the formatter."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.operation = _operation.get()
        record.actor_id = _actor_id.get()
        return True


@contextmanager
def operation_context(entity: str, operation: str, actor_id: int | None = None) -> Iterator[None]:
    name = f"{entity}.{operation}"
    op_token = _operation.set(name)
    actor_token = _actor_id.set("-" if actor_id is None else str(actor_id))
    tracer = trace.get_tracer(APP_LOGGER)
    try:
        with tracer.start_as_current_span(name) as span:
            span.set_attribute("servicedesk.entity", entity)
            if actor_id is not None:
                span.set_attribute("servicedesk.actor_id", actor_id)
            yield
    finally:
        _actor_id.reset(actor_token)
        _operation.reset(op_token)


def _parse_headers(header_string: str | None) -> dict[str, str]:
    """Parse ``key=value`` pairs separated by commas; pairs without a key are ignored."""

    headers: dict[str, str] = {}
    for item in (header_string or "").split(","):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def configure_logging(settings: Settings) -> logging.Logger:
    """Install the service desk handler and return the ``servicedesk`` logger.

    ``settings.log_levels`` overrides the level of individual areas, for example
    ``{"servicedesk.notifications": "WARNING"}``.
    """

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    loggers: dict[str, dict[str, object]] = {APP_LOGGER: {"level": level}}
    for name, area_level in settings.log_levels.items():
        loggers[name] = {"level": area_level.upper()}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"operation": {"()": OperationContextFilter}},
            "formatters": {"servicedesk": {"format": settings.log_format}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "servicedesk",
                    "filters": ["operation"],
                }
            },
            "root": {"handlers": ["console"], "level": logging.WARNING},
            "loggers": loggers,
        }
    )
    return logging.getLogger(APP_LOGGER)


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP exporting tracer provider when tracing is enabled."""

    global _installed_provider

    if not settings.otel_enabled:
        return None
    if _installed_provider is not None:
        return _installed_provider

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "deployment.environment": settings.environment,
        }
    )
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        headers=_parse_headers(settings.otel_exporter_otlp_headers) or None,
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    _installed_provider = provider
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    global _installed_provider

    if provider is None:
        return
    provider.shutdown()
    if provider is _installed_provider:
        _installed_provider = None
