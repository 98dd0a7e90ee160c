"""Metric definitions used across the application."""
from __future__ import annotations

from dataclasses import dataclass

LIFECYCLE_OPERATIONS = "lifecycle_operations_total"
LIFECYCLE_DURATION = "lifecycle_operation_duration_seconds"
NOTIFICATIONS_DISPATCHED = "notifications_dispatched_total"
NOTIFICATION_FAILURES = "notification_failures_total"


@dataclass(frozen=True)
class MetricDefinition:
    """Describe a metric that should exist in the registry."""

    name: str
    metric_type: str
    description: str
    label_names: tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name=LIFECYCLE_OPERATIONS,
        metric_type="counter",
        description="Committed ticket and task lifecycle operations.",
        label_names=("entity", "operation"),
    ),
    MetricDefinition(
        name=LIFECYCLE_DURATION,
        metric_type="distribution",
        description="Duration of lifecycle operations in seconds, notification fan-out included.",
        label_names=("entity", "operation"),
    ),
    MetricDefinition(
        name=NOTIFICATIONS_DISPATCHED,
        metric_type="counter",
        description="Notifications written to the store.",
    ),
    MetricDefinition(
        name=NOTIFICATION_FAILURES,
        metric_type="counter",
        description="Notification deliveries that failed and were dropped.",
    ),
)
