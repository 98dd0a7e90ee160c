"""Application wide metrics utilities."""
from contextlib import contextmanager
from typing import Iterator

from .definitions import DEFAULT_METRIC_DEFINITIONS, LIFECYCLE_DURATION, LIFECYCLE_OPERATIONS, MetricDefinition
from .exporters import PrometheusExporter
from .registry import CounterMetric, DistributionMetric, MetricsRegistry

metrics_registry = MetricsRegistry()


def register_default_metrics(registry: MetricsRegistry | None = None) -> None:
    """Ensure all default metric definitions exist in the registry."""
    target = registry or metrics_registry
    for definition in DEFAULT_METRIC_DEFINITIONS:
        if definition.metric_type == "counter":
            target.counter(definition.name, description=definition.description, label_names=definition.label_names)
        elif definition.metric_type == "distribution":
            target.distribution(
                definition.name, description=definition.description, label_names=definition.label_names
            )
        else:  # pragma: no cover
            raise ValueError(f"Unsupported metric type: {definition.metric_type}")


@contextmanager
def track_operation(entity: str, operation: str, registry: MetricsRegistry | None = None) -> Iterator[None]:
    """Time a lifecycle operation and count it when it completes without raising."""
    target = registry or metrics_registry
    labels = {"entity": entity, "operation": operation}
    target.distribution(LIFECYCLE_DURATION, label_names=("entity", "operation"))
    counter = target.counter(LIFECYCLE_OPERATIONS, label_names=("entity", "operation"))
    with target.time_distribution(LIFECYCLE_DURATION, labels=labels):
        yield
    counter.inc(labels=labels)


# eagerly register the defaults for convenience
register_default_metrics()

__all__ = [
    "CounterMetric",
    "DistributionMetric",
    "MetricDefinition",
    "MetricsRegistry",
    "PrometheusExporter",
    "metrics_registry",
    "register_default_metrics",
    "track_operation",
]
