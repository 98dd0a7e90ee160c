import pytest

from servicedesk.metrics import MetricsRegistry, PrometheusExporter, register_default_metrics, track_operation
from servicedesk.metrics.definitions import LIFECYCLE_DURATION, LIFECYCLE_OPERATIONS


def test_counter_requires_declared_labels():
    registry = MetricsRegistry()
    counter = registry.counter("jobs_total", label_names=("queue",))

    counter.inc(labels={"queue": "tickets"})
    counter.inc(2, labels={"queue": "tickets"})

    assert counter.value(labels={"queue": "tickets"}) == 3
    with pytest.raises(ValueError):
        counter.inc()


def test_registry_rejects_type_conflicts():
    registry = MetricsRegistry()
    registry.counter("duplicate")

    with pytest.raises(TypeError):
        registry.distribution("duplicate")


def test_track_operation_counts_only_successful_blocks():
    registry = MetricsRegistry()

    with track_operation("task", "rate", registry):
        pass
    with pytest.raises(RuntimeError):
        with track_operation("task", "rate", registry):
            raise RuntimeError("boom")

    labels = {"entity": "task", "operation": "rate"}
    assert registry.counter(LIFECYCLE_OPERATIONS).value(labels=labels) == 1
    snapshot = registry.distribution(LIFECYCLE_DURATION).snapshot()
    assert snapshot[("task", "rate")]["count"] == 2


def test_prometheus_exporter_renders_counters_and_summaries():
    registry = MetricsRegistry()
    register_default_metrics(registry)
    with track_operation("ticket", "create", registry):
        pass

    payload = PrometheusExporter(registry).build_payload()

    assert "# TYPE lifecycle_operations_total counter" in payload
    assert 'lifecycle_operations_total{entity="ticket",operation="create"} 1.0' in payload
    assert 'lifecycle_operation_duration_seconds_count{entity="ticket",operation="create"} 1.0' in payload
    assert "# TYPE notification_failures_total counter" in payload
