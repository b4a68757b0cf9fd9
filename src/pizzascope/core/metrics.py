"""Metric helper functions for creating MetricPoint objects."""

import time
from collections.abc import Mapping

from pizzascope.core.models import AggregatorSnapshot, MetricKind, MetricPoint

TRACKED_METHODS = ("GET", "POST", "PUT", "DELETE")


def _dimensions(
    dimensions: Mapping[str, str] | None,
) -> tuple[tuple[str, str], ...]:
    return tuple((key, str(value)) for key, value in (dimensions or {}).items())


def counter(
    name: str,
    value: float,
    unit: str = "1",
    dimensions: Mapping[str, str] | None = None,
    timestamp_ns: int | None = None,
) -> MetricPoint:
    """Create a cumulative counter point.

    Args:
        name: Metric name (e.g., "http_requests_total")
        value: Cumulative value since process start
        unit: Metric unit (default: "1")
        dimensions: Optional dimension labels
        timestamp_ns: Export instant (default: now)

    Returns:
        MetricPoint of kind COUNTER
    """
    return MetricPoint(
        name=name,
        kind=MetricKind.COUNTER,
        value=value,
        unit=unit,
        dimensions=_dimensions(dimensions),
        timestamp_ns=time.time_ns() if timestamp_ns is None else timestamp_ns,
    )


def gauge(
    name: str,
    value: float,
    unit: str = "1",
    dimensions: Mapping[str, str] | None = None,
    timestamp_ns: int | None = None,
) -> MetricPoint:
    """Create a gauge point.

    Args:
        name: Metric name (e.g., "cpu_percent")
        value: Current gauge value
        unit: Metric unit (default: "1")
        dimensions: Optional dimension labels
        timestamp_ns: Export instant (default: now)

    Returns:
        MetricPoint of kind GAUGE
    """
    return MetricPoint(
        name=name,
        kind=MetricKind.GAUGE,
        value=value,
        unit=unit,
        dimensions=_dimensions(dimensions),
        timestamp_ns=time.time_ns() if timestamp_ns is None else timestamp_ns,
    )


def build_metric_points(
    snapshot: AggregatorSnapshot,
    system: Mapping[str, float] | None = None,
    timestamp_ns: int | None = None,
) -> list[MetricPoint]:
    """Translate an aggregator snapshot into exportable points.

    Args:
        snapshot: State captured by MetricAggregator.snapshot_and_reset_window().
        system: Host gauges keyed by metric name (e.g., {"cpu_percent": 12.0}).
        timestamp_ns: Export instant shared by every point (default: now).

    Returns:
        Points in a stable order: request counters, endpoint counters,
        active users, auth outcomes, host gauges, order counters.
    """
    now = time.time_ns() if timestamp_ns is None else timestamp_ns
    points: list[MetricPoint] = [
        counter(
            "http_requests_total",
            snapshot.total_requests,
            dimensions={"method": "ALL"},
            timestamp_ns=now,
        )
    ]
    methods = list(TRACKED_METHODS) + sorted(
        m for m in snapshot.requests_by_method if m not in TRACKED_METHODS
    )
    for method in methods:
        points.append(
            counter(
                "http_requests_total",
                snapshot.requests_by_method.get(method, 0),
                dimensions={"method": method},
                timestamp_ns=now,
            )
        )

    for key, stats in snapshot.endpoints.items():
        dims = {"method": key.method, "route": key.route, "status": str(key.status)}
        points.append(
            counter(
                "http_requests_total", stats.count, dimensions=dims, timestamp_ns=now
            )
        )
        points.append(
            counter(
                "endpoint_latency_milliseconds_total",
                stats.total_latency_ms,
                unit="ms",
                dimensions=dims,
                timestamp_ns=now,
            )
        )

    points.append(gauge("active_users", snapshot.active_users, timestamp_ns=now))
    points.append(
        gauge(
            "request_latency_milliseconds",
            snapshot.last_request_latency_ms,
            unit="ms",
            timestamp_ns=now,
        )
    )
    points.append(
        counter(
            "auth_attempts_total",
            snapshot.auth_success,
            dimensions={"outcome": "success"},
            timestamp_ns=now,
        )
    )
    points.append(
        counter(
            "auth_attempts_total",
            snapshot.auth_failure,
            dimensions={"outcome": "failure"},
            timestamp_ns=now,
        )
    )

    for name, value in (system or {}).items():
        points.append(gauge(name, value, unit="%", timestamp_ns=now))

    points.append(counter("pizzas_sold_total", snapshot.pizzas_sold, timestamp_ns=now))
    points.append(
        counter("pizza_failures_total", snapshot.pizza_failures, timestamp_ns=now)
    )
    points.append(
        counter(
            "revenue_cents_total",
            snapshot.revenue_cents,
            unit="cents",
            timestamp_ns=now,
        )
    )
    points.append(
        counter(
            "pizza_creation_latency_milliseconds_total",
            snapshot.pizza_creation_latency_ms,
            unit="ms",
            timestamp_ns=now,
        )
    )
    return points
