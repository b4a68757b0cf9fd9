"""Core domain models for telemetry data."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum


class MetricKind(str, Enum):
    """Kind of an exported metric point."""

    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass(frozen=True)
class MetricPoint:
    """A single measurement ready for export.

    Attributes:
        name: Metric name (e.g., http_requests_total).
        kind: Counter (cumulative since process start) or gauge.
        value: Non-negative measured value.
        unit: Unit string ("1", "ms", "%", "cents").
        dimensions: Ordered key-value pairs for metric dimensions.
        timestamp_ns: Wall-clock Unix time in nanoseconds.
    """

    name: str
    kind: MetricKind
    value: float
    unit: str = "1"
    dimensions: tuple[tuple[str, str], ...] = ()
    timestamp_ns: int = 0


@dataclass(frozen=True)
class EndpointKey:
    """Composite key identifying one observed endpoint outcome."""

    method: str
    route: str
    status: int


@dataclass(frozen=True)
class EndpointStats:
    """Accumulated request count and latency for one EndpointKey."""

    count: int = 0
    total_latency_ms: float = 0.0


@dataclass(frozen=True)
class AggregatorSnapshot:
    """Point-in-time copy of the aggregator state.

    Attributes:
        total_requests: Requests observed since process start.
        requests_by_method: Per-method request counts.
        auth_success: Successful authentication attempts.
        auth_failure: Failed authentication attempts.
        pizzas_sold: Successful orders.
        pizza_failures: Failed orders.
        revenue_cents: Revenue from successful orders.
        pizza_creation_latency_ms: Summed order creation latency.
        last_request_latency_ms: Latency of the most recent request.
        endpoints: Per EndpointKey accumulators.
        active_users: Active users in the window that produced this snapshot.
    """

    total_requests: int = 0
    requests_by_method: Mapping[str, int] = field(default_factory=dict)
    auth_success: int = 0
    auth_failure: int = 0
    pizzas_sold: int = 0
    pizza_failures: int = 0
    revenue_cents: int = 0
    pizza_creation_latency_ms: float = 0.0
    last_request_latency_ms: float = 0.0
    endpoints: Mapping[EndpointKey, EndpointStats] = field(default_factory=dict)
    active_users: int = 0


@dataclass(frozen=True)
class LogEntry:
    """A queued log line.

    Attributes:
        labels: Stream labels used to group entries on push.
        timestamp_ns: Unix timestamp in nanoseconds, string encoded.
        line: JSON serialized payload.
    """

    labels: Mapping[str, str]
    timestamp_ns: str
    line: str
