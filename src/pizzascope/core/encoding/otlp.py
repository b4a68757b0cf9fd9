"""OTLP/HTTP JSON encoder for metric points."""

from collections.abc import Iterable
from typing import Any

from pizzascope.core.models import MetricKind, MetricPoint

CUMULATIVE = "AGGREGATION_TEMPORALITY_CUMULATIVE"


def _attribute(key: str, value: str) -> dict[str, Any]:
    return {"key": key, "value": {"stringValue": value}}


def encode_point(point: MetricPoint, source: str) -> dict[str, Any]:
    """Encode one point as an OTLP metric with a single data point.

    Values are rounded and clamped to non-negative integers (``asInt``).
    Counters become monotonic cumulative sums; gauges become gauges.
    """
    data_point = {
        "asInt": max(0, round(point.value)),
        "timeUnixNano": str(point.timestamp_ns),
        "attributes": [_attribute("source", source)]
        + [_attribute(key, value) for key, value in point.dimensions],
    }
    metric: dict[str, Any] = {"name": point.name, "unit": point.unit}
    if point.kind is MetricKind.COUNTER:
        metric["sum"] = {
            "aggregationTemporality": CUMULATIVE,
            "isMonotonic": True,
            "dataPoints": [data_point],
        }
    else:
        metric["gauge"] = {"dataPoints": [data_point]}
    return metric


def encode_metrics(points: Iterable[MetricPoint], source: str) -> dict[str, Any]:
    """Encode metric points as an OTLP ``resourceMetrics`` request body.

    Args:
        points: Points to export.
        source: Value of the "source" attribute carried by every data point.

    Returns:
        JSON-serializable request body.
    """
    metrics = [encode_point(point, source) for point in points]
    return {"resourceMetrics": [{"scopeMetrics": [{"metrics": metrics}]}]}
