"""Tests for metric helper functions."""

import time

import pytest

from pizzascope.core.metrics import build_metric_points, counter, gauge
from pizzascope.core.models import (
    AggregatorSnapshot,
    EndpointKey,
    EndpointStats,
    MetricKind,
    MetricPoint,
)

pytestmark = [pytest.mark.core, pytest.mark.tier(1)]


def _find(points: list[MetricPoint], name: str, **dims: str) -> MetricPoint:
    wanted = set(dims.items())
    matches = [p for p in points if p.name == name and set(p.dimensions) == wanted]
    assert len(matches) == 1, f"expected one {name}{dims}, got {len(matches)}"
    return matches[0]


class TestCounter:
    """Tests for counter() helper function."""

    def test_counter_creates_counter_point(self) -> None:
        point = counter("requests_total", 3)
        assert isinstance(point, MetricPoint)
        assert point.kind is MetricKind.COUNTER
        assert point.value == 3
        assert point.unit == "1"

    def test_counter_auto_captures_timestamp(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(time, "time_ns", lambda: 1702300000000000000)
        assert counter("requests_total", 1).timestamp_ns == 1702300000000000000

    def test_counter_keeps_dimension_order(self) -> None:
        dims = {"method": "GET", "route": "/", "status": "200"}
        point = counter("x", 1, dimensions=dims)
        assert point.dimensions == tuple(dims.items())


class TestGauge:
    """Tests for gauge() helper function."""

    def test_gauge_creates_gauge_point(self) -> None:
        point = gauge("cpu_percent", 12.5, unit="%")
        assert point.kind is MetricKind.GAUGE
        assert point.value == 12.5
        assert point.unit == "%"
        assert point.dimensions == ()


class TestBuildMetricPoints:
    """Tests for build_metric_points()."""

    @pytest.fixture
    def snapshot(self) -> AggregatorSnapshot:
        return AggregatorSnapshot(
            total_requests=3,
            requests_by_method={"GET": 1, "POST": 2},
            auth_success=1,
            auth_failure=1,
            pizzas_sold=4,
            pizza_failures=1,
            revenue_cents=1600,
            pizza_creation_latency_ms=250.4,
            last_request_latency_ms=5,
            endpoints={EndpointKey("POST", "/api/auth", 401): EndpointStats(1, 5.0)},
            active_users=2,
        )

    def test_request_counters_by_method(self, snapshot: AggregatorSnapshot) -> None:
        points = build_metric_points(snapshot, timestamp_ns=1)

        assert _find(points, "http_requests_total", method="ALL").value == 3
        assert _find(points, "http_requests_total", method="GET").value == 1
        assert _find(points, "http_requests_total", method="POST").value == 2
        assert _find(points, "http_requests_total", method="PUT").value == 0
        assert _find(points, "http_requests_total", method="DELETE").value == 0

    def test_untracked_methods_are_exported(self) -> None:
        snapshot = AggregatorSnapshot(total_requests=1, requests_by_method={"PATCH": 1})

        points = build_metric_points(snapshot, timestamp_ns=1)

        assert _find(points, "http_requests_total", method="PATCH").value == 1

    def test_endpoint_counters(self, snapshot: AggregatorSnapshot) -> None:
        points = build_metric_points(snapshot, timestamp_ns=1)
        dims = {"method": "POST", "route": "/api/auth", "status": "401"}

        assert _find(points, "http_requests_total", **dims).value == 1
        latency = _find(points, "endpoint_latency_milliseconds_total", **dims)
        assert latency.value == 5.0
        assert latency.unit == "ms"

    def test_gauges_and_business_counters(self, snapshot: AggregatorSnapshot) -> None:
        points = build_metric_points(
            snapshot, {"cpu_percent": 7.0, "memory_percent": 41.0}, timestamp_ns=1
        )

        assert _find(points, "active_users").kind is MetricKind.GAUGE
        assert _find(points, "active_users").value == 2
        assert _find(points, "cpu_percent").value == 7.0
        assert _find(points, "memory_percent").unit == "%"
        assert _find(points, "auth_attempts_total", outcome="success").value == 1
        assert _find(points, "auth_attempts_total", outcome="failure").value == 1
        assert _find(points, "pizzas_sold_total").value == 4
        assert _find(points, "pizza_failures_total").value == 1
        assert _find(points, "revenue_cents_total").unit == "cents"
        assert _find(points, "pizza_creation_latency_milliseconds_total").value == 250.4

    def test_all_points_share_the_export_instant(
        self, snapshot: AggregatorSnapshot
    ) -> None:
        points = build_metric_points(snapshot, timestamp_ns=42)
        assert {p.timestamp_ns for p in points} == {42}
