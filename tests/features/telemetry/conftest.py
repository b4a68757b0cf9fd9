"""BDD step definitions for telemetry export features."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from pizzascope.adapters.frameworks.asgi import RequestTrackerMiddleware
from pizzascope.adapters.sinks.in_memory import InMemoryLogSink, InMemoryMetricsSink
from pizzascope.config import TelemetrySettings
from pizzascope.core.models import EndpointKey
from pizzascope.telemetry import Telemetry


@dataclass
class TelemetryScenarioContext:
    """State shared between the steps of one scenario."""

    telemetry: Telemetry | None = None
    metrics_sink: InMemoryMetricsSink = field(default_factory=InMemoryMetricsSink)
    log_sink: InMemoryLogSink = field(default_factory=InMemoryLogSink)
    shipped: int = 0


def run_async(coro: Any) -> Any:
    """Run a coroutine to completion from a synchronous step."""
    return asyncio.run(coro)


def _exported(payload: dict[str, Any], name: str, **attributes: str) -> int:
    for metric in payload["resourceMetrics"][0]["scopeMetrics"][0]["metrics"]:
        if metric["name"] != name:
            continue
        data = metric.get("sum") or metric["gauge"]
        for point in data["dataPoints"]:
            attrs = {a["key"]: a["value"]["stringValue"] for a in point["attributes"]}
            if all(attrs.get(k) == v for k, v in attributes.items()):
                return point["asInt"]
    raise AssertionError(f"{name}{attributes} was not exported")


async def _request(
    telemetry: Telemetry, method: str, path: str, status: int, delay_ms: int
) -> None:
    async def app(scope, receive, send):
        await asyncio.sleep(delay_ms / 1000)
        await send({"type": "http.response.start", "status": status, "headers": []})
        await send({"type": "http.response.body", "body": b""})

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message: dict[str, Any]) -> None:
        pass

    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [],
        "client": ("127.0.0.1", 50000),
    }
    await RequestTrackerMiddleware(app, telemetry)(scope, receive, send)


@pytest.fixture
def ctx() -> TelemetryScenarioContext:
    """Fresh scenario context for each test."""
    return TelemetryScenarioContext()


# === Background Steps ===
@given("a telemetry core with in-memory sinks")
def step_telemetry(ctx: TelemetryScenarioContext) -> None:
    ctx.telemetry = Telemetry(
        TelemetrySettings(environment="production"),
        metrics_sink=ctx.metrics_sink,
        log_sink=ctx.log_sink,
    )
    ctx.telemetry.exporter._system_reader = dict


# === Given Steps ===
@given(parsers.parse('users "{first}" and "{second}" are active'))
def step_active_users(ctx: TelemetryScenarioContext, first: str, second: str) -> None:
    assert ctx.telemetry is not None
    for user in (first, second, first):
        ctx.telemetry.record_active_user(user)


@given(parsers.parse("{count:d} log entries are queued"))
def step_queue_entries(ctx: TelemetryScenarioContext, count: int) -> None:
    assert ctx.telemetry is not None
    for i in range(count):
        ctx.telemetry.log_db(f"SELECT {i}")


# === When Steps ===
@when(
    parsers.parse(
        'a {method} request to "{path}" returns {status:d} after {delay:d}ms'
    )
)
def step_request(
    ctx: TelemetryScenarioContext, method: str, path: str, status: int, delay: int
) -> None:
    assert ctx.telemetry is not None
    run_async(_request(ctx.telemetry, method, path, status, delay))


@when(parsers.parse("an order for {cents:d} cents succeeds"))
def step_order(ctx: TelemetryScenarioContext, cents: int) -> None:
    assert ctx.telemetry is not None
    ctx.telemetry.record_order_outcome(True, 50, cents)


@when("the metrics exporter ticks")
def step_tick(ctx: TelemetryScenarioContext) -> None:
    assert ctx.telemetry is not None
    assert run_async(ctx.telemetry.exporter.tick()) is True


@when(parsers.parse("the log shipper flushes with a batch size of {size:d}"))
def step_flush(ctx: TelemetryScenarioContext, size: int) -> None:
    assert ctx.telemetry is not None
    ctx.telemetry.shipper.max_batch = size
    ctx.shipped = run_async(ctx.telemetry.shipper.flush())


# === Then Steps ===
@then(parsers.parse('the exported "{name}" for {key} "{value}" is {expected:d}'))
def step_exported(
    ctx: TelemetryScenarioContext, name: str, key: str, value: str, expected: int
) -> None:
    payload = ctx.metrics_sink.payloads[-1]
    assert _exported(payload, name, **{key: value}) == expected


@then(
    parsers.parse(
        'endpoint "{method} {route} {status:d}" has been counted {count:d} time'
    )
)
def step_endpoint_count(
    ctx: TelemetryScenarioContext, method: str, route: str, status: int, count: int
) -> None:
    assert ctx.telemetry is not None
    endpoints = ctx.telemetry.aggregator.snapshot().endpoints
    assert endpoints[EndpointKey(method, route, status)].count == count
    payload = ctx.metrics_sink.payloads[-1]
    dims = {"method": method, "route": route, "status": str(status)}
    assert _exported(payload, "http_requests_total", **dims) == count


@then(parsers.parse("the exported active users are {first:d} then {second:d}"))
def step_active_users_exported(
    ctx: TelemetryScenarioContext, first: int, second: int
) -> None:
    values = [_exported(p, "active_users") for p in ctx.metrics_sink.payloads]
    assert values == [first, second]


@then(parsers.parse("the exported revenue is {first:d} then {second:d}"))
def step_revenue_exported(
    ctx: TelemetryScenarioContext, first: int, second: int
) -> None:
    values = [_exported(p, "revenue_cents_total") for p in ctx.metrics_sink.payloads]
    assert values == [first, second]


@then(parsers.parse("{count:d} entries are shipped in queue order"))
def step_shipped(ctx: TelemetryScenarioContext, count: int) -> None:
    assert ctx.shipped == count
    queries = [json.loads(line)["query"] for line in ctx.log_sink.lines()]
    assert queries == [f"SELECT {i}" for i in range(count)]


@then(parsers.parse("{count:d} entries remain queued"))
def step_remaining(ctx: TelemetryScenarioContext, count: int) -> None:
    assert ctx.telemetry is not None
    assert len(ctx.telemetry.log_queue) == count
