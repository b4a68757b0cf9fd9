"""Shared test fixtures for all test modules."""

import asyncio
from typing import Any

import httpx
import pytest

from pizzascope.adapters.sinks.in_memory import InMemoryLogSink, InMemoryMetricsSink
from pizzascope.config import TelemetrySettings
from pizzascope.telemetry import Telemetry

_TELEMETRY_ENV_VARS = (
    "METRICS_URL",
    "METRICS_API_KEY",
    "METRICS_INSTANCE_ID",
    "METRICS_SOURCE",
    "METRICS_PERIOD",
    "METRICS_DEDUPE_ACTIVE_USERS",
    "LOGGING_URL",
    "LOGGING_USER_ID",
    "LOGGING_API_KEY",
    "LOGGING_SOURCE",
    "LOGGING_FLUSH_INTERVAL",
    "LOGGING_MAX_BATCH",
    "APP_ENV",
    "TELEMETRY_PUSH_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_telemetry_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host environment from leaking into settings under test."""
    for name in _TELEMETRY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> TelemetrySettings:
    """Settings with both backends unconfigured."""
    return TelemetrySettings(environment="production")


@pytest.fixture
def metrics_sink() -> InMemoryMetricsSink:
    return InMemoryMetricsSink()


@pytest.fixture
def log_sink() -> InMemoryLogSink:
    return InMemoryLogSink()


@pytest.fixture
def telemetry(
    settings: TelemetrySettings,
    metrics_sink: InMemoryMetricsSink,
    log_sink: InMemoryLogSink,
) -> Telemetry:
    """Telemetry pushing to in-memory sinks."""
    return Telemetry(settings, metrics_sink=metrics_sink, log_sink=log_sink)


# === ASGI Test Fixtures ===


@pytest.fixture
def basic_asgi_app():
    """Basic ASGI app fixture that returns 200 OK."""
    from pizzascope.adapters.frameworks.asgi import Receive, Scope, Send

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"OK"})

    return app


@pytest.fixture
def asgi_scope():
    """Factory fixture for creating ASGI scope dicts."""
    from pizzascope.adapters.frameworks.asgi import Scope

    def _scope(
        method: str = "GET",
        path: str = "/test",
        headers: list[tuple[bytes, bytes]] | None = None,
        query_string: bytes = b"",
        client: tuple[str, int] | None = ("127.0.0.1", 50000),
    ) -> Scope:
        return {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": query_string,
            "headers": headers or [],
            "client": client,
        }

    return _scope


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture."""

    responses: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_receive():
    """Factory fixture for a receive callable delivering one request body."""

    def _receive(body: bytes = b""):
        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": body, "more_body": False}

        return receive

    return _receive


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Application exceptions are turned into 500 responses instead of being
    raised into the test, the same as a real server would.
    """

    def _get_client(app):
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        )

    return _get_client


class BlockingSink:
    """Sink whose push waits until ``release`` is set."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.payloads: list[dict[str, Any]] = []

    async def push(self, payload: dict[str, Any]) -> None:
        self.payloads.append(payload)
        await self.release.wait()


@pytest.fixture
def blocking_sink() -> BlockingSink:
    return BlockingSink()
