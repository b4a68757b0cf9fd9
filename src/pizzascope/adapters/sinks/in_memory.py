"""In-memory sinks for metrics and log payloads."""

from typing import Any


class InMemoryMetricsSink:
    """In-memory implementation of MetricsSinkPort.

    Keeps every pushed payload in a list. Suitable for testing and local
    development where no collector is available.
    """

    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []

    async def push(self, payload: dict[str, Any]) -> None:
        """Record a metrics payload."""
        self.payloads.append(payload)

    def metrics(self) -> list[dict[str, Any]]:
        """Return every metric from every pushed payload, in push order."""
        return [
            metric
            for payload in self.payloads
            for resource in payload["resourceMetrics"]
            for scope in resource["scopeMetrics"]
            for metric in scope["metrics"]
        ]


class InMemoryLogSink:
    """In-memory implementation of LogSinkPort.

    Keeps every pushed payload in a list. Suitable for testing and local
    development where no Loki endpoint is available.
    """

    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []

    async def push(self, payload: dict[str, Any]) -> None:
        """Record a log push payload."""
        self.payloads.append(payload)

    def lines(self) -> list[str]:
        """Return every pushed line, in push order."""
        return [
            line
            for payload in self.payloads
            for stream in payload["streams"]
            for _, line in stream["values"]
        ]
