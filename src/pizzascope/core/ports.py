"""Port interfaces for telemetry sinks.

These protocols define the contracts that sink adapters must implement.
The exporter and shipper depend only on these interfaces, not on concrete
HTTP clients.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MetricsSinkPort(Protocol):
    """Port for pushing encoded metric payloads.

    Examples: OTLPMetricsSink, InMemoryMetricsSink.
    """

    async def push(self, payload: dict[str, Any]) -> None:
        """Deliver one OTLP JSON payload.

        Raises:
            PushError: The remote end answered with a non-2xx status.
        """
        ...


@runtime_checkable
class LogSinkPort(Protocol):
    """Port for pushing batches of log streams.

    Examples: LokiLogSink, InMemoryLogSink.
    """

    async def push(self, payload: dict[str, Any]) -> None:
        """Deliver one Loki push payload.

        Raises:
            PushError: The remote end answered with a non-2xx status.
        """
        ...
