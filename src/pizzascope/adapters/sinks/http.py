"""httpx-based sinks pushing to an OTLP collector and a Loki endpoint."""

from typing import Any

import httpx

from pizzascope.errors import PushError


class _HTTPSink:
    """POSTs JSON payloads with basic authentication.

    Subclasses only name themselves; the transport is shared.
    """

    name = "http"

    def __init__(
        self,
        url: str,
        credentials: tuple[str, str],
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the sink.

        Args:
            url: Endpoint receiving the POST.
            credentials: (user, password) sent as HTTP basic auth.
            timeout: Seconds before the push gives up.
            transport: Optional httpx transport (used by tests).
        """
        self.url = url
        self._client = httpx.AsyncClient(
            auth=httpx.BasicAuth(*credentials),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def push(self, payload: dict[str, Any]) -> None:
        """POST the payload once.

        Raises:
            PushError: The response status is not 2xx.
            httpx.HTTPError: The request could not be completed.
        """
        response = await self._client.post(self.url, json=payload)
        if not response.is_success:
            raise PushError(self.name, response.status_code, response.text)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


class OTLPMetricsSink(_HTTPSink):
    """MetricsSinkPort implementation for OTLP/HTTP JSON collectors."""

    name = "otlp"


class LokiLogSink(_HTTPSink):
    """LogSinkPort implementation for the Loki push API."""

    name = "loki"
