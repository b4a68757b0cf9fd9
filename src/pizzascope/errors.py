"""Exceptions raised inside the telemetry core.

None of these ever reach an HTTP client: the exporter and shipper catch them
at their timer boundary and log them.
"""


class TelemetryError(Exception):
    """Base class for telemetry failures."""


class PushError(TelemetryError):
    """A sink rejected a payload with a non-success status.

    Attributes:
        sink: Name of the sink that failed (e.g., "otlp", "loki").
        status_code: HTTP status returned by the remote end.
        body: Response body, if it could be read.
    """

    def __init__(self, sink: str, status_code: int, body: str = "") -> None:
        super().__init__(f"{sink} push failed with status {status_code}: {body}")
        self.sink = sink
        self.status_code = status_code
        self.body = body
