"""The telemetry object shared by middleware, route handlers and timers.

A ``Telemetry`` owns the metric aggregator, the log queue, both sinks and
both timers. Application code receives it by reference and calls its hooks
at request lifecycle points; it never holds telemetry state itself.
"""

import logging
import time
from collections.abc import Hashable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from pizzascope.adapters.sinks.http import LokiLogSink, OTLPMetricsSink
from pizzascope.config import TelemetrySettings, TruncationLimits
from pizzascope.core import logs
from pizzascope.core.aggregator import MetricAggregator
from pizzascope.core.log_queue import LogQueue
from pizzascope.core.ports import LogSinkPort, MetricsSinkPort
from pizzascope.runtime.exporter import MetricsExporter
from pizzascope.runtime.scheduler import PeriodicTask
from pizzascope.runtime.shipper import LogShipper

logger = logging.getLogger(__name__)


class Telemetry:
    """Metrics aggregation and log shipping for one process."""

    def __init__(
        self,
        settings: TelemetrySettings,
        metrics_sink: MetricsSinkPort | None = None,
        log_sink: LogSinkPort | None = None,
    ) -> None:
        """Initialize from settings and already-built sinks.

        Use ``Telemetry.from_settings`` to build the HTTP sinks from
        configuration. Passing None for a sink disables that backend.
        """
        self.settings = settings
        self.limits: TruncationLimits = settings.limits
        self.aggregator = MetricAggregator(
            dedupe_active_users=settings.dedupe_active_users
        )
        self.log_queue = LogQueue(
            default_labels={
                "source": settings.logging_source,
                "env": settings.environment,
            }
        )
        self.exporter = MetricsExporter(
            self.aggregator,
            metrics_sink,
            source=settings.metrics_source,
            enabled=not settings.is_test_environment,
        )
        self.shipper = LogShipper(
            self.log_queue, log_sink, max_batch=settings.log_max_batch
        )
        self._metrics_timer = PeriodicTask(
            "metrics-export", settings.metrics_period, self.exporter.tick
        )
        self._logs_timer = PeriodicTask(
            "log-flush", settings.log_flush_interval, self.shipper.flush
        )

    @classmethod
    def from_settings(cls, settings: TelemetrySettings | None = None) -> "Telemetry":
        """Build a Telemetry with HTTP sinks for every configured backend."""
        settings = settings or TelemetrySettings()
        metrics_sink = None
        metrics_credentials = settings.metrics_credentials()
        if settings.metrics_url and metrics_credentials:
            metrics_sink = OTLPMetricsSink(
                settings.metrics_url,
                metrics_credentials,
                timeout=settings.push_timeout,
            )
        log_sink = None
        logging_credentials = settings.logging_credentials()
        if settings.logging_url and logging_credentials:
            log_sink = LokiLogSink(
                settings.logging_url,
                logging_credentials,
                timeout=settings.push_timeout,
            )
        logger.info(
            "Telemetry configured: metrics_url=%s metrics_enabled=%s "
            "logging_enabled=%s source=%s",
            settings.metrics_url or "-",
            metrics_sink is not None and not settings.is_test_environment,
            log_sink is not None,
            settings.metrics_source,
        )
        return cls(settings, metrics_sink=metrics_sink, log_sink=log_sink)

    # --- Lifecycle ---

    @property
    def running(self) -> bool:
        return self._metrics_timer.running or self._logs_timer.running

    def start(self) -> None:
        """Start both background timers on the running event loop."""
        self._metrics_timer.start()
        self._logs_timer.start()

    async def stop(self) -> None:
        """Stop both timers, drain the log queue in batches, and close HTTP sinks."""
        await self._metrics_timer.stop()
        await self._logs_timer.stop()
        while await self.shipper.flush():
            pass
        for sink in (self.exporter.sink, self.shipper.sink):
            aclose = getattr(sink, "aclose", None)
            if aclose is not None:
                await aclose()

    # --- Metric hooks ---

    def record_request(
        self, method: str, route: str, status: int, latency_ms: float
    ) -> None:
        self.aggregator.record_request(method, route, status, latency_ms)

    def record_auth_outcome(self, success: bool) -> None:
        self.aggregator.record_auth_outcome(success)

    def record_order_outcome(
        self, success: bool, latency_ms: float | None, price_cents: int | None = 0
    ) -> None:
        self.aggregator.record_order_outcome(success, latency_ms, price_cents)

    def record_active_user(self, user_id: Hashable) -> None:
        self.aggregator.record_active_user(user_id)

    # --- Log hooks ---

    def log_http(self, line: Mapping[str, Any]) -> None:
        """Queue an already built http-stream line."""
        self.log_queue.enqueue(logs.HTTP_STREAM, dict(line))

    def log_db(
        self,
        query: str,
        params: Sequence[Any] | Mapping[str, Any] = (),
        duration_ms: float | None = None,
    ) -> None:
        """Queue a db-stream entry for one executed query."""
        self.log_queue.enqueue(
            logs.DB_STREAM, logs.db_line(query, params, duration_ms, limits=self.limits)
        )

    @contextmanager
    def db_query(
        self, query: str, params: Sequence[Any] | Mapping[str, Any] = ()
    ) -> Iterator[None]:
        """Time the enclosed block and log it as a db query.

        The entry is queued even when the block raises.
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            self.log_db(query, params, (time.perf_counter() - start) * 1000)

    def log_factory_request(
        self,
        url: str,
        req_body: Any = None,
        status: int | None = None,
        resp_body: Any = None,
        latency_ms: float | None = None,
    ) -> None:
        """Queue a factory-stream entry for one order-fulfilment call."""
        self.log_queue.enqueue(
            logs.FACTORY_STREAM,
            logs.factory_line(
                url=url,
                request_body=req_body,
                status=status,
                response_body=resp_body,
                latency_ms=latency_ms,
                limits=self.limits,
            ),
        )

    def log_error(
        self, exc: BaseException, context: Mapping[str, Any] | None = None
    ) -> None:
        """Queue an error-stream entry for a caught exception."""
        self.log_queue.enqueue(
            logs.ERROR_STREAM, logs.error_line(exc, context, limits=self.limits)
        )
