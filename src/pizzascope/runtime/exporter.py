"""Periodic export of aggregated metrics to an OTLP collector."""

import logging
from collections.abc import Callable, Mapping

import httpx

from pizzascope.core.aggregator import MetricAggregator
from pizzascope.core.encoding.otlp import encode_metrics
from pizzascope.core.metrics import build_metric_points
from pizzascope.core.ports import MetricsSinkPort
from pizzascope.core.system import read_system_gauges
from pizzascope.errors import PushError

logger = logging.getLogger(__name__)


class MetricsExporter:
    """Snapshots the aggregator and pushes one OTLP payload per tick.

    Delivery is best-effort: a failed push is logged and dropped. Counters are
    cumulative, so the next successful tick carries the correct totals; only
    that tick's gauge readings are lost.
    """

    def __init__(
        self,
        aggregator: MetricAggregator,
        sink: MetricsSinkPort | None,
        source: str,
        enabled: bool = True,
        system_reader: Callable[[], Mapping[str, float]] = read_system_gauges,
    ) -> None:
        """Initialize the exporter.

        Args:
            aggregator: State to snapshot on each tick.
            sink: Destination for payloads. None disables export.
            source: Value of the "source" attribute on every data point.
            enabled: False skips export entirely (used in test environments).
            system_reader: Callable returning host gauges at export time.
        """
        self.aggregator = aggregator
        self.sink = sink
        self.source = source
        self.enabled = enabled
        self._system_reader = system_reader
        self._exporting = False

    @property
    def active(self) -> bool:
        return self.enabled and self.sink is not None

    async def tick(self) -> bool:
        """Export the current state once.

        Returns:
            True if a payload was accepted by the sink, False if the tick was
            skipped or the push failed.
        """
        sink = self.sink
        if sink is None or not self.enabled or self._exporting:
            return False
        self._exporting = True
        try:
            snapshot = self.aggregator.snapshot_and_reset_window()
            points = build_metric_points(snapshot, self._system_reader())
            payload = encode_metrics(points, self.source)
            try:
                await sink.push(payload)
            except PushError as e:
                logger.warning(
                    "Failed to push metrics: status=%s body=%s", e.status_code, e.body
                )
                return False
            except httpx.HTTPError as e:
                logger.warning("Failed to push metrics: %s", e)
                return False
            return True
        finally:
            self._exporting = False
