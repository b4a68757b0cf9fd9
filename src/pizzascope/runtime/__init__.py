"""Background export of metrics and logs."""

from pizzascope.runtime.exporter import MetricsExporter
from pizzascope.runtime.scheduler import PeriodicTask
from pizzascope.runtime.shipper import LogShipper

__all__ = ["LogShipper", "MetricsExporter", "PeriodicTask"]
