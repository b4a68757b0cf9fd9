"""Telemetry core for the pizza service: metrics export and log shipping."""

from pizzascope.config import TelemetrySettings, TruncationLimits, get_settings
from pizzascope.core.aggregator import MetricAggregator
from pizzascope.core.log_queue import LogQueue
from pizzascope.core.models import (
    AggregatorSnapshot,
    EndpointKey,
    EndpointStats,
    LogEntry,
    MetricKind,
    MetricPoint,
)
from pizzascope.core.redaction import sanitize, truncate
from pizzascope.errors import PushError, TelemetryError
from pizzascope.telemetry import Telemetry

__all__ = [
    "AggregatorSnapshot",
    "EndpointKey",
    "EndpointStats",
    "LogEntry",
    "LogQueue",
    "MetricAggregator",
    "MetricKind",
    "MetricPoint",
    "PushError",
    "Telemetry",
    "TelemetryError",
    "TelemetrySettings",
    "TruncationLimits",
    "get_settings",
    "sanitize",
    "truncate",
]
