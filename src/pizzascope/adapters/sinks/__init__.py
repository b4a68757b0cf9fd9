"""Sink adapters implementing core ports."""

from pizzascope.adapters.sinks.http import LokiLogSink, OTLPMetricsSink
from pizzascope.adapters.sinks.in_memory import InMemoryLogSink, InMemoryMetricsSink

__all__ = [
    "InMemoryLogSink",
    "InMemoryMetricsSink",
    "LokiLogSink",
    "OTLPMetricsSink",
]
