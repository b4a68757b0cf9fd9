"""Loki push encoder for log entries."""

from collections.abc import Iterable
from typing import Any

from pizzascope.core.models import LogEntry


def encode_streams(entries: Iterable[LogEntry]) -> dict[str, Any]:
    """Group log entries into Loki streams.

    Entries with exactly equal label sets share a stream. Streams appear in
    order of first occurrence and values keep arrival order within a stream.

    Args:
        entries: An iterable of LogEntry objects, oldest first.

    Returns:
        ``{"streams": [{"stream": labels, "values": [[ts, line], ...]}]}``.
        An empty ``streams`` list if no entries.
    """
    streams: dict[tuple[tuple[str, str], ...], dict[str, Any]] = {}
    for entry in entries:
        key = tuple(sorted(entry.labels.items()))
        if key not in streams:
            streams[key] = {"stream": dict(entry.labels), "values": []}
        streams[key]["values"].append([entry.timestamp_ns, entry.line])
    return {"streams": list(streams.values())}
