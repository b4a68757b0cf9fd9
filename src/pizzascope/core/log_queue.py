"""In-memory FIFO buffer of log entries awaiting shipment."""

import json
import threading
import time
from collections import deque
from collections.abc import Mapping
from typing import Any

from pizzascope.core.models import LogEntry


def _serialize(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return json.dumps(str(payload))


class LogQueue:
    """Ordered queue of LogEntry objects shared by request handlers and the shipper.

    Entries are appended from request-handling code and removed in batches by
    the shipper. Each entry is handed out exactly once.

    Args:
        default_labels: Labels merged into every entry (e.g., source, env).
            Stream labels passed to enqueue() take precedence.
    """

    def __init__(self, default_labels: Mapping[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._entries: deque[LogEntry] = deque()
        self.default_labels = dict(default_labels or {})

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def enqueue(self, stream_labels: Mapping[str, str], payload: Any) -> LogEntry:
        """Append a payload to the queue tail.

        Args:
            stream_labels: Labels identifying the stream (e.g., {"stream": "http"}).
            payload: JSON-serializable object; unserializable values degrade
                to their string form.

        Returns:
            The queued LogEntry.
        """
        entry = LogEntry(
            labels={**self.default_labels, **stream_labels},
            timestamp_ns=str(time.time_ns()),
            line=_serialize(payload),
        )
        with self._lock:
            self._entries.append(entry)
        return entry

    def drain(self, max_items: int) -> list[LogEntry]:
        """Remove and return up to max_items oldest entries, in arrival order."""
        with self._lock:
            count = min(max_items, len(self._entries))
            return [self._entries.popleft() for _ in range(count)]

    def peek(self) -> list[LogEntry]:
        """Return a copy of the pending entries without removing them."""
        with self._lock:
            return list(self._entries)
