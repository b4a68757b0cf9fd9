"""Python logging handler adapter for pizzascope.

This adapter bridges Python's standard library logging module to the
LogQueue, so application log records are shipped alongside the http, db,
factory and error streams.
"""

import logging
import traceback
from typing import Any

from pizzascope.core.log_queue import LogQueue
from pizzascope.core.logs import APP_STREAM, iso_now
from pizzascope.core.redaction import sanitize, truncate

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

_DEFAULT_MAX_MESSAGE = 2000
_DEFAULT_MAX_STACK = 4000


class QueueLogHandler(logging.Handler):
    """Logging handler that queues records on the ``app`` stream.

    Example:
        ```python
        telemetry = Telemetry.from_settings()
        handler = QueueLogHandler(telemetry.log_queue, level=logging.WARNING)
        logging.getLogger().addHandler(handler)
        ```
    """

    def __init__(
        self,
        queue: LogQueue,
        level: int = logging.NOTSET,
        max_message: int = _DEFAULT_MAX_MESSAGE,
        max_stack: int = _DEFAULT_MAX_STACK,
    ) -> None:
        """Initialize the handler with the queue records are appended to.

        Args:
            queue: LogQueue shared with the shipper.
            level: Minimum level handled.
            max_message: Truncation cap for the sanitized message.
            max_stack: Truncation cap for the exception traceback.
        """
        super().__init__(level)
        self._queue = queue
        self._max_message = max_message
        self._max_stack = max_stack

    def emit(self, record: logging.LogRecord) -> None:
        """Queue a log record.

        Args:
            record: The log record to emit.
        """
        try:
            line: dict[str, Any] = {
                "ts": iso_now(),
                "level": record.levelname,
                "logger": record.name,
                "message": truncate(sanitize(record.getMessage()), self._max_message),
                "funcName": record.funcName or "",
                "lineno": record.lineno,
            }

            # Add any extra attributes passed via logging call
            for key, value in record.__dict__.items():
                if key not in _STANDARD_LOGRECORD_ATTRS and isinstance(
                    value, (str, int, float, bool)
                ):
                    line[key] = sanitize(value) if isinstance(value, str) else value

            if record.exc_info:
                exc_type, exc_value, exc_tb = record.exc_info
                if exc_type is not None:
                    line["exc_type"] = exc_type.__name__
                if exc_value is not None:
                    line["exc_message"] = sanitize(str(exc_value))
                if exc_tb is not None:
                    stack = traceback.format_exception(exc_type, exc_value, exc_tb)
                    line["exc_traceback"] = truncate("".join(stack), self._max_stack)

            self._queue.enqueue(APP_STREAM, line)
        except Exception:
            self.handleError(record)
