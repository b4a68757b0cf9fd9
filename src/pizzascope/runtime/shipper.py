"""Periodic batch shipping of queued log entries to Loki."""

import logging

import httpx

from pizzascope.core.encoding.loki import encode_streams
from pizzascope.core.log_queue import LogQueue
from pizzascope.core.ports import LogSinkPort
from pizzascope.errors import PushError

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH = 500


class LogShipper:
    """Drains bounded batches from a LogQueue and pushes them once.

    Drained entries are never requeued: a failed push loses that batch and
    only a diagnostic is logged.
    """

    def __init__(
        self,
        queue: LogQueue,
        sink: LogSinkPort | None,
        max_batch: int = DEFAULT_MAX_BATCH,
    ) -> None:
        self.queue = queue
        self.sink = sink
        self.max_batch = max_batch
        self._flushing = False

    @property
    def flushing(self) -> bool:
        return self._flushing

    async def flush(self) -> int:
        """Ship up to ``max_batch`` of the oldest queued entries.

        Does nothing while another flush is in flight, when the queue is
        empty, or when no sink is configured.

        Returns:
            Number of entries drained from the queue.
        """
        if self.sink is None or self._flushing or len(self.queue) == 0:
            return 0
        self._flushing = True
        try:
            batch = self.queue.drain(self.max_batch)
            if not batch:
                return 0
            try:
                await self.sink.push(encode_streams(batch))
            except PushError as e:
                logger.warning(
                    "Loki push failed: status=%s body=%s", e.status_code, e.body
                )
            except httpx.HTTPError as e:
                logger.warning("Loki push failed: %s", e)
            return len(batch)
        finally:
            self._flushing = False
