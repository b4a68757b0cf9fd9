"""Process-wide accumulation of request, auth and order measurements.

The aggregator is mutated from every in-flight request and read by the
metrics exporter on its timer. All state lives behind one lock so that
concurrent writers never lose updates and snapshots are never torn.
"""

import threading
from collections import Counter
from collections.abc import Hashable

from pizzascope.core.models import AggregatorSnapshot, EndpointKey, EndpointStats


class MetricAggregator:
    """Thread-safe in-memory counters and gauges.

    Cumulative counters are never reset. The active-user gauge is
    window-scoped and cleared by snapshot_and_reset_window().

    Args:
        dedupe_active_users: Count each user once per window (default).
            When False every record_active_user() call increments the
            gauge, over-counting repeat requests from the same user.
    """

    def __init__(self, dedupe_active_users: bool = True) -> None:
        self._lock = threading.Lock()
        self._dedupe_active_users = dedupe_active_users
        self._total_requests = 0
        self._requests_by_method: Counter[str] = Counter()
        self._auth_success = 0
        self._auth_failure = 0
        self._pizzas_sold = 0
        self._pizza_failures = 0
        self._revenue_cents = 0
        self._pizza_creation_latency_ms = 0.0
        self._last_request_latency_ms = 0.0
        self._endpoints: dict[EndpointKey, EndpointStats] = {}
        self._active_user_ids: set[Hashable] = set()
        self._active_user_count = 0

    def record_request(
        self, method: str, route: str, status: int, latency_ms: float
    ) -> None:
        """Count a finished request against its method and endpoint."""
        method = (method or "GET").upper()
        key = EndpointKey(method=method, route=route, status=int(status))
        with self._lock:
            self._total_requests += 1
            self._requests_by_method[method] += 1
            prev = self._endpoints.get(key, EndpointStats())
            self._endpoints[key] = EndpointStats(
                count=prev.count + 1,
                total_latency_ms=prev.total_latency_ms + max(0.0, latency_ms),
            )
            if latency_ms > 0:
                self._last_request_latency_ms = latency_ms

    def record_auth_outcome(self, success: bool) -> None:
        """Count one authentication attempt."""
        with self._lock:
            if success:
                self._auth_success += 1
            else:
                self._auth_failure += 1

    def record_order_outcome(
        self, success: bool, latency_ms: float | None, price_cents: int | None
    ) -> None:
        """Count one order attempt.

        Revenue only grows on success, by max(0, price_cents). Latency is
        accumulated for both outcomes when it is a non-negative number.
        """
        with self._lock:
            if success:
                self._pizzas_sold += 1
                self._revenue_cents += max(0, int(price_cents or 0))
            else:
                self._pizza_failures += 1
            if latency_ms is not None and latency_ms >= 0:
                self._pizza_creation_latency_ms += latency_ms

    def record_active_user(self, user_id: Hashable) -> None:
        """Mark a user as active in the current export window."""
        with self._lock:
            if self._dedupe_active_users:
                self._active_user_ids.add(user_id)
            else:
                self._active_user_count += 1

    def _copy(self) -> AggregatorSnapshot:
        active = (
            len(self._active_user_ids)
            if self._dedupe_active_users
            else self._active_user_count
        )
        return AggregatorSnapshot(
            total_requests=self._total_requests,
            requests_by_method=dict(self._requests_by_method),
            auth_success=self._auth_success,
            auth_failure=self._auth_failure,
            pizzas_sold=self._pizzas_sold,
            pizza_failures=self._pizza_failures,
            revenue_cents=self._revenue_cents,
            pizza_creation_latency_ms=self._pizza_creation_latency_ms,
            last_request_latency_ms=self._last_request_latency_ms,
            endpoints=dict(self._endpoints),
            active_users=active,
        )

    def snapshot(self) -> AggregatorSnapshot:
        """Return a consistent copy of the current state without resetting."""
        with self._lock:
            return self._copy()

    def snapshot_and_reset_window(self) -> AggregatorSnapshot:
        """Return a consistent copy, then clear the active-user window.

        Only the exporter should call this; cumulative counters are untouched
        so the collector can derive rates from successive exports.
        """
        with self._lock:
            snapshot = self._copy()
            self._active_user_ids = set()
            self._active_user_count = 0
        return snapshot
