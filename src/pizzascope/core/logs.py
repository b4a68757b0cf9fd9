"""Builders for the structured lines shipped on each log stream."""

import traceback
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from pizzascope.config import TruncationLimits
from pizzascope.core.redaction import sanitize, truncate

HTTP_STREAM = {"stream": "http"}
DB_STREAM = {"stream": "db"}
FACTORY_STREAM = {"stream": "factory"}
ERROR_STREAM = {"stream": "error"}
APP_STREAM = {"stream": "app"}


def iso_now() -> str:
    """Return the current UTC time as an ISO-8601 string with millisecond precision."""
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return now.replace("+00:00", "Z")


def _scrub(value: Any, limit: int) -> str:
    return truncate(sanitize(value), limit)


def http_line(
    *,
    method: str,
    path: str,
    status: int,
    has_auth: bool,
    request_body: Any,
    response_body: str,
    latency_ms: float,
    client_ip: str,
    user_agent: str,
    limits: TruncationLimits,
) -> dict[str, Any]:
    """Build the http-stream line for one finished request.

    Args:
        method: Request method.
        path: Request path including query string.
        status: Response status code.
        has_auth: Whether an authorization header was present.
        request_body: Parsed JSON request body, raw text, or None.
        response_body: Response body as text.
        latency_ms: Request duration in milliseconds.
        client_ip: Client address.
        user_agent: Raw user-agent header value.
        limits: Truncation caps per field.

    Returns:
        Dictionary ready to enqueue on the http stream.
    """
    return {
        "ts": iso_now(),
        "method": method,
        "path": path,
        "status": status,
        "hasAuth": has_auth,
        "reqBody": _scrub(request_body, limits.request_body),
        "respBody": _scrub(response_body, limits.response_body),
        "latencyMs": round(latency_ms),
        "ip": client_ip,
        "ua": truncate(user_agent, limits.user_agent),
    }


def db_line(
    query: str,
    params: Sequence[Any] | Mapping[str, Any] = (),
    duration_ms: float | None = None,
    *,
    limits: TruncationLimits,
) -> dict[str, Any]:
    """Build the db-stream line for one executed query."""
    line: dict[str, Any] = {
        "ts": iso_now(),
        "query": _scrub(query, limits.db_query),
        "params": _scrub(params, limits.db_params),
    }
    if duration_ms is not None:
        line["durationMs"] = round(duration_ms)
    return line


def factory_line(
    *,
    url: str,
    request_body: Any,
    status: int | None,
    response_body: Any,
    latency_ms: float | None,
    limits: TruncationLimits,
) -> dict[str, Any]:
    """Build the factory-stream line for one call to the order-fulfilment service."""
    return {
        "ts": iso_now(),
        "url": url,
        "status": status,
        "latencyMs": round(latency_ms or 0),
        "reqBody": _scrub(request_body, limits.factory_body),
        "respBody": _scrub(response_body, limits.factory_body),
    }


def error_line(
    exc: BaseException,
    context: Mapping[str, Any] | None = None,
    *,
    limits: TruncationLimits,
) -> dict[str, Any]:
    """Build the error-stream line for a caught exception.

    The stack is truncated but not sanitized; message and context are both.
    """
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return {
        "ts": iso_now(),
        "name": type(exc).__name__,
        "message": _scrub(str(exc), limits.error_message),
        "stack": truncate(stack, limits.stack),
        "context": _scrub(dict(context or {}), limits.error_context),
    }
