"""ASGI middleware feeding the telemetry core.

Both middlewares are framework-agnostic and work with any ASGI server or
framework. They observe requests and responses without changing a single
message sent to the client.
"""

import fnmatch
import json
import time
from collections.abc import Callable, Coroutine, Iterable
from typing import Any

from pizzascope.core.logs import http_line
from pizzascope.telemetry import Telemetry

# ASGI type aliases
Scope = dict[str, Any]
Message = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, Message]]
Send = Callable[[Message], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

DEFAULT_AUTH_ROUTES = ("/api/auth",)


def _extract_header(scope: Scope, header_name: str) -> str | None:
    """Return the first value of a request header (case-insensitive), or None."""
    header_bytes = header_name.lower().encode()
    headers: Iterable[tuple[bytes, bytes]] = scope.get("headers") or []
    for name, value in headers:
        if name.lower() == header_bytes:
            return value.decode("latin-1")
    return None


def _route_label(scope: Scope) -> str:
    """Return the matched route template, falling back to the raw path.

    Routers such as Starlette/FastAPI store the matched route object in
    ``scope["route"]`` once routing has happened.
    """
    route = scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    if isinstance(template, str) and template:
        return template
    return str(scope.get("path") or "unknown")


def _path_with_query(scope: Scope) -> str:
    path = str(scope.get("path", ""))
    query_string: bytes = scope.get("query_string") or b""
    if query_string:
        return f"{path}?{query_string.decode('latin-1')}"
    return path


def _client_ip(scope: Scope) -> str:
    client = scope.get("client")
    if client:
        return str(client[0])
    return _extract_header(scope, "x-forwarded-for") or ""


def _parse_body(raw: bytes) -> Any:
    """Parse a captured JSON request body, keeping undecodable bodies as text."""
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")


class _ExcludeMixin:
    exclude_paths: list[str]

    def _path_excluded(self, path: str) -> bool:
        """Check if path matches any pattern in exclude_paths."""
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)


class RequestTrackerMiddleware(_ExcludeMixin):
    """Counts every HTTP request into the metric aggregator.

    On completion the request is recorded by (method, route, status) with its
    latency. Requests whose route matches one of ``auth_routes`` also count
    as an authentication attempt, successful when the status is 2xx.
    """

    def __init__(
        self,
        app: ASGIApp,
        telemetry: Telemetry,
        exclude_paths: list[str] | None = None,
        auth_routes: Iterable[str] = DEFAULT_AUTH_ROUTES,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            telemetry: Telemetry receiving the measurements.
            exclude_paths: Paths not recorded. Supports exact matches and
                wildcard patterns (e.g., "/internal/*").
            auth_routes: Route patterns counted as authentication attempts.
                Pass an empty tuple when handlers call
                ``Telemetry.record_auth_outcome`` themselves.
        """
        self.app = app
        self.telemetry = telemetry
        self.exclude_paths = exclude_paths or []
        self.auth_routes = tuple(auth_routes)

    def _is_auth_route(self, route: str) -> bool:
        return any(fnmatch.fnmatch(route, pattern) for pattern in self.auth_routes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that processes requests through the wrapped app."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        captured: dict[str, Any] = {"status": None}

        async def wrapped_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                captured["status"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, wrapped_send)
        except Exception:
            if captured["status"] is None:
                captured["status"] = 500
            raise
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            self._record(scope, captured["status"] or 500, latency_ms)

    def _record(self, scope: Scope, status: int, latency_ms: float) -> None:
        if self._path_excluded(scope["path"]):
            return
        route = _route_label(scope)
        self.telemetry.record_request(scope["method"], route, status, latency_ms)
        if self._is_auth_route(route):
            self.telemetry.record_auth_outcome(200 <= status < 300)


class HTTPLoggingMiddleware(_ExcludeMixin):
    """Queues one sanitized http-stream log entry per request.

    The JSON request body is captured from the receive stream as the app
    consumes it, and the response body from the send stream as it is
    transmitted. Both are sanitized and truncated before queueing.
    """

    def __init__(
        self,
        app: ASGIApp,
        telemetry: Telemetry,
        exclude_paths: list[str] | None = None,
    ) -> None:
        self.app = app
        self.telemetry = telemetry
        self.exclude_paths = exclude_paths or []
        # UTF-8 needs at most four bytes per character.
        self._max_response_bytes = telemetry.limits.response_body * 4 + 1
        self._max_request_bytes = telemetry.limits.request_body * 4 + 1

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that processes requests through the wrapped app."""
        if scope["type"] != "http" or self._path_excluded(scope["path"]):
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        content_type = _extract_header(scope, "content-type") or ""
        is_json = content_type.split(";")[0].strip().lower() == "application/json"
        request_body = bytearray()
        response_body = bytearray()
        captured: dict[str, Any] = {"status": None, "request_overflow": False}

        async def wrapped_receive() -> Message:
            message = await receive()
            if is_json and message["type"] == "http.request":
                chunk = message.get("body", b"")
                if len(request_body) + len(chunk) <= self._max_request_bytes:
                    request_body.extend(chunk)
                else:
                    captured["request_overflow"] = True
            return message

        async def wrapped_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                captured["status"] = message["status"]
            elif message["type"] == "http.response.body":
                room = self._max_response_bytes - len(response_body)
                if room > 0:
                    response_body.extend(message.get("body", b"")[:room])
            await send(message)

        try:
            await self.app(scope, wrapped_receive, wrapped_send)
        except Exception:
            if captured["status"] is None:
                captured["status"] = 500
            raise
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            if captured["request_overflow"]:
                body: Any = bytes(request_body).decode("utf-8", errors="replace")
            else:
                body = _parse_body(bytes(request_body))
            self.telemetry.log_http(
                http_line(
                    method=scope["method"],
                    path=_path_with_query(scope),
                    status=captured["status"] or 500,
                    has_auth=_extract_header(scope, "authorization") is not None,
                    request_body=body,
                    response_body=bytes(response_body).decode(
                        "utf-8", errors="replace"
                    ),
                    latency_ms=latency_ms,
                    client_ip=_client_ip(scope),
                    user_agent=_extract_header(scope, "user-agent") or "",
                    limits=self.telemetry.limits,
                )
            )
