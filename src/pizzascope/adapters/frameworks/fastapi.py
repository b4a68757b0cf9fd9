"""FastAPI adapter wiring telemetry into an application."""

from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pizzascope.adapters.frameworks.asgi import (
    DEFAULT_AUTH_ROUTES,
    ASGIApp,
    HTTPLoggingMiddleware,
    Message,
    Receive,
    RequestTrackerMiddleware,
    Scope,
    Send,
)
from pizzascope.telemetry import Telemetry


def telemetry_lifespan(
    telemetry: Telemetry,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Create a lifespan that runs the export timers while the app is up.

    Example:
        ```python
        telemetry = Telemetry.from_settings()
        app = FastAPI(lifespan=telemetry_lifespan(telemetry))
        ```
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        telemetry.start()
        try:
            yield
        finally:
            await telemetry.stop()

    return lifespan


def create_error_handler(
    telemetry: Telemetry,
) -> Callable[[Request, Exception], Awaitable[JSONResponse]]:
    """Create the global exception handler logging to the error stream.

    Args:
        telemetry: Telemetry receiving the error entry.

    Returns:
        Handler answering with ``{"message": str(exc)}`` and the exception's
        ``status_code`` attribute when it has one, otherwise 500.
    """

    async def handle_error(request: Request, exc: Exception) -> JSONResponse:
        telemetry.log_error(exc, {"method": request.method, "path": request.url.path})
        status_code = getattr(exc, "status_code", 500)
        if not isinstance(status_code, int):
            status_code = 500
        return JSONResponse(status_code=status_code, content={"message": str(exc)})

    return handle_error


class ErrorResponseMiddleware:
    """Answers unhandled exceptions with the telemetry error handler.

    Installed innermost, so the request tracker and HTTP logging middleware
    observe the status and body the client actually receives. Exceptions
    raised after the response has started are re-raised unchanged.
    """

    def __init__(self, app: ASGIApp, telemetry: Telemetry) -> None:
        self.app = app
        self._handle_error = create_error_handler(telemetry)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that processes requests through the wrapped app."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def wrapped_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, wrapped_send)
        except Exception as exc:
            if response_started:
                raise
            response = await self._handle_error(Request(scope, receive), exc)
            await response(scope, receive, send)


def install_telemetry(
    app: FastAPI,
    telemetry: Telemetry,
    exclude_paths: list[str] | None = None,
    auth_routes: Iterable[str] = DEFAULT_AUTH_ROUTES,
    handle_errors: bool = True,
) -> None:
    """Add request tracking, HTTP logging and error logging to an app.

    Middleware added first runs innermost: errors are answered before the
    logging middleware, which runs inside the request tracker.

    Args:
        app: The FastAPI application.
        telemetry: Telemetry shared by every request.
        exclude_paths: Paths neither counted nor logged.
        auth_routes: Route patterns counted as authentication attempts.
        handle_errors: Answer unhandled exceptions with ``{"message": ...}``
            and log them to the error stream.
    """
    if handle_errors:
        app.add_middleware(ErrorResponseMiddleware, telemetry=telemetry)
    app.add_middleware(
        HTTPLoggingMiddleware, telemetry=telemetry, exclude_paths=exclude_paths
    )
    app.add_middleware(
        RequestTrackerMiddleware,
        telemetry=telemetry,
        exclude_paths=exclude_paths,
        auth_routes=auth_routes,
    )
