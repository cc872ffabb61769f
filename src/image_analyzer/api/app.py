"""FastAPI application factory."""

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from image_analyzer.api.routes import API_VERSION, rate_limit_headers
from image_analyzer.api.routes import router as api_router
from image_analyzer.app_logging import configure_logging
from image_analyzer.config import parse_cors_origins
from image_analyzer.containers import AppContainer
from image_analyzer.errors import AppError, RateLimitExceeded
from image_analyzer.timestamps import to_iso, utcnow

CORRELATION_HEADER = "X-Correlation-ID"
SLOW_REQUEST_SECONDS = 1.0
EXPOSED_HEADERS = [
    "X-RateLimit-Limit",
    "X-RateLimit-Remaining",
    "X-RateLimit-Reset",
    "Retry-After",
    CORRELATION_HEADER,
]


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        sweeper_task = asyncio.create_task(
            state_container.sweeper.run_periodically(
                state_container.settings.cleanup_interval_seconds
            )
        )
        logger.info(
            "Application started",
            extra={"environment": state_container.settings.environment},
        )
        yield
        sweeper_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper_task
        await state_container.close_resources()

    app = FastAPI(title="Image Analyzer", version=API_VERSION, lifespan=lifespan)
    app.state.container = container

    origins = parse_cors_origins(container.settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )

    @app.middleware("http")
    async def correlation_logging(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())
        request.state.correlation_id = correlation_id
        started = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - started
        response.headers[CORRELATION_HEADER] = correlation_id
        extra = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration * 1000),
        }
        if duration > SLOW_REQUEST_SECONDS:
            logger.warning("Slow request", extra=extra)
        else:
            logger.info("Request completed", extra=extra)
        return response

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(
        request: Request, exc: RateLimitExceeded
    ) -> JSONResponse:
        headers = rate_limit_headers(exc.limit, exc.remaining, exc.reset_at)
        headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.kind,
                "message": exc.message,
                "retryAfter": exc.retry_after,
                "limits": exc.limits,
                "timestamp": to_iso(utcnow()),
            },
            headers=headers,
        )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return _error_response(exc.status_code, exc.kind, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return _error_response(400, "validation_error", "Invalid request", details)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            return _error_response(
                404, "not_found", f"Route {request.method} {request.url.path} not found"
            )
        kind = "validation_error" if exc.status_code < 500 else "internal_error"
        return _error_response(exc.status_code, kind, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error",
            extra={
                "correlation_id": getattr(request.state, "correlation_id", None),
                "path": request.url.path,
            },
        )
        return _error_response(500, "internal_error", "An unexpected error occurred")

    app.include_router(api_router)
    return app


def _error_response(
    status_code: int, kind: str, message: str, details: list[str] | None = None
) -> JSONResponse:
    """Return the shared error body, always listing details for 400s."""
    content: dict[str, object] = {"error": kind, "message": message}
    if details or status_code == 400:
        content["details"] = details or []
    return JSONResponse(status_code=status_code, content=content)
