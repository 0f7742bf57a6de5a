"""FastAPI application factory and entry point.

Creates the application instance, registers middleware and exception
handlers, mounts the route routers and owns the lifetime of the shared
acquisition core.

Usage::

    # Development server (from project root)
    uvicorn fastpitch_events.api.main:app --reload --port 10000

    # Production
    uvicorn fastpitch_events.api.main:app --host 0.0.0.0 --port $PORT
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fastpitch_events.acquisition.acquirer import AcquisitionCore
from fastpitch_events.api.errors import acquisition_error_response
from fastpitch_events.api.limiter import limiter
from fastpitch_events.config.settings import get_settings
from fastpitch_events.core.exceptions import AcquisitionError
from fastpitch_events.core.logging_config import configure_logging, request_id_var

# ---------------------------------------------------------------------------
# Logging configuration: applied once at import time so that records emitted
# during app construction are captured.  The level is re-applied inside
# create_app() after settings are loaded.
# ---------------------------------------------------------------------------

configure_logging("INFO")

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(core: AcquisitionCore | None = None) -> FastAPI:
    """Build and configure the FastAPI application.

    Args:
        core: Acquisition core to serve requests with.  When omitted the
            lifespan builds one from settings (Playwright renderer, one
            gate, one HTTP client) and closes it on shutdown.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        shared = core or AcquisitionCore.from_settings(settings)
        application.state.core = shared
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            max_sessions=shared.gate.max_sessions,
            data_dir=str(settings.data_dir),
        )
        try:
            yield
        finally:
            await shared.aclose()
            application.state.core = None
            logger.info("application_shutdown")

    application = FastAPI(
        title=settings.app_name,
        description=(
            "Acquires tournament listings from bot-protected event sites and "
            "serves them as HTML or normalized events."
        ),
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )
    application.state.core = None

    # ---- Rate limiting -----------------------------------------------------

    limiter.enabled = settings.rate_limit_enabled
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ---- Middleware --------------------------------------------------------

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every request with its status and duration; record HTTP metrics.

        Attaches a unique ``request_id`` to the structlog context so that all
        log lines emitted during a request can be correlated.
        """
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            elapsed = time.perf_counter() - start
            status_code = getattr(response, "status_code", 500)
            log_fn = logger.warning if status_code >= 400 else logger.info
            log_fn(
                "request_complete",
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000, 2),
            )
            if settings.metrics_enabled:
                _observe_request(request, status_code, elapsed)

        response.headers["X-Request-ID"] = request_id
        return response

    # ---- Exception handlers -------------------------------------------------

    @application.exception_handler(AcquisitionError)
    async def acquisition_error_handler(request: Request, exc: AcquisitionError) -> JSONResponse:
        return acquisition_error_response(exc)

    # ---- Routers -------------------------------------------------------------

    from fastpitch_events.acquisition.router import router as acquisition_router  # noqa: PLC0415
    from fastpitch_events.api.routes import health as health_routes  # noqa: PLC0415

    application.include_router(health_routes.router)
    application.include_router(acquisition_router)

    # ---- Metrics -------------------------------------------------------------

    if settings.metrics_enabled:

        @application.get("/metrics", include_in_schema=False)
        async def metrics() -> Response:
            """Prometheus text-format metrics."""
            from fastpitch_events.api.metrics import get_metrics_response  # noqa: PLC0415

            body, content_type = get_metrics_response()
            return Response(content=body, media_type=content_type)

    return application


def _observe_request(request: Request, status_code: int, elapsed: float) -> None:
    from fastpitch_events.api.metrics import (  # noqa: PLC0415
        http_request_duration_seconds,
        http_requests_total,
    )

    # Route templates keep label cardinality bounded.
    route = request.scope.get("route")
    path = getattr(route, "path", None) or "unmatched"
    http_requests_total.labels(method=request.method, path=path, status=str(status_code)).inc()
    http_request_duration_seconds.labels(method=request.method, path=path).observe(elapsed)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

app = create_app()
"""The FastAPI application instance.

This is the ASGI callable passed to Uvicorn.
"""


def run() -> None:
    """Console entry point: serve the app with uvicorn on ``PORT``."""
    import uvicorn  # noqa: PLC0415

    uvicorn.run(
        "fastpitch_events.api.main:app",
        host="0.0.0.0",
        port=get_settings().port,
        log_config=None,
    )
