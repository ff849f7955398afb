"""Monitored Microservice - Main application.

Demo service returning random weather forecasts. All log events, including
one event per HTTP request, are shipped to Grafana Loki.
"""

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError

from monitored import __version__
from monitored.api import SERVER_ERROR_TITLE, SERVER_ERROR_TYPE, problem_response, router
from monitored.config import Settings, settings as default_settings
from monitored.generator import ForecastRandom, SharedForecastRandom
from monitored.logging_setup import configure_logging, shutdown_logging
from monitored.middlewares import request_logging_middleware
from monitored.schemas import HealthCheckResponse
from monitored.service import utc_now

BAD_REQUEST_TYPE = "https://tools.ietf.org/html/rfc9110#section-15.5.1"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors with a 400 problem response."""
    field_errors = []
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"] if loc not in ("body", "query"))
        field_errors.append(
            {
                "field": field_path or "unknown",
                "issue": error["type"],
                "message": error["msg"],
            }
        )

    return problem_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        title="One or more validation errors occurred.",
        problem_type=BAD_REQUEST_TYPE,
        errors=field_errors or None,
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected exceptions and return a generic 500 problem response."""
    request.app.state.logger.error(
        "Unhandled exception while processing %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
        extra={"fields": {"method": request.method, "path": request.url.path}},
    )
    return problem_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        title=SERVER_ERROR_TITLE,
        detail="An unexpected error occurred",
        problem_type=SERVER_ERROR_TYPE,
    )


def create_app(
    settings: Optional[Settings] = None,
    logger: Optional[logging.Logger] = None,
    forecast_random: Optional[ForecastRandom] = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """Build the FastAPI application.

    The logger is built here and closed on lifespan shutdown, which flushes
    pending Loki pushes. Passing ``logger`` or ``forecast_random`` replaces
    the defaults built from ``settings``; a passed-in logger is left open.
    """
    settings = settings or default_settings
    owns_logger = logger is None
    logger = logger or configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting %s %s",
            settings.service_name,
            __version__,
            extra={"fields": {"environment": settings.environment}},
        )
        yield
        logger.info("Stopping %s", settings.service_name)
        if owns_logger:
            shutdown_logging(logger)

    app = FastAPI(
        title="Monitored Microservice",
        version=__version__,
        description="Random weather forecasts with structured logging to Grafana Loki",
        lifespan=lifespan,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
    )

    app.state.settings = settings
    app.state.logger = logger
    app.state.forecast_random = forecast_random or SharedForecastRandom()
    app.state.clock = clock

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.middleware("http")(request_logging_middleware)

    app.include_router(router, tags=["weather"])

    @app.get("/health", response_model=HealthCheckResponse, tags=["health"])
    async def health_check() -> HealthCheckResponse:
        """Health check endpoint."""
        return HealthCheckResponse(status="healthy", service=settings.service_name)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "monitored.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
        access_log=False,
        reload=default_settings.environment == "development",
    )
