"""Middlewares for the Monitored Microservice.

This module provides request logging: one structured event per HTTP request
(method, path, status, duration) with W3C-style trace id correlation.
"""

import logging
import time
import uuid
from typing import Optional

from fastapi import Request, Response


async def request_logging_middleware(request: Request, call_next):
    """Log every request as a structured event on the service logger.

    - Generates or propagates trace_id from X-Trace-Id header
    - Logs request method, path, status, duration
    - Request/response bodies are NOT logged
    - Unhandled exceptions are logged with status 500, then re-raised

    Args:
        request: The incoming HTTP request
        call_next: The next middleware or route handler

    Returns:
        Response with X-Trace-Id header added
    """
    logger = request.app.state.logger
    trace_id = request.headers.get("X-Trace-Id") or str(uuid.uuid4())

    start_time = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        _log_request(
            logger,
            request,
            500,
            (time.perf_counter() - start_time) * 1000,
            trace_id,
            exc_info=exc,
        )
        raise

    _log_request(
        logger,
        request,
        response.status_code,
        (time.perf_counter() - start_time) * 1000,
        trace_id,
    )

    response.headers["X-Trace-Id"] = trace_id
    return response


def _log_request(
    logger: logging.Logger,
    request: Request,
    status_code: int,
    duration_ms: float,
    trace_id: str,
    exc_info: Optional[BaseException] = None,
):
    """Emit the request event; failed requests are logged at error level."""
    logger.log(
        logging.ERROR if exc_info is not None else logging.INFO,
        "HTTP %s %s responded %d in %.4f ms",
        request.method,
        request.url.path,
        status_code,
        duration_ms,
        exc_info=exc_info,
        extra={
            "fields": {
                "method": request.method,
                "path": request.url.path,
                "status": status_code,
                "duration_ms": round(duration_ms, 2),
                "trace_id": trace_id,
            }
        },
    )
