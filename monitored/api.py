"""API routes for the Monitored Microservice."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BeforeValidator

from monitored.generator import ForecastRandom
from monitored.schemas import ForecastFailure, ProblemDetails, WeatherForecast
from monitored.service import build_forecast

router = APIRouter()

PROBLEM_MEDIA_TYPE = "application/problem+json"
SERVER_ERROR_TYPE = "https://tools.ietf.org/html/rfc9110#section-15.6.1"
SERVER_ERROR_TITLE = "An error occurred while processing your request."
SIMULATED_FAILURE_DETAIL = "Simulated failure occurred."


def _blank_as_none(value: Any) -> Any:
    """Treat an empty query value (`?fail=`) as absent."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def get_logger(request: Request) -> logging.Logger:
    """Service logger created at application startup."""
    return request.app.state.logger


def get_forecast_random(request: Request) -> ForecastRandom:
    """Random source shared by all forecast requests."""
    return request.app.state.forecast_random


def get_clock(request: Request) -> Callable[[], datetime]:
    """Clock returning the current UTC time."""
    return request.app.state.clock


def problem_response(
    status_code: int,
    title: str,
    detail: Optional[str] = None,
    problem_type: str = "about:blank",
    errors: Optional[list[dict]] = None,
) -> JSONResponse:
    """Build an application/problem+json response.

    Args:
        status_code: HTTP status code
        title: Short human-readable summary
        detail: Occurrence-specific explanation
        problem_type: URI identifying the problem type
        errors: Optional per-field validation issues

    Returns:
        JSONResponse with a ProblemDetails body
    """
    problem = ProblemDetails(
        type=problem_type,
        title=title,
        status=status_code,
        detail=detail,
        errors=errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


@router.get(
    "/weatherforecast",
    name="GetWeatherForecast",
    response_model=list[WeatherForecast],
    responses={500: {"model": ProblemDetails, "description": "Simulated failure"}},
)
async def get_weather_forecast(
    fail: Annotated[
        Optional[bool],
        BeforeValidator(_blank_as_none),
        Query(
            description="Simulate a server-side failure to exercise error logging",
            examples=[False, True],
        ),
    ] = None,
    logger: logging.Logger = Depends(get_logger),
    rng: ForecastRandom = Depends(get_forecast_random),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Get a random five-day weather forecast.

    Args:
        fail: When true, return a 500 problem response instead of data

    Returns:
        Five forecasts dated tomorrow through five days from now (UTC)
    """
    result = build_forecast(bool(fail), rng, logger, clock)

    if isinstance(result, ForecastFailure):
        return problem_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            title=SERVER_ERROR_TITLE,
            detail=SIMULATED_FAILURE_DETAIL,
            problem_type=SERVER_ERROR_TYPE,
        )

    return result.forecasts
