"""Forecast request logic, independent of the HTTP layer."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from monitored.generator import ForecastRandom, generate_forecasts
from monitored.schemas import ForecastFailure, ForecastResult, ForecastSuccess

SIMULATED_FAILURE_REASON = "Simulated failure for testing error logging."


def utc_now() -> datetime:
    """Current UTC time."""
    return datetime.now(timezone.utc)


def build_forecast(
    fail: bool,
    rng: ForecastRandom,
    logger: logging.Logger,
    clock: Callable[[], datetime] = utc_now,
) -> ForecastResult:
    """Produce the forecast for one request.

    When ``fail`` is set, no forecast is generated: one error event is logged
    and a ``ForecastFailure`` is returned for the caller to map to a 500.

    Args:
        fail: Simulate a failure instead of generating data
        rng: Random source for temperatures and summaries
        logger: Logger receiving the failure event
        clock: Returns the current UTC time

    Returns:
        ForecastSuccess with five forecasts, or ForecastFailure
    """
    if fail:
        logger.error(
            "Error generating weather forecast",
            extra={"fields": {"fail": True, "reason": SIMULATED_FAILURE_REASON}},
        )
        return ForecastFailure(reason=SIMULATED_FAILURE_REASON)

    today = clock().astimezone(timezone.utc).date()
    return ForecastSuccess(forecasts=generate_forecasts(rng, today))
