"""Pydantic schemas for the Monitored Microservice."""

import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Fixed set of forecast summaries, coldest first
SUMMARIES: tuple[str, ...] = (
    "Freezing",
    "Bracing",
    "Chilly",
    "Cool",
    "Mild",
    "Warm",
    "Balmy",
    "Hot",
    "Sweltering",
    "Scorching",
)

MIN_TEMPERATURE_C = -20
MAX_TEMPERATURE_C = 54


def celsius_to_fahrenheit(temperature_c: int) -> int:
    """Convert whole degrees Celsius to Fahrenheit.

    Divides by 0.5556 (an approximation of 5/9) and truncates toward zero,
    so the result can be one degree below the exact conversion.
    """
    return 32 + int(temperature_c / 0.5556)


class WeatherForecast(BaseModel):
    """One synthesized forecast data point."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "date": "2024-05-02",
                "temperatureC": 21,
                "temperatureF": 69,
                "summary": "Mild",
            }
        },
    )

    date: datetime.date = Field(..., description="Forecast calendar date")
    temperature_c: int = Field(
        ...,
        alias="temperatureC",
        ge=MIN_TEMPERATURE_C,
        le=MAX_TEMPERATURE_C,
        description="Temperature in celsius",
    )
    summary: str = Field(..., description="Descriptive summary (e.g., 'Chilly')")

    @computed_field(alias="temperatureF")  # type: ignore[prop-decorator]
    @property
    def temperature_f(self) -> int:
        """Temperature in fahrenheit, derived from temperature_c."""
        return celsius_to_fahrenheit(self.temperature_c)


class ProblemDetails(BaseModel):
    """RFC 9457 problem response body."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "https://tools.ietf.org/html/rfc9110#section-15.6.1",
                "title": "An error occurred while processing your request.",
                "status": 500,
                "detail": "Simulated failure occurred.",
            }
        }
    )

    type: str = Field("about:blank", description="URI identifying the problem type")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(None, description="Occurrence-specific explanation")
    errors: Optional[list[dict[str, Any]]] = Field(
        None, description="Per-field validation issues"
    )


class ForecastSuccess(BaseModel):
    """Forecast generation succeeded."""

    forecasts: list[WeatherForecast]


class ForecastFailure(BaseModel):
    """Forecast generation failed."""

    reason: str


ForecastResult = Union[ForecastSuccess, ForecastFailure]


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., json_schema_extra={"example": "healthy"})
    service: str = Field(..., json_schema_extra={"example": "monitored"})
