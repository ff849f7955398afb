"""Random forecast generation.

The random source is injected as a ``ForecastRandom`` capability so the
generator can be driven by a fixed sequence in tests.
"""

import random
import threading
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from typing import Optional, Protocol, TypeVar

from monitored.schemas import (
    MAX_TEMPERATURE_C,
    MIN_TEMPERATURE_C,
    SUMMARIES,
    WeatherForecast,
)

FORECAST_DAYS = 5

T = TypeVar("T")


class ForecastRandom(Protocol):
    """Source of randomness for forecast generation."""

    def next_int(self, low: int, high: int) -> int:
        """Return an integer N such that low <= N <= high."""
        ...

    def choice(self, options: Sequence[T]) -> T:
        """Return one element of a non-empty sequence."""
        ...


class SharedForecastRandom:
    """Thread-safe random source shared by all requests."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)  # nosec B311 (not used for security)
        self._lock = threading.Lock()

    def next_int(self, low: int, high: int) -> int:
        with self._lock:
            return self._random.randint(low, high)

    def choice(self, options: Sequence[T]) -> T:
        with self._lock:
            return self._random.choice(options)


class SequenceForecastRandom:
    """Deterministic random source replaying fixed values.

    ``temperatures`` are returned by ``next_int`` and ``picks`` are indexes
    used by ``choice``; both cycle when exhausted.
    """

    def __init__(self, temperatures: Iterable[int], picks: Iterable[int] = (0,)):
        self._temperatures = list(temperatures)
        self._picks = list(picks)
        if not self._temperatures or not self._picks:
            raise ValueError("temperatures and picks must not be empty")
        self._temperature_pos = 0
        self._pick_pos = 0

    def next_int(self, low: int, high: int) -> int:
        value = self._temperatures[self._temperature_pos % len(self._temperatures)]
        self._temperature_pos += 1
        if not low <= value <= high:
            raise ValueError(f"{value} outside [{low}, {high}]")
        return value

    def choice(self, options: Sequence[T]) -> T:
        index = self._picks[self._pick_pos % len(self._picks)]
        self._pick_pos += 1
        return options[index]


def generate_forecasts(
    rng: ForecastRandom, today: date, days: int = FORECAST_DAYS
) -> list[WeatherForecast]:
    """Synthesize one forecast per day, starting the day after ``today``.

    Args:
        rng: Random source for temperatures and summaries
        today: Reference calendar date (UTC)
        days: Number of consecutive days to generate

    Returns:
        Forecasts dated today+1 through today+days
    """
    return [
        WeatherForecast(
            date=today + timedelta(days=index),
            temperature_c=rng.next_int(MIN_TEMPERATURE_C, MAX_TEMPERATURE_C),
            summary=rng.choice(SUMMARIES),
        )
        for index in range(1, days + 1)
    ]
