"""Persistence of weather samples."""

from .models import NewWeatherSample, WeatherSample
from .weather_log_store import (
    ConstraintViolationError,
    SampleNotFoundError,
    StorageError,
    StorageIOError,
    WeatherLogStore,
)

__all__ = [
    "ConstraintViolationError",
    "NewWeatherSample",
    "SampleNotFoundError",
    "StorageError",
    "StorageIOError",
    "WeatherLogStore",
    "WeatherSample",
]
