"""Weather package - holds API client, models, unit helpers, and custom errors."""

from .api import WeatherAPI
from .errors import (
    CacheUnavailableError,
    EmptyObservationsError,
    NetworkError,
    ParseError,
    StaleDataError,
    TimestampParseError,
    WeatherAPIError,
)
from .models import Measurements, Observation, ObservationSet
from .utils import UnitConverter

# Define what gets imported with: from pwsdash.weather import *
__all__ = [
    "CacheUnavailableError",
    "EmptyObservationsError",
    "Measurements",
    "NetworkError",
    "Observation",
    "ObservationSet",
    "ParseError",
    "StaleDataError",
    "TimestampParseError",
    "UnitConverter",
    "WeatherAPI",
    "WeatherAPIError",
]
