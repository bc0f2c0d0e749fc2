"""Exception classes for weather station API interactions.

This module defines a hierarchy of exception classes for handling
the ways a PWS observation fetch can fail. Retry and fallback logic
dispatches on these types, never on message text.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from pwsdash.weather.models import ObservationSet


class WeatherAPIError(Exception):
    """Error during a PWS API request or response validation.

    Raised when the upstream request fails due to network issues,
    invalid API key, rate limiting, or malformed response data.
    Every subclass is retryable at the orchestration layer.
    """

    def __init__(
        self, code: int, message: str, response: Optional[Dict[str, Any]] = None
    ) -> None:
        """Initialize the exception.

        Args:
            code: HTTP status code or custom error code
            message: Human-readable error message
            response: Optional raw API response for debugging
        """
        super().__init__(f"[{code}] {message}")
        self.code: int = code
        self.message: str = message
        self.response: Optional[Dict[str, Any]] = response

    @classmethod
    def from_response(
        cls, response: Dict[str, Any], status_code: int = 0
    ) -> WeatherAPIError:
        """Create an error from an API response.

        Args:
            response: API response dictionary
            status_code: HTTP status code

        Returns:
            Appropriate WeatherAPIError subclass
        """
        if 400 <= status_code < 500:
            if status_code == 401 or status_code == 403:
                return AuthenticationError(
                    status_code, response.get("message", "Authentication failed")
                )
            elif status_code == 404:
                return NotFoundError(
                    status_code, response.get("message", "Station not found")
                )
            elif status_code == 429:
                return RateLimitError(
                    status_code, response.get("message", "Rate limit exceeded")
                )
            return ClientError(
                status_code, response.get("message", "Client error"), response
            )
        elif status_code >= 500:
            return ServerError(
                status_code, response.get("message", "Server error"), response
            )

        return cls(status_code, response.get("message", "Unknown error"), response)


class NetworkError(WeatherAPIError):
    """Raised when a network issue or timeout prevents API communication."""

    def __init__(
        self, message: str, original_error: Optional[Exception] = None
    ) -> None:
        """Initialize with network error details.

        Args:
            message: Description of the network error
            original_error: The original exception that was caught
        """
        super().__init__(0, message)
        self.original_error = original_error


class AuthenticationError(WeatherAPIError):
    """Raised when API authentication fails (invalid API key)."""

    pass


class NotFoundError(WeatherAPIError):
    """Raised when the station ID is unknown upstream."""

    pass


class RateLimitError(WeatherAPIError):
    """Raised when rate limits are exceeded."""

    pass


class ClientError(WeatherAPIError):
    """Raised for general 4xx client errors."""

    pass


class ServerError(WeatherAPIError):
    """Raised for 5xx server errors."""

    pass


class ParseError(WeatherAPIError):
    """Raised when the API response body cannot be parsed or validated."""

    def __init__(
        self, message: str, original_error: Optional[Exception] = None
    ) -> None:
        """Initialize with parsing error details.

        Args:
            message: Description of the parsing error
            original_error: The original exception that was caught
        """
        super().__init__(0, message)
        self.original_error = original_error


class EmptyObservationsError(WeatherAPIError):
    """Raised when the upstream returns no observations for the station."""

    def __init__(self, message: str = "No observations found in API response") -> None:
        super().__init__(0, message)


class StaleDataError(WeatherAPIError):
    """Raised when the newest observation is older than the staleness ceiling.

    Carries the rejected (or accepted-but-stale) observation set so the
    orchestrator can still serve it when nothing else is cached.
    """

    def __init__(
        self,
        observed_at: datetime,
        age: timedelta,
        ceiling: timedelta,
        observations: Optional[ObservationSet] = None,
    ) -> None:
        """Initialize with the staleness measurement.

        Args:
            observed_at: Observation's own UTC timestamp
            age: Observation age at fetch time
            ceiling: Maximum age accepted by the active policy
            observations: The stale observation set
        """
        super().__init__(
            0,
            f"API returned stale data (observation time UTC: "
            f"{observed_at.isoformat()}, age {age}, ceiling {ceiling})",
        )
        self.observed_at = observed_at
        self.age = age
        self.ceiling = ceiling
        self.observations = observations


class TimestampParseError(ValueError):
    """Raised when an upstream timestamp cannot be parsed.

    Never fatal: callers fail open and use the fetch time instead.
    """

    def __init__(self, value: Any) -> None:
        super().__init__(f"Unparseable observation timestamp: {value!r}")
        self.value = value


class CacheUnavailableError(Exception):
    """Raised when neither a fresh fetch nor a cached copy is available."""

    def __init__(
        self,
        message: str = "Weather data unavailable",
        last_error: Optional[WeatherAPIError] = None,
    ) -> None:
        super().__init__(message)
        self.last_error = last_error
