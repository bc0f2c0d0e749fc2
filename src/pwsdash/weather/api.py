"""Weather API client for the weather.com PWS current-observations endpoint."""

from __future__ import annotations

import logging
from typing import Any, Final
from urllib.parse import urlencode

import requests
from pydantic import ValidationError

from pwsdash.settings import UserSettings

from .errors import EmptyObservationsError, NetworkError, ParseError, WeatherAPIError
from .models import ObservationSet

logger: Final = logging.getLogger(__name__)

REDACTED: Final = "***REDACTED***"

REQUEST_HEADERS: Final = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

# Human‑readable explanations for common HTTP errors
HTTP_ERROR_MAP: Final = {
    400: "Bad request - check station ID or parameters",
    401: "Invalid or missing API key",
    403: "API key not authorized for this station",
    404: "Station returned no data",
    429: "Rate limit exceeded",
    500: "weather.com internal error",
    502: "Bad gateway at weather.com",
    503: "Service unavailable (maintenance)",
    504: "Gateway timeout",
}


class WeatherAPI:
    """Client for the PWS ``observations/current`` API.

    Handles the upstream request, network error handling and response
    validation. Transforms the raw JSON into an immutable ObservationSet.
    The API key is redacted from every log line and error message.
    """

    def __init__(self, config: UserSettings, timeout: float | None = None) -> None:
        """Initialize the weather API client.

        Args:
            config: Settings with API base URL, station ID, units and key
            timeout: Timeout for API requests in seconds (default: from settings)
        """
        self.config = config
        self.timeout = timeout if timeout is not None else config.request_timeout

    @property
    def params(self) -> dict[str, str]:
        """Query parameters for the current-conditions request."""
        return {
            "stationId": self.config.station_id,
            "format": "json",
            "units": self.config.units,
            "apiKey": self.config.api_key,
        }

    def redact(self, text: str) -> str:
        """Replace the API key in ``text`` with a placeholder."""
        key = self.config.api_key
        return text.replace(key, REDACTED) if key else text

    def request_url(self) -> str:
        """Full request URL with the API key redacted, for logging."""
        return self.redact(f"{self.config.api_base}?{urlencode(self.params)}")

    def fetch_observations(self) -> ObservationSet:
        """Retrieve the station's current observations.

        Returns:
            Validated ObservationSet with at least one observation

        Raises:
            NetworkError: When the request fails or times out
            AuthenticationError: When the API key is rejected
            RateLimitError: When API rate limits are exceeded
            WeatherAPIError: For other non-200 responses
            ParseError: When the body is not a valid observations document
            EmptyObservationsError: When the station reported nothing
        """
        logger.info("Making API request to: %s", self.request_url())

        try:
            resp = requests.get(
                self.config.api_base,
                params=self.params,
                headers=REQUEST_HEADERS,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            message = self.redact(str(exc))
            logger.warning("Weather API network error: %s", message)
            raise NetworkError(f"Network error: {message}", exc) from exc

        logger.info("API response status: %s", resp.status_code)

        # weather.com answers 204 when the station has not reported recently
        if resp.status_code == 204:
            raise EmptyObservationsError("Station returned no content (204)")

        if resp.status_code != 200:
            raise self._error_from_response(resp)

        body = resp.text or ""
        logger.debug("API response body length: %d bytes", len(body))

        try:
            observations = ObservationSet.model_validate_json(body)
        except ValidationError as exc:
            detail = self.redact(str(exc))
            logger.error("Error parsing API response: %s", detail)
            logger.debug("Raw response that failed to parse: %s", self.redact(body))
            raise ParseError(f"Error parsing API response: {detail}", exc) from exc

        logger.info("Number of observations in response: %d", len(observations.observations))

        if observations.is_empty:
            raise EmptyObservationsError()

        # unit_system raises ParseError when no readings block is present
        if observations.current.unit_system != self.config.units:
            logger.warning(
                "Requested units %r but station returned %r readings",
                self.config.units,
                observations.current.unit_system,
            )

        return observations

    def _error_from_response(self, resp: requests.Response) -> WeatherAPIError:
        """Map a non-200 response to a typed error."""
        fallback = HTTP_ERROR_MAP.get(resp.status_code, resp.text or "")
        try:
            payload: Any = resp.json()
        except ValueError:
            payload = None

        message = self.redact(self._extract_message(payload) or fallback)
        logger.error("Weather API error: %s - %s", resp.status_code, message)
        return WeatherAPIError.from_response({"message": message}, resp.status_code)

    @staticmethod
    def _extract_message(payload: Any) -> str | None:
        """Pull the first error message out of a weather.com error body."""
        if not isinstance(payload, dict):
            return None
        if isinstance(payload.get("message"), str):
            return payload["message"]
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict):
                inner = first.get("error", first)
                if isinstance(inner, dict) and isinstance(inner.get("message"), str):
                    return inner["message"]
        return None
