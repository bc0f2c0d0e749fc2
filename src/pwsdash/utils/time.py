# src/pwsdash/utils/time.py
"""Time and date handling utilities."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Final
from zoneinfo import ZoneInfo

# obsTimeLocal formats seen from the PWS API over the years
LOCAL_TIME_FORMATS: Final = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M:%S",
)


class TimeUtils:
    """Time-related utility functions.

    Centralized utilities for working with dates and times:
    - Current UTC time retrieval
    - Publishing-grid truncation for fetch windows
    - Lenient parsing of upstream observation timestamps
    - Human-readable age strings
    """

    @staticmethod
    def now_utc() -> datetime:
        """Get current datetime in UTC.

        Returns:
            Timezone-aware current datetime in UTC
        """
        return datetime.now(UTC)

    @staticmethod
    def truncate(dt: datetime, interval: timedelta) -> datetime:
        """Truncate a datetime down to a multiple of ``interval``.

        Truncation is relative to the UNIX epoch, so a 5-minute interval
        yields :00, :05, :10 ... boundaries.

        Args:
            dt: Timezone-aware datetime
            interval: Grid spacing

        Returns:
            Start of the grid cell containing ``dt``
        """
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        step = int(interval.total_seconds())
        epoch = int(dt.timestamp())
        return datetime.fromtimestamp(epoch - epoch % step, tz=UTC)

    @staticmethod
    def parse_utc(value: Any) -> datetime:
        """Parse an upstream UTC instant such as ``2024-05-03T18:35:00Z``.

        Args:
            value: Raw timestamp from the API

        Returns:
            Timezone-aware datetime in UTC

        Raises:
            ValueError: If the value is not a recognisable instant
        """
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str) and value.strip():
            text = value.strip()
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
        else:
            raise ValueError(f"Not a timestamp: {value!r}")

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)

    @staticmethod
    def parse_local(value: str, timezone_name: str = "UTC") -> datetime | None:
        """Parse an ``obsTimeLocal`` string in any known format.

        Args:
            value: Local time string from the API
            timezone_name: Timezone the station reports in

        Returns:
            Localized datetime, or None if no format matches
        """
        for fmt in LOCAL_TIME_FORMATS:
            try:
                parsed = datetime.strptime(value.strip(), fmt)
            except ValueError:
                continue
            return parsed.replace(tzinfo=ZoneInfo(timezone_name))
        return None

    @staticmethod
    def format_age(delta: timedelta) -> str:
        """Get a compact human-readable age (e.g. "4m 10s").

        Args:
            delta: Elapsed time

        Returns:
            Formatted age string
        """
        seconds = max(int(delta.total_seconds()), 0)
        hours, remainder = divmod(seconds, 3600)
        minutes, secs = divmod(remainder, 60)
        if hours:
            return f"{hours}h {minutes}m"
        if minutes:
            return f"{minutes}m {secs}s"
        return f"{secs}s"
