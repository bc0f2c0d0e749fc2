"""Weather unit conversion utilities."""

from __future__ import annotations

from typing import ClassVar


class UnitConverter:
    """Weather unit conversion utilities.

    Provides the derived values shown on the dashboard:
    - Temperature (°C/°F), truncated to whole degrees
    - Feels-like temperature (heat index or wind chill)
    - Compass buckets for wind direction
    """

    # Wind direction constants
    DIRECTIONS: ClassVar[list[str]] = [
        "N",
        "NNE",
        "NE",
        "ENE",
        "E",
        "ESE",
        "SE",
        "SSE",
        "S",
        "SSW",
        "SW",
        "WSW",
        "W",
        "WNW",
        "NW",
        "NNW",
    ]

    # 22-degree buckets; the trailing "N" catches 352-359
    COMPASS_BUCKETS: ClassVar[list[str]] = DIRECTIONS + ["N"]
    COMPASS_BUCKET_DEGREES: ClassVar[int] = 22

    # Above this (°F) the heat index is the felt temperature, else wind chill
    HEAT_INDEX_THRESHOLD_F: ClassVar[int] = 70

    @staticmethod
    def f_to_c(fahrenheit: int) -> int:
        """Convert °F → °C, truncating toward zero."""
        return int((fahrenheit - 32) * 5 / 9)

    @staticmethod
    def c_to_f(celsius: int) -> int:
        """Convert °C → °F, truncating toward zero."""
        return int(celsius * 9 / 5 + 32)

    @classmethod
    def feels_like_f(cls, temp_f: int, heat_index_f: int, wind_chill_f: int) -> int:
        """Pick the felt temperature in °F.

        Heat index applies above 70 °F; wind chill at or below it.
        """
        if temp_f > cls.HEAT_INDEX_THRESHOLD_F:
            return heat_index_f
        return wind_chill_f

    @classmethod
    def compass_bucket(cls, winddir: int) -> str:
        """Map a wind bearing to a compass label by 22° buckets.

        Out-of-range bearings are clamped to the first or last bucket.
        """
        index = max(winddir, 0) // cls.COMPASS_BUCKET_DEGREES
        return cls.COMPASS_BUCKETS[min(index, len(cls.COMPASS_BUCKETS) - 1)]

