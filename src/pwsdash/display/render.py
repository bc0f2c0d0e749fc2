"""Dashboard rendering components for the PWS page."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, cast

from jinja2 import Environment, FileSystemLoader, Template, select_autoescape

from pwsdash.controller import ServedObservation
from pwsdash.settings import ApplicationSettings, UserSettings
from pwsdash.utils.time import TimeUtils
from pwsdash.weather.errors import StaleDataError
from pwsdash.weather.models import Measurements
from pwsdash.weather.utils import UnitConverter

# Display labels per upstream unit code
UNIT_LABELS: Dict[str, Dict[str, str]] = {
    "e": {"wind": "mph", "pressure": "inHg", "precip": "in"},
    "m": {"wind": "km/h", "pressure": "mb", "precip": "mm"},
    "h": {"wind": "mph", "pressure": "mb", "precip": "mm"},
}


class TemplateRenderer:
    """Handles Jinja2 template environment and rendering.

    Configures a Jinja2 environment with the age filter and
    renders the single dashboard page.
    """

    index_template: Template

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        app_settings: Optional[ApplicationSettings] = None,
    ) -> None:
        """Initialize the template renderer.

        Args:
            templates_dir: Directory containing templates (default: packaged templates)
            app_settings: Application settings providing default paths
        """
        if templates_dir is None:
            if app_settings is not None:
                templates_dir = app_settings.paths.templates_dir
            else:
                templates_dir = Path(__file__).parents[1] / "templates"
        self.templates_dir = templates_dir

        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape(["html", "html.j2"]),
        )

        def _url_for(endpoint: str, filename: str = "") -> str:
            """Simple url_for implementation for static assets."""
            if endpoint == "static":
                return f"/static/{filename}"
            raise ValueError(f"Unsupported endpoint: {endpoint}")

        self.env.globals.update({"url_for": _url_for})
        self._register_filters()

        self.index_template = self.env.get_template("index.html.j2")

    def _register_filters(self) -> None:
        """Register custom filters with the Jinja environment."""
        self.env.filters.update(
            {
                "age": TimeUtils.format_age,
            }
        )

    def render_index(self, **context: Any) -> str:
        """Render the dashboard page with the provided context.

        Args:
            context: Template context variables

        Returns:
            Rendered HTML
        """
        return cast(str, self.index_template.render(**context))


class DashboardContextBuilder:
    """Builds the template context from a served observation set.

    Derives the display fields from the first observation:
    - Temperatures in both °F and °C whatever the upstream unit system
    - Feels-like temperature (heat index above 70 °F, wind chill otherwise)
    - Compass label for the wind bearing
    - Observation age and whether the page shows cached or stale data
    """

    def __init__(
        self,
        user_settings: UserSettings,
        clock: Callable[[], datetime] = TimeUtils.now_utc,
    ) -> None:
        """Initialize with configuration.

        Args:
            user_settings: User configuration
            clock: Returns the current UTC time
        """
        self.user_settings = user_settings
        self.clock = clock

    def build_context(self, served: ServedObservation, random_secret: str) -> Dict[str, Any]:
        """Build complete context for the dashboard template.

        Args:
            served: Observation set returned by the controller
            random_secret: Display-only token, read fresh for each request

        Returns:
            Template context dictionary
        """
        obs = served.observations.current
        readings = obs.readings
        unit = obs.unit_system
        labels = UNIT_LABELS[unit]

        temp_f, temp_c = self._both_scales(readings.temp, unit)
        dew_f, dew_c = self._both_scales(readings.dewpt, unit)
        feels_f, feels_c = self._feels_like(readings, unit, temp_f)
        winddir = obs.winddir or 0

        return {
            "station_id": obs.station_id,
            "neighborhood": obs.neighborhood,
            "report_time": self._report_time(obs.obs_time_local),
            "current_temp_f": temp_f,
            "current_temp_c": temp_c,
            "feels_like_f": feels_f,
            "feels_like_c": feels_c,
            "dew_point_f": dew_f,
            "dew_point_c": dew_c,
            "humidity": obs.humidity,
            "wind_speed": readings.wind_speed,
            "wind_gust": readings.wind_gust,
            "wind_dir_compass": UnitConverter.compass_bucket(winddir),
            "wind_dir_degrees": winddir,
            "pressure": readings.pressure,
            "precip_rate": readings.precip_rate,
            "precip_total": readings.precip_total,
            "units_wind": labels["wind"],
            "units_pressure": labels["pressure"],
            "units_precip": labels["precip"],
            "data_age": self.clock() - served.as_of,
            "source": served.source.value,
            "is_stale": isinstance(served.error, StaleDataError),
            "random_secret": random_secret,
        }

    @staticmethod
    def _both_scales(value: int | None, unit: str) -> tuple[int | None, int | None]:
        """Return (°F, °C) for a temperature reported in the station's units."""
        if value is None:
            return None, None
        if unit == "e":
            return value, UnitConverter.f_to_c(value)
        return UnitConverter.c_to_f(value), value

    def _feels_like(
        self, readings: Measurements, unit: str, temp_f: int | None
    ) -> tuple[int | None, int | None]:
        if temp_f is None or readings.temp is None:
            return None, None
        heat_index = readings.heat_index if readings.heat_index is not None else readings.temp
        wind_chill = readings.wind_chill if readings.wind_chill is not None else readings.temp
        if unit == "e":
            feels_f = UnitConverter.feels_like_f(temp_f, heat_index, wind_chill)
            return feels_f, UnitConverter.f_to_c(feels_f)
        feels_c = heat_index if temp_f > UnitConverter.HEAT_INDEX_THRESHOLD_F else wind_chill
        return UnitConverter.c_to_f(feels_c), feels_c

    def _report_time(self, obs_time_local: str) -> str:
        """Format obsTimeLocal; unknown formats are shown verbatim."""
        parsed = TimeUtils.parse_local(obs_time_local, self.user_settings.timezone)
        if parsed is None:
            return obs_time_local
        return parsed.strftime(self.user_settings.time_format_general)
