"""Typed models for PWS ``observations/current`` responses.

Only the fields used by the dashboard are modelled for now; extra keys are
kept on the model but otherwise ignored.
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from pwsdash.utils.time import TimeUtils
from pwsdash.weather.errors import EmptyObservationsError, ParseError, TimestampParseError

UnitCode = Literal["e", "m", "h"]

# ─────────────────────────── primitives ──────────────────────────────────────


class Measurements(BaseModel):
    """Unit-dependent readings block (``imperial``, ``metric`` or ``uk_hybrid``)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    temp: int | None = None
    heat_index: int | None = Field(None, alias="heatIndex")
    dewpt: int | None = None
    wind_chill: int | None = Field(None, alias="windChill")
    wind_speed: int | None = Field(None, alias="windSpeed")
    wind_gust: int | None = Field(None, alias="windGust")
    pressure: float | None = None
    precip_rate: float | None = Field(None, alias="precipRate")
    precip_total: float | None = Field(None, alias="precipTotal")
    elev: int | None = None


# ─────────────────────────── observation ─────────────────────────────────────


class Observation(BaseModel):
    """One reading set reported by the station.

    ``obsTimeUtc`` is kept as the raw string so that an unparseable value
    does not reject the whole response; see :attr:`observed_at`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    # Units block keys, in the order they are looked up
    UNIT_BLOCKS: ClassVar[dict[str, UnitCode]] = {
        "imperial": "e",
        "metric": "m",
        "uk_hybrid": "h",
    }

    station_id: str = Field(..., alias="stationID")
    obs_time_utc: str | None = Field(None, alias="obsTimeUtc")
    obs_time_local: str = Field("", alias="obsTimeLocal")
    neighborhood: str | None = None
    country: str | None = None
    software_type: str | None = Field(None, alias="softwareType")
    lat: float | None = None
    lon: float | None = None
    epoch: int | None = None
    uv: float | None = None
    solar_radiation: float | None = Field(None, alias="solarRadiation")
    winddir: int | None = Field(None, ge=0)
    humidity: int | None = Field(None, ge=0, le=100)
    qc_status: int | None = Field(None, alias="qcStatus")

    imperial: Measurements | None = None
    metric: Measurements | None = None
    uk_hybrid: Measurements | None = None

    @property
    def observed_at(self) -> datetime:
        """The observation's own UTC instant.

        Returns:
            Timezone-aware datetime in UTC

        Raises:
            TimestampParseError: If ``obsTimeUtc`` is missing or malformed
        """
        try:
            return TimeUtils.parse_utc(self.obs_time_utc)
        except ValueError as exc:
            raise TimestampParseError(self.obs_time_utc) from exc

    @property
    def unit_system(self) -> UnitCode:
        """Unit code of the first readings block present."""
        for name, code in self.UNIT_BLOCKS.items():
            if getattr(self, name) is not None:
                return code
        raise ParseError(f"Observation from {self.station_id} has no readings block")

    @property
    def readings(self) -> Measurements:
        """The first readings block present (imperial, metric, uk_hybrid)."""
        for name in self.UNIT_BLOCKS:
            block = getattr(self, name)
            if block is not None:
                return block
        raise ParseError(f"Observation from {self.station_id} has no readings block")


# ─────────────────────────── top-level response ──────────────────────────────


class ObservationSet(BaseModel):
    """Immutable snapshot of one upstream response.

    The API may return several observations; "current" is defined as the
    first element. An empty set is a fetch failure and is never cached.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    observations: tuple[Observation, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Whether the response carried no observations."""
        return not self.observations

    @property
    def current(self) -> Observation:
        """The observation displayed on the dashboard.

        Raises:
            EmptyObservationsError: If the set has no observations
        """
        if not self.observations:
            raise EmptyObservationsError()
        return self.observations[0]
