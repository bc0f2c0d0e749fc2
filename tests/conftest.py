import copy
import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from pwsdash.settings.user import UserSettings
from pwsdash.weather.models import ObservationSet

SAMPLE_PATH = Path(__file__).parent / "data" / "pws_current_sample.json"

# obsTimeUtc of the sample observation
OBS_TIME = datetime(2024, 5, 3, 18, 35, tzinfo=UTC)


class FakeClock:
    """Settable clock standing in for TimeUtils.now_utc."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeWeatherAPI:
    """Returns (or raises) queued results; the last result repeats."""

    def __init__(self, *results: ObservationSet | Exception) -> None:
        self.results = list(results)
        self.calls = 0

    def fetch_observations(self) -> ObservationSet:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result

    def redact(self, text: str) -> str:
        return text


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    return json.loads(SAMPLE_PATH.read_text())


@pytest.fixture
def observation_set(sample_payload: dict[str, Any]) -> ObservationSet:
    return ObservationSet.model_validate(sample_payload)


@pytest.fixture
def make_observations(
    sample_payload: dict[str, Any],
) -> Callable[..., ObservationSet]:
    """Factory: sample observation set with top-level or imperial overrides."""

    def _make(
        obs_time: datetime | str | None = OBS_TIME,
        imperial: dict[str, Any] | None = None,
        **fields: Any,
    ) -> ObservationSet:
        payload = copy.deepcopy(sample_payload)
        obs = payload["observations"][0]
        if isinstance(obs_time, datetime):
            obs["obsTimeUtc"] = obs_time.strftime("%Y-%m-%dT%H:%M:%SZ")
        else:
            obs["obsTimeUtc"] = obs_time
        obs["imperial"].update(imperial or {})
        obs.update(fields)
        return ObservationSet.model_validate(payload)

    return _make


@pytest.fixture
def settings(tmp_path: Path) -> UserSettings:
    return UserSettings(
        api_base="https://api.weather.com/v2/pws/observations/current",
        station_id="KGAATLAN123",
        units="e",
        api_key="secret-api-key-123",
        secrets_dir=tmp_path,
        timezone="America/New_York",
        time_format_general="%I:%M %p",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(OBS_TIME + timedelta(minutes=1))
