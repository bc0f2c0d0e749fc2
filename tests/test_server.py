from datetime import timedelta

import pytest
from flask.testing import FlaskClient

from conftest import OBS_TIME, FakeClock, FakeWeatherAPI
from pwsdash.cache.policy import LongIntervalPolicy
from pwsdash.controller import WeatherController
from pwsdash.server import NO_CACHE_HEADERS, create_app
from pwsdash.settings.user import UserSettings
from pwsdash.weather.errors import NetworkError
from pwsdash.weather.models import ObservationSet


@pytest.fixture(autouse=True)
def _no_env_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RANDOM_SECRET", raising=False)


def _client(api: FakeWeatherAPI, settings: UserSettings, clock: FakeClock) -> FlaskClient:
    controller = WeatherController(api, LongIntervalPolicy(), clock=clock, sleep=lambda _s: None)
    app = create_app(controller, settings)
    app.testing = True
    return app.test_client()


def test_index_renders_page(
    settings: UserSettings, clock: FakeClock, observation_set: ObservationSet
) -> None:
    (settings.secrets_dir / "rsec").write_text("rotating-token\n")
    client = _client(FakeWeatherAPI(observation_set), settings, clock)

    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.mimetype == "text/html"
    body = resp.get_data(as_text=True)
    assert "KGAATLAN123" in body
    assert "rotating-token" in body
    for header, value in NO_CACHE_HEADERS.items():
        assert resp.headers[header] == value


def test_random_secret_is_read_per_request(
    settings: UserSettings, clock: FakeClock, observation_set: ObservationSet
) -> None:
    secret = settings.secrets_dir / "rsec"
    secret.write_text("first")
    client = _client(FakeWeatherAPI(observation_set), settings, clock)

    assert "first" in client.get("/").get_data(as_text=True)
    secret.write_text("second")
    assert "second" in client.get("/").get_data(as_text=True)


def test_env_random_secret_wins(
    settings: UserSettings,
    clock: FakeClock,
    observation_set: ObservationSet,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    (settings.secrets_dir / "rsec").write_text("from-file")
    monkeypatch.setenv("RANDOM_SECRET", "from-env")
    client = _client(FakeWeatherAPI(observation_set), settings, clock)

    body = client.get("/").get_data(as_text=True)
    assert "from-env" in body
    assert "from-file" not in body


def test_missing_random_secret_is_500(
    settings: UserSettings, clock: FakeClock, observation_set: ObservationSet
) -> None:
    api = FakeWeatherAPI(observation_set)
    client = _client(api, settings, clock)

    resp = client.get("/")

    assert resp.status_code == 500
    assert "random secret" in resp.get_data(as_text=True)
    assert api.calls == 0


def test_unavailable_is_503(settings: UserSettings, clock: FakeClock) -> None:
    (settings.secrets_dir / "rsec").write_text("tok")
    client = _client(FakeWeatherAPI(NetworkError("apiKey=secret-api-key-123 refused")), settings, clock)

    resp = client.get("/")

    assert resp.status_code == 503
    assert resp.get_data(as_text=True) == "Weather data unavailable"
    assert "secret-api-key-123" not in resp.get_data(as_text=True)
    assert resp.headers["Cache-Control"] == NO_CACHE_HEADERS["Cache-Control"]


def test_failed_refresh_serves_cached_page(
    settings: UserSettings, observation_set: ObservationSet
) -> None:
    (settings.secrets_dir / "rsec").write_text("tok")
    clock = FakeClock(OBS_TIME + timedelta(minutes=1))
    api = FakeWeatherAPI(observation_set, NetworkError("timeout"))
    client = _client(api, settings, clock)

    assert client.get("/").status_code == 200
    clock.advance(minutes=31)
    resp = client.get("/")

    assert api.calls == 2
    assert resp.status_code == 200
    assert "cached" in resp.get_data(as_text=True)


def test_static_stylesheet_is_served(
    settings: UserSettings, clock: FakeClock, observation_set: ObservationSet
) -> None:
    client = _client(FakeWeatherAPI(observation_set), settings, clock)
    resp = client.get("/static/style.css")
    assert resp.status_code == 200
    resp.close()
