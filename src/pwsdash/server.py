"""Flask application serving the current-conditions page."""

from __future__ import annotations

import logging
from typing import Final

from flask import Flask, Response
from jinja2 import TemplateError

from pwsdash.controller import WeatherController
from pwsdash.display.render import DashboardContextBuilder, TemplateRenderer
from pwsdash.settings import ApplicationSettings, ConfigError, UserSettings
from pwsdash.weather.errors import CacheUnavailableError

logger: Final = logging.getLogger(__name__)

# The server-side cache is the only cache; browsers must always revalidate
NO_CACHE_HEADERS: Final = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _page(body: str, status: int = 200, mimetype: str = "text/html") -> Response:
    resp = Response(body, status=status, mimetype=mimetype)
    resp.headers.update(NO_CACHE_HEADERS)
    return resp


def create_app(
    controller: WeatherController,
    settings: UserSettings,
    renderer: TemplateRenderer | None = None,
    context_builder: DashboardContextBuilder | None = None,
    app_settings: ApplicationSettings | None = None,
) -> Flask:
    """Build the Flask app around one shared controller.

    Args:
        controller: Orchestrator owning the process-wide cache
        settings: User settings (random secret source)
        renderer: Page renderer (default: packaged template)
        context_builder: Derived-field builder (default: from settings)
        app_settings: Application paths (default: packaged layout)

    Returns:
        Configured Flask application
    """
    app_settings = app_settings or ApplicationSettings(settings)
    renderer = renderer or TemplateRenderer(app_settings=app_settings)
    context_builder = context_builder or DashboardContextBuilder(settings, clock=controller.clock)

    app = Flask(
        __name__,
        static_folder=str(app_settings.paths.static_dir),
        static_url_path="/static",
    )

    @app.route("/")
    def index() -> Response:
        # Re-read on every request so the token can rotate without a restart
        try:
            random_secret = settings.read_random_secret()
        except ConfigError as exc:
            logger.error("Error reading random secret: %s", exc)
            return _page(f"Configuration error: {exc}", 500, "text/plain")

        try:
            served = controller.get_observations()
        except CacheUnavailableError as exc:
            logger.error("Error getting weather data: %s", exc)
            return _page("Weather data unavailable", 503, "text/plain")

        obs = served.observations.current
        logger.info(
            "Processing observation from station: %s, time: %s", obs.station_id, obs.obs_time_local
        )

        try:
            html = renderer.render_index(**context_builder.build_context(served, random_secret))
        except TemplateError as exc:
            logger.error("Error rendering template: %s", exc)
            return _page(f"Template error: {exc}", 500, "text/plain")

        return _page(html)

    return app
