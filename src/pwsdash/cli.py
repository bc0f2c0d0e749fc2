"""PWS dashboard CLI application.

This module provides the command-line interface for the personal weather
station dashboard: running the web server, performing a one-off fetch,
and validating configuration.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Final

import typer

from pwsdash.cache.policy import create_policy
from pwsdash.controller import WeatherController
from pwsdash.display.render import DashboardContextBuilder
from pwsdash.server import create_app
from pwsdash.settings import ConfigError, UserSettings
from pwsdash.weather.api import WeatherAPI
from pwsdash.weather.errors import CacheUnavailableError

# ── CLI setup ────────────────────────────────────────────────────────────────
app = typer.Typer(help="Personal weather station dashboard CLI", add_completion=False)
config_app = typer.Typer(help="Config helpers")
app.add_typer(config_app, name="config")

logger: Final = logging.getLogger(__name__)  # Will be "pwsdash.cli"

CONFIG_OPTION = typer.Option(
    None, "--config", "-c", exists=True, dir_okay=False, help="YAML config (default: search paths, then secrets)"
)
SECRETS_OPTION = typer.Option(
    None, "--secrets-dir", file_okay=False, help="Directory with api/sid/units/key secret files"
)
DEBUG_OPTION = typer.Option(False, "--debug", help="Enable debug logging")
HOST_OPTION = typer.Option(None, "--host", help="Bind address (default: from settings)")
PORT_OPTION = typer.Option(None, "--port", "-p", help="Listen port (default: from settings)")


def configure_logging(debug: bool = False) -> None:
    """Configure root logging for the process."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def load_settings(config: Path | None, secrets_dir: Path | None) -> UserSettings:
    """Load settings or exit with status 1 on a configuration error."""
    try:
        return UserSettings.load(config, secrets_dir)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def build_controller(settings: UserSettings) -> WeatherController:
    """Wire the upstream client, the configured policy and a fresh cache."""
    policy = create_policy(settings)
    logger.info("Freshness policy: %s", policy.name)
    return WeatherController(WeatherAPI(settings), policy)


@app.command()
def serve(
    config: Path | None = CONFIG_OPTION,
    secrets_dir: Path | None = SECRETS_OPTION,
    host: str | None = HOST_OPTION,
    port: int | None = PORT_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Run the dashboard web server."""
    configure_logging(debug)
    settings = load_settings(config, secrets_dir)
    controller = build_controller(settings)

    flask_app = create_app(controller, settings)
    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting server on %s:%d", bind_host, bind_port)
    flask_app.run(host=bind_host, port=bind_port, threaded=True)


@app.command()
def fetch(
    config: Path | None = CONFIG_OPTION,
    secrets_dir: Path | None = SECRETS_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Fetch current conditions once and print a summary."""
    configure_logging(debug)
    settings = load_settings(config, secrets_dir)
    controller = build_controller(settings)

    try:
        served = controller.get_observations()
    except CacheUnavailableError as exc:
        typer.secho(f"Weather data unavailable: {exc.last_error}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc

    ctx = DashboardContextBuilder(settings, clock=controller.clock).build_context(served, "")
    typer.echo(
        f"{ctx['station_id']} @ {ctx['report_time']}: "
        f"{ctx['current_temp_f']}°F/{ctx['current_temp_c']}°C "
        f"(feels like {ctx['feels_like_f']}°F/{ctx['feels_like_c']}°C), "
        f"humidity {ctx['humidity']}%, wind {ctx['wind_dir_compass']} "
        f"{ctx['wind_speed']} {ctx['units_wind']}"
    )
    if served.error is not None:
        typer.secho(f"Warning: {served.error.message}", fg=typer.colors.YELLOW, err=True)


# ───────────────────────── config sub-commands ───────────────────────────────
@config_app.command("validate")
def validate_config(file: Path):
    """Validate a YAML config file against the schema."""
    try:
        UserSettings.load(file)
        typer.echo("✅ Config valid")
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


# ───────────────────────── module entrypoint ────────────────────────────────
if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(0)
