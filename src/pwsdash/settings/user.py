"""User-configurable settings loaded from config.yaml or a secrets directory."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import ClassVar, Final, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

# Load environment variables from .env file(s)
load_dotenv()

logger: Final = logging.getLogger(__name__)

PolicyName = Literal["fixed-grid", "observation-age", "long-interval"]


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


def _interpolate_env(content: str) -> str:
    return re.sub(r"\$\{(\w+)\}", lambda m: os.getenv(m.group(1), ""), content)


def _read_secret(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return None


class UserSettings(BaseModel):
    """Settings for the upstream station query, the freshness policy and
    the web server.

    Defaults target the weather.com PWS "observations/current" endpoint and
    the container layout where secrets are mounted under /mnt/secrets.
    """

    # Default search paths for configuration
    DEFAULT_CONFIG_PATHS: ClassVar[list[Path]] = [
        Path("config.yaml"),
        Path("~/.config/pwsdash/config.yaml").expanduser(),
        Path("/etc/pwsdash/config.yaml"),
    ]

    # Secret file name → field, with the env var that overrides the file
    SECRET_FILES: ClassVar[dict[str, tuple[str, str]]] = {
        "api": ("api_base", "API"),
        "sid": ("station_id", "STATION_ID"),
        "units": ("units", "UNITS"),
        "key": ("api_key", "API_KEY"),
    }

    # Upstream query
    api_base: str = Field(..., min_length=1, description="Base URL of the PWS current-conditions API")
    station_id: str = Field(..., min_length=1, description="PWS station ID")
    units: Literal["e", "m", "h"] = Field("e", description="e=imperial, m=metric, h=UK hybrid")
    api_key: str = Field(..., min_length=1, description="weather.com API key")
    request_timeout: float = Field(10.0, gt=0, description="Upstream timeout (seconds)")

    # Freshness
    freshness_policy: PolicyName = "long-interval"
    fetch_buffer_seconds: int = Field(
        30, gt=0, description="Seconds after each 5-minute boundary during which fetching is allowed"
    )

    # Secrets
    secrets_dir: Path = Field(Path("/mnt/secrets"), description="Directory holding mounted secrets")
    random_secret_file: str = Field("rsec", description="Display token file name in secrets_dir")

    # Display
    timezone: str = Field("UTC", description="Station timezone for obsTimeLocal")
    time_format_general: str = Field(
        "%-I:%M %p", description="General time display format (e.g. 6:04 AM)"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = Field(8080, gt=0, le=65535)

    # ---- validators ----
    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v!r}") from exc
        return v

    def read_random_secret(self) -> str:
        """Read the display-only token; called on every request.

        ``RANDOM_SECRET`` in the environment wins over the secrets file.

        Raises:
            ConfigError: If neither source provides a value
        """
        env_value = os.environ.get("RANDOM_SECRET")
        if env_value:
            return env_value.strip()

        path = self.secrets_dir / self.random_secret_file
        value = _read_secret(path)
        if value is None:
            raise ConfigError(f"failed to read random secret file {path}")
        return value

    @classmethod
    def load(cls, path: Path | None = None, secrets_dir: Path | None = None) -> UserSettings:
        """Load configuration from a YAML file, or from mounted secrets.

        Args:
            path: Path to config file (optional, searches default locations if None)
            secrets_dir: Secrets directory used when no YAML file exists

        Returns:
            Validated UserSettings object

        Raises:
            ConfigError: If the configuration is missing, unreadable or invalid
        """
        if path is None:
            env_path = os.environ.get("PWSDASH_CONFIG")
            if env_path:
                path = Path(env_path)
                if not path.exists():
                    raise ConfigError(f"Config file from PWSDASH_CONFIG not found: {path}")
            else:
                path = next((p for p in cls.DEFAULT_CONFIG_PATHS if p.exists()), None)

        data: dict[str, object]
        if path is not None:
            data = cls._read_yaml(path)
            if secrets_dir is not None:
                data["secrets_dir"] = secrets_dir
        else:
            data = cls._read_secrets(secrets_dir or Path("/mnt/secrets"))

        buffer = cls._resolve_fetch_buffer(Path(str(data.get("secrets_dir", "/mnt/secrets"))))
        if buffer is not None:
            data["fetch_buffer_seconds"] = buffer

        try:
            settings = cls.model_validate(data)
        except ValidationError as err:
            raise ConfigError(f"Invalid configuration:\n{err}") from err

        logger.info(
            "Loaded settings for station %s (units=%s, policy=%s, buffer=%ds)",
            settings.station_id,
            settings.units,
            settings.freshness_policy,
            settings.fetch_buffer_seconds,
        )
        return settings

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, object]:
        import yaml  # local import to avoid hard dep for callers

        try:
            raw = _interpolate_env(path.read_text())
            data = yaml.safe_load(raw) or {}
        except Exception as exc:  # pragma: no cover
            raise ConfigError(f"Unable to read config YAML: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    @classmethod
    def _read_secrets(cls, secrets_dir: Path) -> dict[str, object]:
        data: dict[str, object] = {"secrets_dir": secrets_dir}
        for file_name, (field_name, env_var) in cls.SECRET_FILES.items():
            value = os.environ.get(env_var) or _read_secret(secrets_dir / file_name)
            if not value:
                raise ConfigError(
                    f"failed to read secret {file_name}: set {env_var} or create {secrets_dir / file_name}"
                )
            data[field_name] = value
        return data

    @staticmethod
    def _resolve_fetch_buffer(secrets_dir: Path) -> int | None:
        """Fetch buffer override: env var, then secrets file; None keeps the default."""
        sources = [
            ("env var", os.environ.get("FETCH_BUFFER_SECONDS")),
            ("file", _read_secret(secrets_dir / "fetch_buffer")),
        ]
        for source, raw in sources:
            if not raw:
                continue
            try:
                buffer = int(raw.strip())
            except ValueError:
                buffer = 0
            if buffer > 0:
                logger.info("Using fetch buffer from %s: %d seconds", source, buffer)
                return buffer
            logger.warning("Invalid fetch buffer %s value %r, using default", source, raw)
            return None
        return None
