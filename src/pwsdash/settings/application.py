"""Internal application settings derived from user settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pwsdash.settings.user import UserSettings


@dataclass
class AppPaths:
    """Application file and directory paths.

    Centralizes the template and static asset locations shipped
    inside the package.
    """

    templates_dir: Path
    static_dir: Path
    index_template: str = "index.html.j2"

    @classmethod
    def from_base_dir(cls, base_dir: Path) -> AppPaths:
        """Create paths from base directory."""
        return cls(
            templates_dir=base_dir / "templates",
            static_dir=base_dir / "static",
        )


class ApplicationSettings:
    """Application settings container.

    Combines user-provided configuration with application defaults.

    Examples:
        user_settings = UserSettings.load()
        app_settings = ApplicationSettings(user_settings)
        template_dir = app_settings.paths.templates_dir
    """

    def __init__(
        self,
        user_settings: UserSettings,
        paths: AppPaths | None = None,
    ):
        """Initialize application settings with configuration sources."""
        self.user = user_settings
        self.paths = paths or AppPaths.from_base_dir(Path(__file__).parents[1])
