"""Application settings management.

This package provides:
- UserSettings: User-configurable settings loaded from config.yaml or secrets
- ApplicationSettings: Internal application settings and defaults
"""

from pwsdash.settings.application import AppPaths, ApplicationSettings
from pwsdash.settings.user import ConfigError, UserSettings

__all__ = ["AppPaths", "ApplicationSettings", "ConfigError", "UserSettings"]
