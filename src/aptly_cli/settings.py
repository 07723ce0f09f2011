"""
Process settings for aptly-cli.

Centralizes values that come from the process environment rather than from
the configuration document: the home directory used to build the user-level
config path, the system-wide config path, and the debug instrumentation switch.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["Settings", "create_settings_from_env", "USER_CONFIG_NAME", "SYSTEM_CONFIG_PATH"]

USER_CONFIG_NAME = ".aptly.conf"
SYSTEM_CONFIG_PATH = "/etc/aptly.conf"


@dataclass(frozen=True)
class Settings:
    """
    Environment-derived settings for the execution context.

    Attributes:
        home_dir: Home directory; the user config lives at ``home_dir/.aptly.conf``
        system_config_path: System-wide config file, tried after the user config
        enable_debug: Enables diagnostic instrumentation (profiles, memstats)
    """
    home_dir: Path
    system_config_path: Path = Path(SYSTEM_CONFIG_PATH)
    enable_debug: bool = False

    def __post_init__(self):
        """Validate settings on construction."""
        if not str(self.home_dir):
            raise ValueError("home_dir is required")
        if not str(self.system_config_path):
            raise ValueError("system_config_path is required")

    @property
    def user_config_path(self) -> Path:
        """User-level config path, also where a default config is written."""
        return Path(self.home_dir) / USER_CONFIG_NAME

    @property
    def config_locations(self) -> list[Path]:
        """Ordered fallback chain searched when no explicit config is given."""
        return [self.user_config_path, Path(self.system_config_path)]


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - HOME (default: ``Path.home()``)
        - APTLY_SYSTEM_CONFIG (default: /etc/aptly.conf)
        - APTLY_ENABLE_DEBUG (default: false)

    Returns:
        Settings object with validated configuration

    Note:
        Creates a fresh Settings instance every time (no caching), so tests
        can change the environment between calls.
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    home = os.getenv("HOME") or str(Path.home())
    system_config = os.getenv("APTLY_SYSTEM_CONFIG") or SYSTEM_CONFIG_PATH
    enable_debug = str_to_bool(os.getenv("APTLY_ENABLE_DEBUG", "false"))

    return Settings(
        home_dir=Path(home),
        system_config_path=Path(system_config),
        enable_debug=enable_debug,
    )
