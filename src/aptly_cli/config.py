"""
Configuration document loading and resolution.

The configuration is a JSON document (``~/.aptly.conf`` or ``/etc/aptly.conf``)
parsed into a Pydantic model. Keys missing from the document keep their
defaults, so a partial file is valid.

Resolution order when no explicit path is given:
    $HOME/.aptly.conf -> /etc/aptly.conf -> default written to $HOME/.aptly.conf
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import typer
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError, FatalError
from .settings import Settings

__all__ = [
    "ConfigStructure",
    "default_config",
    "load_config",
    "save_config",
    "resolve_config",
]

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _default_root_dir() -> str:
    home = os.getenv("HOME") or str(Path.home())
    return str(Path(home) / ".aptly")


class ConfigStructure(BaseModel):
    """
    Configuration document.

    Field aliases match the on-disk camelCase keys; Python names are accepted
    too so tests and callers can build documents directly.
    """
    model_config = ConfigDict(populate_by_name=True)

    root_dir: str = Field(default_factory=_default_root_dir, alias="rootDir",
                          description="Root of the database, pool and public trees")
    download_concurrency: int = Field(default=4, alias="downloadConcurrency",
                                      description="Number of parallel downloads")
    download_speed_limit: int = Field(default=0, alias="downloadSpeedLimit",
                                      description="Download speed limit in KiB/s (0 = unlimited)")
    architectures: List[str] = Field(default_factory=list, alias="architectures",
                                     description="Default architecture list")
    dep_follow_suggests: bool = Field(default=False, alias="dependencyFollowSuggests")
    dep_follow_recommends: bool = Field(default=False, alias="dependencyFollowRecommends")
    dep_follow_all_variants: bool = Field(default=False, alias="dependencyFollowAllVariants")
    dep_follow_source: bool = Field(default=False, alias="dependencyFollowSource")
    gpg_disable_sign: bool = Field(default=False, alias="gpgDisableSign")
    gpg_disable_verify: bool = Field(default=False, alias="gpgDisableVerify")
    download_source_packages: bool = Field(default=False, alias="downloadSourcePackages")
    ppa_distributor_id: str = Field(default="ubuntu", alias="ppaDistributorID")
    ppa_codename: str = Field(default="", alias="ppaCodename")

    @field_validator("download_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"downloadConcurrency must be at least 1, got {v}")
        return v

    @field_validator("root_dir")
    @classmethod
    def validate_root_dir(cls, v: str) -> str:
        if not v:
            raise ValueError("rootDir must not be empty")
        return v


def default_config(home_dir: PathLike) -> ConfigStructure:
    """Build the default configuration for the given home directory."""
    return ConfigStructure(root_dir=str(Path(home_dir) / ".aptly"))


def load_config(path: PathLike) -> ConfigStructure:
    """
    Load configuration document from a file.

    Args:
        path: Config file path

    Returns:
        Parsed configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file exists but cannot be read, parsed or validated
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
    except FileNotFoundError:
        raise
    except OSError as e:
        raise ConfigError(f"unable to read {path}: {e}", path=str(path)) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in {path}: {e}", path=str(path)) from e

    try:
        return ConfigStructure.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration in {path}: {e}", path=str(path)) from e


def save_config(path: PathLike, config: ConfigStructure) -> None:
    """
    Write configuration document as indented JSON.

    Raises:
        OSError: If the file or its parent directory cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(config.model_dump(by_alias=True), indent=2, sort_keys=False)
    with open(path, "w", encoding="utf-8") as f:
        f.write(payload)
        f.write("\n")


def resolve_config(explicit_path: Optional[str], settings: Settings) -> ConfigStructure:
    """
    Resolve the configuration document through the fallback chain.

    Args:
        explicit_path: Value of the ``--config`` flag ("" or None when absent)
        settings: Process settings providing the candidate locations

    Returns:
        Loaded (or freshly created default) configuration

    Raises:
        FatalError: If the explicit path cannot be loaded, or a candidate exists
            but fails to load for any reason other than not existing
    """
    if explicit_path:
        try:
            config = load_config(explicit_path)
        except (OSError, ConfigError) as e:
            raise FatalError(f"error loading config file {explicit_path}: {e}") from e
        logger.debug(f"Loaded config from explicit path {explicit_path}")
        return config

    locations = settings.config_locations
    for location in locations:
        try:
            config = load_config(location)
        except FileNotFoundError:
            logger.debug(f"Config file {location} does not exist, trying next location")
            continue
        except (OSError, ConfigError) as e:
            raise FatalError(f"error loading config file {location}: {e}") from e
        logger.debug(f"Loaded config from {location}")
        return config

    user_path = locations[0]
    config = default_config(settings.home_dir)
    typer.echo(f"Config file not found, creating default config at {user_path}\n")
    logger.info(f"Creating default config at {user_path}")
    try:
        save_config(user_path, config)
    except OSError as e:
        logger.warning(f"Unable to save default config to {user_path}: {e}")
    return config
