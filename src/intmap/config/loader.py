"""
Configuration file loading.

Search order:
1. Explicit path (--config flag)
2. .intmap/config.yaml (project root)
3. ~/.intmap/config.yaml (user home)
4. Environment / defaults only
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pydantic
import structlog
import yaml

from intmap.config.settings import Settings, get_settings
from intmap.core.errors import ConfigurationError

logger = structlog.get_logger()


def get_config_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the configuration file to use.

    Returns:
        Path to config file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigurationError("Config file not found", {"path": str(path)})

    cwd_config = Path.cwd() / ".intmap" / "config.yaml"
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / ".intmap" / "config.yaml"
    if home_config.exists():
        return home_config

    return None


def load_settings(explicit_path: str | Path | None = None) -> Settings:
    """
    Build settings from a config file layered over environment variables.

    Values in the file win over ``INTMAP_*`` variables; without a file the
    cached environment settings are returned.
    """
    path = get_config_path(explicit_path)
    if path is None:
        return get_settings()

    try:
        with open(path) as f:
            data: Any = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file: {e}", {"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a mapping", {"path": str(path)})

    try:
        settings = Settings(**data)
    except pydantic.ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", {"path": str(path)}) from e

    logger.debug("config_loaded", path=str(path), keys=sorted(data))
    return settings
