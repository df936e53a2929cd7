"""
intmap configuration.

Pydantic-based settings (environment variables, .env files) optionally
layered with a YAML config file.
"""

from intmap.config.loader import get_config_path, load_settings
from intmap.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "get_config_path",
    "load_settings",
]
