"""Core configuration and per-user paths."""

from .config import Config, ConfigError, load_config
from .global_paths import GlobalPath

__all__ = ["Config", "ConfigError", "GlobalPath", "load_config"]
