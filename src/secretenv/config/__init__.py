"""
secretenv configuration.

- Pydantic-based settings from ``SEM_*`` environment variables
- Per-project and user-level YAML config files
"""

from secretenv.config.loader import (
    ConfigLoader,
    OutputConfig,
    SemConfig,
    get_config_path,
    load_config,
)
from secretenv.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "ConfigLoader",
    "SemConfig",
    "OutputConfig",
    "load_config",
    "get_config_path",
]
