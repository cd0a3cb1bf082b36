"""
Configuration file loading and merging.

Search order:
1. Explicit path (--config flag or SEM_CONFIG_PATH)
2. .sem/config.yaml (project root)
3. ~/.sem/config.yaml (user home)
4. Default configuration

Example::

    aws:
      endpoint_url: http://localhost:4566
    platforms: [aws, googlecloud]
    output:
      quotes: true
      expand_json: true
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from secretenv.backends import BackendConfig, SecretPlatform
from secretenv.core.errors import ConfigurationError

logger = structlog.get_logger()

CONFIG_DIR = ".sem"
CONFIG_FILE = "config.yaml"


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
        return None

    cwd_config = Path.cwd() / CONFIG_DIR / CONFIG_FILE
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / CONFIG_DIR / CONFIG_FILE
    if home_config.exists():
        return home_config

    return None


@dataclass
class OutputConfig:
    quotes: bool = True
    expand_json: bool = True


@dataclass
class SemConfig:
    """Settings read from the YAML config file."""

    backends: BackendConfig = field(default_factory=BackendConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def default(cls) -> SemConfig:
        return cls()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{name}' must be a mapping", {"section": name})
    return value


def _bool(section: dict[str, Any], name: str, default: bool) -> bool:
    value = section.get(name, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{name}' must be true or false", {"option": name})
    return value


def _parse_platforms(raw: Any) -> list[SecretPlatform]:
    if raw is None:
        return list(SecretPlatform)
    if not isinstance(raw, list):
        raise ConfigurationError("'platforms' must be a list", {"section": "platforms"})
    platforms = []
    for name in raw:
        try:
            platforms.append(SecretPlatform(name))
        except ValueError as e:
            raise ConfigurationError(
                f"unknown platform '{name}'",
                {"available": ", ".join(p.value for p in SecretPlatform)},
            ) from e
    return platforms


class ConfigLoader:
    """
    Loads configuration from the first config file found.
    """

    def __init__(self, config_path: str | Path | None = None):
        self.config_path = get_config_path(config_path)
        if config_path and self.config_path is None:
            raise ConfigurationError(
                f"config file '{config_path}' not found", {"path": str(config_path)}
            )

    def load(self) -> SemConfig:
        """Load configuration from file or return defaults."""
        if self.config_path is None:
            return SemConfig.default()
        return self._load_from_file(self.config_path)

    def _load_from_file(self, path: Path) -> SemConfig:
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"invalid YAML in {path}", {"path": str(path), "reason": str(e)}
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"cannot read {path}", {"path": str(path), "reason": type(e).__name__}
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError("config root must be a mapping", {"path": str(path)})

        logger.debug("loaded_config", path=str(path))
        return self.parse(data)

    @staticmethod
    def parse(data: dict[str, Any]) -> SemConfig:
        aws = _section(data, "aws")
        output = _section(data, "output")

        endpoint_url = aws.get("endpoint_url")
        if endpoint_url is not None and not isinstance(endpoint_url, str):
            raise ConfigurationError("'aws.endpoint_url' must be a string")

        return SemConfig(
            backends=BackendConfig(
                platforms=_parse_platforms(data.get("platforms")),
                aws_endpoint_url=endpoint_url,
            ),
            output=OutputConfig(
                quotes=_bool(output, "quotes", True),
                expand_json=_bool(output, "expand_json", True),
            ),
        )


def load_config(path: str | Path | None = None) -> SemConfig:
    """Convenience function to load configuration."""
    return ConfigLoader(path).load()
