"""Settings loaded from an optional YAML file.

Example ``~/.rubrik-cli.yaml``::

    server: cluster01.example.com
    verify_ssl: false
    timeout: 60
    output: table
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from rubrik_cli.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".rubrik-cli.yaml"


class Settings(BaseModel):
    """Defaults for every command; command-line options take precedence."""

    model_config = ConfigDict(extra="forbid")

    server: str | None = None
    api_version: str | None = None
    verify_ssl: bool = True
    timeout: int = 30
    output: str = "json"  # json / table


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from ``path``, or from the default location if it exists."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
        if not path.exists():
            return Settings()
    elif not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e
