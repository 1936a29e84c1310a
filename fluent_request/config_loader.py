"""Config Loader - Reads named connection profiles from a YAML file.

Profiles feed Connection.from_config(). Header values may reference
environment variables; ConnectionConfig expands them during validation.

Example file:
    connections:
      local:
        base_url: http://localhost:3000
        headers:
          Authorization: "Bearer ${API_TOKEN}"
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from fluent_request.errors import Error
from fluent_request.models import ConnectionConfig, ConnectionsFile


class ConfigError(Error):
    """Raised when configuration loading fails."""


def load_connections_config(config_path: Path) -> ConnectionsFile:
    """Load and validate connection profiles. Every failure raises ConfigError."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        raw_config = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must be a YAML mapping")

    try:
        return ConnectionsFile.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid config structure: {e}") from e


def get_connection_config(config: ConnectionsFile, name: str) -> ConnectionConfig:
    """Return the named profile. Raises ConfigError listing the available names."""
    if name not in config.connections:
        available = ", ".join(config.connections) or "(none)"
        raise ConfigError(f"Connection '{name}' not found in config. Available: {available}")
    return config.connections[name]
