"""
Configuration loader — reads config.yml into the Settings model.

Every key is optional; a missing file means all defaults. Environment
variables override the file for the few settings users commonly
change per invocation.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import ValidationError

from devsetup.core.errors import SetupError
from devsetup.core.models.settings import Settings

logger = logging.getLogger(__name__)

# Default config location, relative to the home directory
DEFAULT_CONFIG_PATH = Path(".config") / "devsetup" / "config.yml"

# Environment variable → settings field
ENV_OVERRIDES = {
    "DOTFILES_REPO": "dotfiles_repo",
}


class ConfigError(SetupError):
    """Raised when configuration is invalid."""


def default_config_path(home: Path) -> Path:
    return home / DEFAULT_CONFIG_PATH


def load_settings(
    path: Path | None = None,
    home: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit config file. Must exist when given.
        home: Home directory used to locate the default config file.
        env: Environment for overrides (default: ``os.environ``).

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    env = os.environ if env is None else env
    explicit = path is not None
    if path is None:
        path = default_config_path(home or Path.home())

    data: dict = {}
    if path.is_file():
        data = _read_yaml(path)
        logger.debug("Loaded config from %s", path)
    elif explicit:
        raise ConfigError(f"Config file not found: {path}")
    else:
        logger.debug("No config file at %s, using defaults", path)

    for var, field_name in ENV_OVERRIDES.items():
        if var in env:
            data[field_name] = env[var]

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


def _read_yaml(path: Path) -> dict:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data
