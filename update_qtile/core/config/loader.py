"""
Configuration loader — reads config.yml into ``Settings``.

The config file is optional: without one the defaults reproduce the
stock yay/qtile-git layout. When present it is read with PyYAML and
validated by the pydantic ``Settings`` model.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from update_qtile.core.models.settings import Settings

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = "update-qtile"
CONFIG_FILE = "config.yml"


class ConfigError(Exception):
    """Raised when the configuration file is invalid or unreadable."""


def default_config_path() -> Path:
    """``$XDG_CONFIG_HOME/update-qtile/config.yml`` (``~/.config`` fallback)."""
    config_home = Path(os.environ.get("XDG_CONFIG_HOME") or "~/.config").expanduser()
    return config_home / CONFIG_DIR_NAME / CONFIG_FILE


def find_config_file() -> Path | None:
    """Return the default config file if it exists."""
    candidate = default_config_path()
    return candidate if candidate.is_file() else None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit config path. If None, the default location is
            used when it exists, otherwise built-in defaults apply.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No config file found, using defaults")
            return Settings()
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
