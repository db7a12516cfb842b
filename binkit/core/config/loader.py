"""
Configuration loader — reads binkit.yml into a Settings model.

The file is optional. Values come from, in increasing precedence:
model defaults, the YAML file, then ``BINKIT_*`` environment variables.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from binkit.core.data.constants import DEFAULT_CACHE_TTL_MS, DOWNLOAD_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "binkit.yml"

# Environment variable → Settings field
ENV_OVERRIDES: dict[str, str] = {
    "BINKIT_DLX_CACHE_DIR": "cache_dir",
    "BINKIT_CACHE_TTL_MS": "cache_ttl_ms",
    "BINKIT_DOWNLOAD_TIMEOUT": "download_timeout",
    "BINKIT_LOG_LEVEL": "log_level",
    "BINKIT_LOG_FILE": "log_file",
}


class ConfigError(Exception):
    """Raised when the configuration file is invalid or unreadable."""


class Settings(BaseModel):
    """Runtime settings."""

    cache_dir: str | None = None                     # None = platform default
    cache_ttl_ms: int = Field(default=DEFAULT_CACHE_TTL_MS, ge=0)
    download_timeout: float = Field(default=DOWNLOAD_TIMEOUT_SECONDS, gt=0)
    log_level: str = "WARNING"
    log_file: str | None = None


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for binkit.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to binkit.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def _read_yaml(path: Path) -> dict:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

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

    # Either flat, or wrapped under a "binkit" key
    nested = data.get("binkit")
    return dict(nested) if isinstance(nested, dict) else data


def load_settings(
    path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    search: bool = True,
) -> Settings:
    """Load settings from binkit.yml and the environment.

    Args:
        path: Explicit config file. If None, ``BINKIT_CONFIG`` is used,
            then an upward search from the cwd (when ``search`` is set).
        env: Environment mapping (default: ``os.environ``).
        search: Whether to look for binkit.yml when no path is given.

    Returns:
        Validated Settings.

    Raises:
        ConfigError: The file is unreadable or a value is invalid.
    """
    env = os.environ if env is None else env

    if path is None and env.get("BINKIT_CONFIG"):
        path = Path(env["BINKIT_CONFIG"])
    if path is None and search:
        path = find_config_file()

    data: dict = _read_yaml(path) if path is not None else {}

    for var, field_name in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            data[field_name] = value

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        source = path or "environment"
        raise ConfigError(f"Invalid configuration ({source}): {e}") from e

    logger.debug("Settings: %s", settings.model_dump())
    return settings
