"""YAML configuration loader for jundler.

Settings are resolved in three layers, later layers winning:

1. built-in defaults
2. ``config.yaml`` in the user configuration directory (or ``--config PATH``)
3. ``JUNDLER_*`` environment variables

Example ``config.yaml``::

    cache_dir: /srv/cache/jundler
    node_dist_url: https://mirror.example.com/nodejs/dist
    esbuild_version: 0.23.0
    timeout: 60
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

from jundler.cache.archive import DEFAULT_COMPRESSION_LEVEL
from jundler.cache.manager import DEFAULT_LOCK_TIMEOUT
from jundler.cache.models import ArtifactVersion
from jundler.cache.sources import ESBUILD_VERSION, NODE_DIST_URL, NPM_REGISTRY_URL
from jundler.core.directory import get_global_cache_dir, get_user_config_dir
from jundler.core.download import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT
from jundler.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yaml"

# Environment variable -> config field
ENV_OVERRIDES = {
    "JUNDLER_CACHE_DIR": "cache_dir",
    "JUNDLER_NODE_DIST_URL": "node_dist_url",
    "JUNDLER_NPM_REGISTRY_URL": "npm_registry_url",
    "JUNDLER_TIMEOUT": "timeout",
}


@dataclass
class JundlerConfig:
    """Resolved jundler settings."""

    cache_dir: Path = field(default_factory=get_global_cache_dir)
    node_dist_url: str = NODE_DIST_URL
    npm_registry_url: str = NPM_REGISTRY_URL
    esbuild_version: str = str(ESBUILD_VERSION)
    timeout: int = DEFAULT_TIMEOUT  # seconds, per HTTP request
    max_retries: int = DEFAULT_MAX_RETRIES
    compression_level: int = DEFAULT_COMPRESSION_LEVEL  # zstandard level for cached binaries
    lock_timeout: int = DEFAULT_LOCK_TIMEOUT  # seconds


def default_config_path() -> Path:
    return get_user_config_dir() / CONFIG_FILE_NAME


def load_config(config_file: Optional[Path] = None) -> JundlerConfig:
    """
    Load jundler configuration.

    Args:
        config_file: Explicit YAML file. It must exist. When omitted, the
            default file is read if present.

    Returns:
        Resolved configuration

    Raises:
        ConfigError: If the file is missing (explicit path only), is not
            valid YAML, or holds unknown keys or wrongly-typed values
    """
    values = {}

    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigError(f"Configuration file not found: {config_file}")
        values.update(_read_yaml(config_file))
    else:
        default_file = default_config_path()
        if default_file.exists():
            values.update(_read_yaml(default_file))

    for env_var, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            logger.debug(f"Using {env_var}={value}")
            values[key] = value

    return _build_config(values)


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")

    logger.debug(f"Loaded configuration from {path}")
    return data


def _build_config(values: dict) -> JundlerConfig:
    """Validate raw values and build the config object."""
    known = {f.name for f in fields(JundlerConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

    kwargs = {}
    for key, value in values.items():
        if key == "cache_dir":
            kwargs[key] = Path(str(value)).expanduser()
        elif key in ("timeout", "max_retries", "compression_level", "lock_timeout"):
            kwargs[key] = _as_int(key, value)
        else:
            if not isinstance(value, (str, int, float)):
                raise ConfigError(f"'{key}' must be a string, got {type(value).__name__}")
            kwargs[key] = str(value)

    config = JundlerConfig(**kwargs)

    try:
        ArtifactVersion.parse(config.esbuild_version)
    except ValueError as e:
        raise ConfigError(f"'esbuild_version' is invalid: {e}") from e

    if config.timeout <= 0:
        raise ConfigError(f"'timeout' must be positive, got {config.timeout}")
    if config.max_retries < 1:
        raise ConfigError(f"'max_retries' must be at least 1, got {config.max_retries}")
    if not 1 <= config.compression_level <= 22:
        raise ConfigError(
            f"'compression_level' must be between 1 and 22, got {config.compression_level}"
        )

    return config


def _as_int(key: str, value) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{key}' must be an integer, got {value!r}") from e


__all__ = ["JundlerConfig", "load_config", "default_config_path", "CONFIG_FILE_NAME"]
