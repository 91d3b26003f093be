"""
Configuration loader — reads subsysbuild.yml into a BuildConfig.

The file is optional: without one, every value falls back to the
built-in defaults of ``BuildConfig``. With one, it is parsed with
``yaml.safe_load`` and validated by Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from subsysbuild.core.errors import ConfigError
from subsysbuild.core.models.config import BuildConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "subsysbuild.yml"

__all__ = ["CONFIG_FILE", "ConfigError", "find_config_file", "load_config"]


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for subsysbuild.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to subsysbuild.yml, or None if not found.
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


def load_config(path: Path | None = None, *, search: bool = True) -> BuildConfig:
    """Load and validate the build configuration.

    Args:
        path: Explicit path to subsysbuild.yml. If None and ``search``
            is set, searches upward from the cwd.
        search: Whether to look for a config file when ``path`` is None.

    Returns:
        Validated BuildConfig (defaults when no file exists).

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None and search:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found, using built-in defaults", CONFIG_FILE)
        return BuildConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading build config from %s", path)

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

    # The YAML may wrap everything under a "build" key or be flat
    build_data = data.get("build", data)

    try:
        config = BuildConfig.model_validate(build_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid build configuration: {e}") from e

    logger.info(
        "Loaded config '%s' with %d packages and %d features",
        config.name, len(config.packages), len(config.features),
    )
    return config
