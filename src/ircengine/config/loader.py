"""Read the YAML config, its optional local overlay, and the neighbouring .env."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from loguru import logger


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Lists and scalars are replaced, not merged."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def local_overlay_path(path: str | Path) -> Path:
    """``config.yaml`` -> ``config.local.yaml``."""
    path = Path(path)
    return path.with_name(f"{path.stem}.local{path.suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Parse one YAML file with safe_load. Missing or non-mapping files give {}."""
    path = Path(path)
    if not path.exists():
        logger.warning("Config file not found: {}", path)
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        logger.error("Failed to parse config {}: {}", path, exc)
        raise
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Config file {} is a {}, expected a mapping", path, type(data).__name__)
        return {}
    return data


def load_config_with_env(path: str | Path) -> dict[str, Any]:
    """Load the .env beside the config file, then the config with its local overlay merged on top.

    The overlay (``<name>.local.yaml``) is meant for per-machine secrets and
    server choices that stay out of version control.
    """
    path = Path(path)
    env_file = path.parent / ".env"
    if env_file.is_file():
        load_dotenv(env_file)
        logger.debug("Loaded environment from {}", env_file)

    data = load_config(path)
    overlay = local_overlay_path(path)
    if overlay.is_file():
        logger.info("Merging local overrides from {}", overlay)
        data = _deep_update(data, load_config(overlay))
    return data
