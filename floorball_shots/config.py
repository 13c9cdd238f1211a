"""
Configuration

Loads the YAML import configuration and fills in defaults for any
missing keys.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

DEFAULT_CONFIG_PATH = Path("config/import_config.yaml")

DEFAULTS: dict[str, Any] = {
    "database": {
        "snapshot_path": "data/floorball_data.sqlite",
    },
    "save": {
        "mode": "file",
        "base_url": "http://localhost:3000",
        "endpoint": "/api/save-database",
        "timeout": 30,
        "max_retries": 2,
        "retry_delay": 1.0,
        "retry_backoff": 2.0,
    },
    "logging": {
        "level": "WARNING",
        "endpoint_url": None,
        "jsonl_path": None,
    },
    "import": {
        "atomic_batches": True,
    },
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to config file. Defaults to config/import_config.yaml;
            when the default file is absent the built-in defaults are used.

    Returns:
        Configuration dict with every known key present

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
    """
    if config_path is None:
        path = DEFAULT_CONFIG_PATH
        if not path.exists():
            logger.debug(f"No config at {path}, using defaults")
            return copy.deepcopy(DEFAULTS)
    else:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        loaded = yaml.safe_load(f) or {}

    return _merge(DEFAULTS, loaded)
