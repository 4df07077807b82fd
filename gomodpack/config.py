#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

import logging
import sys

import toml
import yaml

from .errors import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("gomodpack")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. GOMODPACK_CONFIG environment variable
    2. ~/.gomodpack/ directory
    """
    if 'GOMODPACK_CONFIG' in os.environ:
        path = Path(os.environ['GOMODPACK_CONFIG']).expanduser()
        if path.exists():
            return path

    config_dir = Path.home() / '.gomodpack'
    for filename in CONFIG_FILENAMES:
        path = config_dir / filename
        if path.exists() and path.stat().st_size > 0:
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.json'


def get_default_config():
    """Get default configuration."""
    return {
        "cache": {
            "base_dir": "",  # Empty: $GOMODCACHE/cache/download from `go env`
        },
        "git": {
            "executable": "git",
            "timeout_seconds": None,  # No timeout
        },
        "go": {
            "executable": "go",
            "timeout_seconds": None,
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config(config_path: Optional[Path] = None):
    """Load configuration from file, merged over defaults, with env overrides."""
    config_path = Path(config_path) if config_path else get_config_path()

    config = get_default_config()

    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
            if not isinstance(file_config, dict):
                raise ValueError("top level must be a mapping")
            config = merge_configs(config, file_config)
        except Exception as e:
            logger.error(f"Error loading config from {config_path}: {e}")

    config = apply_env_overrides(config)
    return config


def save_config(config, config_path: Optional[Path] = None):
    """Save configuration to file."""
    config_path = Path(config_path) if config_path else get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        suffix = config_path.suffix.lower()
        if suffix == '.toml':
            # tomllib is read-only
            with open(config_path, 'w') as f:
                toml.dump(_drop_none(config), f)
        elif suffix in ('.yaml', '.yml'):
            with open(config_path, 'w') as f:
                yaml.safe_dump(config, f, default_flow_style=False)
        else:
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)

        logger.info(f"Configuration saved to {config_path}")
    except Exception as e:
        logger.error(f"Error saving config to {config_path}: {e}")
        raise

    return config_path


def _drop_none(config):
    # TOML has no null
    if isinstance(config, dict):
        return {k: _drop_none(v) for k, v in config.items() if v is not None}
    return config


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def _convert_env_value(value: str):
    if value.isdigit():
        return int(value)
    if value.lower() in ('true', 'yes', 'on'):
        return True
    if value.lower() in ('false', 'no', 'off'):
        return False
    if value.lower() in ('none', 'null'):
        return None
    return value


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: GOMODPACK_SECTION_KEY
    For example: GOMODPACK_CACHE_BASE_DIR=/srv/goproxy
    """
    env_prefix = "GOMODPACK_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == 'GOMODPACK_CONFIG':
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')
        typed_value = _convert_env_value(value)

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i:i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if not matched_key:
                break

            if i + best_match_len == len(key_parts):
                current_level[matched_key] = typed_value
                break

            if isinstance(current_level[matched_key], dict):
                current_level = current_level[matched_key]
                i += best_match_len
            else:
                # Path conflict: env var is longer but we found a non-dict value
                break

    return config


def get_timeout(config, section: str) -> Optional[float]:
    """
    Command timeout of a section (``git`` or ``go``) in seconds, or None.

    Raises:
        ConfigError: if the value is not a positive number
    """
    value = config.get(section, {}).get('timeout_seconds')
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{section}.timeout_seconds must be a number, got {value!r}")
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{section}.timeout_seconds must be a number, got {value!r}") from e
    if timeout <= 0:
        raise ConfigError(f"{section}.timeout_seconds must be positive, got {value!r}")
    return timeout


def get_cache_base_dir(config) -> str:
    """Configured module proxy base folder ("" means ask `go env`)."""
    base_dir = config.get('cache', {}).get('base_dir') or ""
    return os.path.expanduser(str(base_dir)) if base_dir else ""


def configure_logging(config, verbose: bool = False) -> None:
    """Apply the logging section of the configuration."""
    logging_config = config.get('logging', {})
    level_name = "DEBUG" if verbose else str(logging_config.get('level', 'INFO')).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ConfigError(f"unknown logging level {level_name!r}")

    root = logging.getLogger()
    root.setLevel(level)
    fmt = logging_config.get('format')
    if fmt:
        for handler in root.handlers:
            handler.setFormatter(logging.Formatter(fmt))
