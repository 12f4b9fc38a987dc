"""Runtime configuration overrides for Constants.

Precedence, lowest to highest: built-in defaults, YAML config file,
environment variables, CLI flags.
"""

from __future__ import annotations

import logging
import os
import shlex
from typing import Any, Dict, Mapping, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

# config key -> (Constants attribute, converter)
_CONFIG_KEYS = {
    "registry_url": ("REGISTRY_URL_NPM", str),
    "request_timeout": ("REQUEST_TIMEOUT", int),
    "http_retry_max": ("HTTP_RETRY_MAX", int),
    "http_cache_ttl_sec": ("HTTP_CACHE_TTL_SEC", int),
    "peer_resolution_max_workers": ("PEER_RESOLUTION_MAX_WORKERS", int),
    "transform_command": ("TRANSFORM_COMMAND", None),
}


def _as_command(value: Any) -> list:
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ValueError(f"expected a string or list of strings, got {value!r}")


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the YAML configuration file.

    Returns:
        The mapping found in the file, or {} when no usable file exists.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", config_path)
        return {}
    return data


def apply_config(data: Mapping[str, Any]) -> None:
    """Apply recognised config keys to Constants; bad values are logged and skipped."""
    for key, value in data.items():
        if key not in _CONFIG_KEYS:
            logger.warning("Unknown config key: %s", key)
            continue
        attr, converter = _CONFIG_KEYS[key]
        try:
            converted = _as_command(value) if converter is None else converter(value)
        except (TypeError, ValueError) as e:
            logger.warning("Invalid value for %s: %s", key, e)
            continue
        setattr(Constants, attr, converted)


def apply_env_overrides(env: Optional[Mapping[str, str]] = None) -> None:
    """Apply NEXTUP_* environment overrides."""
    env = os.environ if env is None else env
    registry = env.get(Constants.ENV_REGISTRY_URL, "").strip()
    if registry:
        Constants.REGISTRY_URL_NPM = registry
    transform = env.get(Constants.ENV_TRANSFORM_COMMAND, "").strip()
    if transform:
        Constants.TRANSFORM_COMMAND = shlex.split(transform)


def apply_cli_overrides(args) -> None:
    """Apply CLI flags, the highest-precedence source."""
    if getattr(args, "REGISTRY", None):
        Constants.REGISTRY_URL_NPM = args.REGISTRY


def configure(args, env: Optional[Mapping[str, str]] = None) -> None:
    """Load every configuration source in precedence order."""
    env = os.environ if env is None else env
    config_path = getattr(args, "CONFIG", None) or env.get(Constants.ENV_CONFIG)
    data = load_config_file(config_path)
    if data:
        logger.debug("Loaded config from %s", config_path)
    apply_config(data)
    apply_env_overrides(env)
    apply_cli_overrides(args)
