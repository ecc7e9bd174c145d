import collections.abc
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from config.loader import load_config
from config.models import Config
from utils.errors import ConfigError
from utils.logger import logger

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"
USER_CONFIG_DIR = Path.home() / ".aicommit-server"
USER_CONFIG_PATH = USER_CONFIG_DIR / "config.yaml"
CONFIG_ENV_VAR = "AICOMMIT_SERVER_CONFIG"


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merges two dictionaries.
    Arrays are replaced, not merged.
    """
    for key, value in source.items():
        if isinstance(value, collections.abc.Mapping) and key in target and isinstance(target[key], collections.abc.Mapping):
            target[key] = deep_merge(dict(target[key]), value)
        else:
            target[key] = value
    return target


def resolve_config_paths(custom_config_path: Optional[str] = None) -> List[Path]:
    """
    Returns the configuration files to merge, lowest precedence first.

    A custom path (argument, or the AICOMMIT_SERVER_CONFIG environment variable)
    replaces the user file but is still layered over the packaged defaults.
    """
    config_paths: List[Path] = []
    if DEFAULT_CONFIG_PATH.is_file():
        config_paths.append(DEFAULT_CONFIG_PATH)

    custom = custom_config_path or os.getenv(CONFIG_ENV_VAR)
    if custom:
        path = Path(custom).expanduser()
        if not path.is_file():
            raise ConfigError(f"Custom config file not found at: {custom}")
        logger.info(f"Using custom configuration from: {path}")
        config_paths.append(path)
    elif USER_CONFIG_PATH.is_file():
        config_paths.append(USER_CONFIG_PATH)

    return config_paths


def load_and_merge_configs(custom_config_path: Optional[str] = None) -> Config:
    """
    Loads all configurations (packaged defaults, user or custom file) and merges them.
    """
    merged_config: Dict[str, Any] = {}
    for path in resolve_config_paths(custom_config_path):
        logger.debug(f"Loading configuration from: {path}")
        with open(path, "r", encoding="utf-8") as f:
            merged_config = deep_merge(merged_config, load_config(f))

    try:
        final_config = Config(**merged_config)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e
    logger.debug(f"Final merged config: {final_config.model_dump_json(indent=2)}")
    return final_config
