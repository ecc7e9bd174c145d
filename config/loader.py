import os
import re
import yaml
from typing import Any, Dict, IO

from utils.errors import ConfigError

# Matches ${VAR_NAME} and ${VAR_NAME:-default}
ENV_VAR_MATCHER = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


class EnvVarLoader(yaml.SafeLoader):
    """SafeLoader that substitutes ${VAR} references in scalar values."""


def _env_var_constructor(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> str:
    """
    Replaces every ${VAR} in the scalar with the value of the VAR environment variable.
    """
    value = loader.construct_scalar(node)

    def replace(match: "re.Match[str]") -> str:
        env_var, default = match.group(1), match.group(2)
        replacement = os.getenv(env_var, default)
        if replacement is None:
            raise ConfigError(f"Environment variable '{env_var}' not found for substitution in config.")
        return replacement

    return ENV_VAR_MATCHER.sub(replace, value)


EnvVarLoader.add_constructor("!env", _env_var_constructor)
EnvVarLoader.add_implicit_resolver("!env", ENV_VAR_MATCHER, None)


def load_config(config_file: IO[str]) -> Dict[str, Any]:
    """
    Loads a YAML configuration file.

    Args:
        config_file: A file-like object representing the YAML configuration.

    Returns:
        A dictionary containing the configuration.

    Raises:
        ConfigError: If the file cannot be parsed.
    """
    try:
        config = yaml.load(config_file, Loader=EnvVarLoader)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}") from e
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError("Configuration root must be a mapping.")
    return config
