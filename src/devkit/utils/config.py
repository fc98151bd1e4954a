"""
Configuration for the dev kit.

Settings come from three places, in increasing priority:

1. Built-in defaults (:data:`DEFAULT_CONFIG`)
2. An optional YAML file (``$DEVKIT_CONFIG`` or ``~/.config/ss-dev-kit/config.yml``)
3. Environment variables for the settings that have one (see :data:`ENV_OVERRIDES`),
   including any loaded from a ``.env`` file in the current directory

Values in the YAML file may reference environment variables with ``${VAR}``,
``${VAR:-default}`` or ``$VAR``.
"""

import copy
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

# Use standard logging (not get_logger) to avoid circular imports with logger.py
logger = logging.getLogger("CONFIG")

DEFAULT_CONFIG: dict[str, Any] = {
    "php_versions": ["8.1", "8.2", "8.3"],
    "default_host_suffix": "localhost",
    "container_runtime": "auto",
    "github_token": None,
    "webserver_image": "guysartorelli/ss-dev-kit:latest",
    "cli": {"theme": "default"},
    "logging": {"rich_tracebacks": True, "show_traceback_locals": False},
}

# config key -> environment variable
ENV_OVERRIDES: dict[str, str] = {
    "php_versions": "DT_PHP_VERSIONS",
    "default_host_suffix": "DT_DEFAULT_HOST_SUFFIX",
    "container_runtime": "CONTAINER_RUNTIME",
    "github_token": "SS_DK_GITHUB_TOKEN",
}

# Settings whose environment variable holds a comma separated list
_LIST_SETTINGS = {"php_versions"}


def default_config_path() -> Path:
    """Get the config file path, honouring ``$DEVKIT_CONFIG``."""
    config_file = os.environ.get("DEVKIT_CONFIG")
    if config_file:
        return Path(config_file).expanduser()
    return Path.home() / ".config" / "ss-dev-kit" / "config.yml"


class ConfigBuilder:
    """
    Loads and merges the dev kit configuration.

    Unlike a project configuration, the file is optional: a missing file
    simply leaves the defaults in place. A file that exists but is not a
    YAML mapping is an error.
    """

    def __init__(self, config_path: str | Path | None = None):
        # Load .env file from current working directory
        # This ensures environment variables are available for config resolution
        dotenv_path = Path.cwd() / ".env"
        if dotenv_path.exists():
            load_dotenv(dotenv_path, override=False)  # Don't override existing env vars
            logger.debug(f"Loaded .env file from {dotenv_path}")

        self.config_path = Path(config_path) if config_path else default_config_path()
        self.raw_config = self._load_config()

    def _load_yaml_file(self, file_path: Path) -> dict[str, Any]:
        """Load and validate a YAML configuration file."""
        try:
            with open(file_path) as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            error_msg = f"Error parsing YAML configuration: {e}"
            logger.error(error_msg)
            raise yaml.YAMLError(error_msg) from e

        if config is None:
            logger.warning(f"Configuration file is empty: {file_path}")
            return {}

        if not isinstance(config, dict):
            error_msg = f"Configuration file must contain a dictionary/mapping: {file_path}"
            logger.error(error_msg)
            raise ValueError(error_msg)

        logger.debug(f"Loaded configuration from {file_path}")
        return config

    def _resolve_env_vars(self, data: Any) -> Any:
        """Recursively resolve environment variables in configuration data.

        Supports both simple and bash-style default value syntax:
        - ${VAR_NAME} - simple substitution
        - ${VAR_NAME:-default_value} - with default value
        - $VAR_NAME - simple substitution without braces
        """
        if isinstance(data, dict):
            return {key: self._resolve_env_vars(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [self._resolve_env_vars(item) for item in data]
        elif isinstance(data, str):

            def replace_env_var(match):
                if match.group(1):  # ${VAR_NAME:-default} or ${VAR_NAME}
                    var_name = match.group(1)
                    default_value = match.group(2)
                else:  # $VAR_NAME
                    var_name = match.group(3)
                    default_value = None

                env_value = os.environ.get(var_name)
                if env_value is None:
                    if default_value is not None:
                        return default_value
                    logger.info(f"Environment variable '{var_name}' not found, keeping original value")
                    return match.group(0)
                return env_value

            pattern = r"\$\{([^}:]+)(?::-(.*?))?\}|\$([A-Za-z_][A-Za-z0-9_]*)"
            return re.sub(pattern, replace_env_var, data)
        else:
            return data

    def _apply_env_overrides(self, config: dict[str, Any]) -> None:
        for key, env_var in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value is None or value == "":
                continue
            if key in _LIST_SETTINGS:
                config[key] = [item.strip() for item in value.split(",") if item.strip()]
            else:
                config[key] = value

    def _load_config(self) -> dict[str, Any]:
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path.exists():
            file_config = self._resolve_env_vars(self._load_yaml_file(self.config_path))
            _deep_merge(config, file_config)
        else:
            logger.debug(f"No configuration file at {self.config_path}, using defaults")

        self._apply_env_overrides(config)
        return config

    def get(self, path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation path."""
        keys = path.split(".")
        value = self.raw_config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


# =============================================================================
# GLOBAL CONFIGURATION
# =============================================================================

_default_config: ConfigBuilder | None = None


def get_config_builder() -> ConfigBuilder:
    """Get the shared configuration (loaded on first use)."""
    global _default_config
    if _default_config is None:
        _default_config = ConfigBuilder()
    return _default_config


def reset_config() -> None:
    """Forget the shared configuration so the next access reloads it."""
    global _default_config
    _default_config = None


def get_config_value(path: str, default: Any = None) -> Any:
    """
    Get a specific configuration value by dot-separated path.

    Args:
        path: Dot-separated configuration path (e.g., "cli.theme")
        default: Default value to return if path is not found

    Returns:
        The configuration value at the specified path, or default if not found

    Raises:
        ValueError: If path is empty or None

    Examples:
        >>> get_config_value("default_host_suffix")
        'localhost'
    """
    if not path:
        raise ValueError("Configuration path cannot be empty or None")

    value = get_config_builder().get(path, default)
    return default if value is None else value
