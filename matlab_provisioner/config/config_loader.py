# matlab_provisioner/config/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the provisioner.

Handles loading settings from Pydantic model defaults, environment
variables, a YAML file and command-line overrides, applying a specific
order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (via Pydantic's BaseSettings initialization)
3. YAML Configuration File
4. Command-Line Overrides
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

CONFIG_FILE_DEFAULT = "config.yaml"

# CLI option name -> (section, field). A section of None means top level.
CLI_OVERRIDE_MAP: Dict[str, tuple] = {
    "release": ("matlab", "release"),
    "products": ("matlab", "products"),
    "install_location": ("matlab", "install_location"),
    "license_server": (None, "license_server"),
    "container_runtime": (None, "container_runtime_command"),
    "extension": ("matconvnet", "enabled"),
}


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates a dictionary `source` with values from `overrides`.

    Nested dictionaries are merged key by key. A None override never
    replaces an existing value, but is added when the key is new.

    Returns:
        The updated `source` dictionary.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def read_yaml_config(
    config_file_path: Union[str, Path],
    current_logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """
    Read a YAML mapping from disk.

    A missing, unparsable or non-mapping file is logged and yields an empty
    dictionary so the remaining configuration sources still apply.
    """
    logger_to_use = current_logger if current_logger else module_logger
    yaml_config_path = Path(config_file_path)

    if not (yaml_config_path.exists() and yaml_config_path.is_file()):
        logger_to_use.info(
            f"Configuration file '{yaml_config_path}' not found. Using defaults, environment variables, and CLI args."
        )
        return {}

    try:
        with open(yaml_config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        logger_to_use.warning(
            f"Could not read config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        logger_to_use.warning(
            f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}

    logger_to_use.info(f"Loaded configuration from {yaml_config_path}")
    return yaml_data


def map_cli_overrides(cli_overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Translate flat CLI option values into the nested settings layout."""
    mapped: Dict[str, Any] = {}
    for cli_key, cli_value in cli_overrides.items():
        if cli_value is None or cli_key not in CLI_OVERRIDE_MAP:
            continue
        section, field = CLI_OVERRIDE_MAP[cli_key]
        if section is None:
            mapped[field] = cli_value
        else:
            mapped.setdefault(section, {})[field] = cli_value
    return mapped


def load_app_settings(
    cli_overrides: Optional[Dict[str, Any]] = None,
    config_file_path: Union[str, Path] = CONFIG_FILE_DEFAULT,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings with the following precedence:
    1. Pydantic Model Defaults.
    2. Environment Variables (BaseSettings reads these on construction).
    3. Values from the YAML configuration file.
    4. Command-line overrides (highest precedence).

    Args:
        cli_overrides: Flat mapping of CLI option names to values. None
            values are ignored.
        config_file_path: Path to the YAML configuration file.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        SystemExit: If the merged configuration fails validation.
    """
    logger_to_use = current_logger if current_logger else module_logger

    try:
        settings_after_env_and_defaults = AppSettings()
    except ValidationError as e:
        logger_to_use.error(f"Environment configuration is invalid: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    current_values_dict = settings_after_env_and_defaults.model_dump(
        exclude_defaults=False
    )

    yaml_data = read_yaml_config(config_file_path, logger_to_use)
    if yaml_data:
        current_values_dict = _deep_update(current_values_dict, yaml_data)

    if cli_overrides:
        current_values_dict = _deep_update(
            current_values_dict, map_cli_overrides(cli_overrides)
        )

    try:
        final_settings = AppSettings(**current_values_dict)
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    logger_to_use.debug(
        "Successfully loaded and validated application settings"
    )
    return final_settings
