# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Utilities for YAML-based deployment configuration."""

import logging
from typing import Any, Optional

from ssas_cicd import constants
from ssas_cicd._common._config_validator import ConfigValidator

logger = logging.getLogger(__name__)


def load_config_file(config_file_path: str, environment: str, config_override: Optional[dict] = None) -> dict:
    """Load and validate YAML configuration file.

    Args:
        config_file_path: Path to the YAML config file
        environment: Target environment for deployment
        config_override: Optional dictionary to override specific configuration values

    Returns:
        Parsed and validated configuration dictionary
    """
    validator = ConfigValidator()
    return validator.validate_config_file(config_file_path, environment, config_override)


def get_environment_value(value: Any, environment: str, default: Any = None) -> Any:
    """Return the value for the environment when the setting is an environment mapping, else the value itself."""
    if isinstance(value, dict):
        return value.get(environment.strip(), default)
    return value


def extract_server_settings(config: dict, environment: str) -> dict:
    """Extract server-specific settings from config for the given environment."""
    core = config["core"]
    settings = {
        "server": get_environment_value(core["server"], environment),
        "database": get_environment_value(core["database"], environment),
    }
    logger.info(f"Using server '{settings['server']}' and database '{settings['database']}'")

    if "model_file" in core:
        settings["model_file"] = get_environment_value(core["model_file"], environment)

    return settings


def extract_deploy_settings(config: dict, environment: str) -> dict:
    """Extract deploy-specific settings from config for the given environment."""
    settings = {}

    if "deploy" in config:
        deploy_config = config["deploy"]

        if "data_sources" in deploy_config:
            settings["data_sources"] = get_environment_value(deploy_config["data_sources"], environment, [])

        if "skip" in deploy_config:
            settings["skip"] = get_environment_value(deploy_config["skip"], environment, False)

    return settings


def extract_process_settings(config: dict, environment: str) -> dict:
    """Extract process-specific settings from config for the given environment."""
    settings = {}

    if "process" in config:
        process_config = config["process"]

        if "refresh_type" in process_config:
            settings["refresh_type"] = get_environment_value(process_config["refresh_type"], environment)

        if "skip" in process_config:
            settings["skip"] = get_environment_value(process_config["skip"], environment, False)

    return settings


def apply_config_overrides(config: dict, environment: str) -> None:
    """Apply feature flags and constants overrides from config.

    Args:
        config: Configuration dictionary
        environment: Target environment for deployment
    """
    if "features" in config:
        features = config["features"]
        features_list = features.get(environment, []) if isinstance(features, dict) else features

        for feature in features_list:
            constants.FEATURE_FLAG.add(feature)
            logger.info(f"Enabled feature flag: {feature}")

    if "constants" in config:
        constants_section = config["constants"]
        # Environment mapping when all values are dicts
        if all(isinstance(v, dict) for v in constants_section.values()):
            constants_dict = constants_section.get(environment, {})
        else:
            constants_dict = constants_section

        for key, value in constants_dict.items():
            if hasattr(constants, key):
                setattr(constants, key, value)
                logger.warning(f"Override constant {key} = {value}")
