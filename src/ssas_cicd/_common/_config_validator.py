# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Configuration validation for YAML-based deployment configuration."""

import logging
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from ssas_cicd import constants
from ssas_cicd._common._exceptions import InputError

logger = logging.getLogger(__name__)


class ConfigValidationError(InputError):
    """Specific exception for configuration validation errors."""

    def __init__(self, errors: list[str], logger_instance: logging.Logger) -> None:
        """Initialize with list of validation errors."""
        self.validation_errors = errors
        error_msg = f"Configuration validation failed with {len(errors)} error(s):\n" + "\n".join(
            f"  - {error}" for error in errors
        )
        super().__init__(error_msg, logger_instance)


class ConfigValidator:
    """Validates YAML configuration files for ssas-cicd deployment."""

    def __init__(self) -> None:
        """Initialize the validator."""
        self.errors: list = []
        self.config: dict = None
        self.config_path: Path = None
        self.environment: str = None
        self.config_override: Optional[dict] = None

    def validate_config_file(
        self, config_file_path: str, environment: str, config_override: Optional[dict] = None
    ) -> dict[str, Any]:
        """
        Validate configuration file and return parsed config if valid.

        Args:
            config_file_path: String path to the configuration file
            environment: The target environment for the deployment
            config_override: Optional dictionary to override specific configuration values

        Returns:
            Parsed configuration dictionary (includes overrides, if any)

        Raises:
            ConfigValidationError: If validation fails
        """
        self.errors = []
        self.environment = environment
        self.config_override = config_override

        config_path = self._validate_file_existence(config_file_path)
        self.config = self._validate_yaml_content(config_path)

        if self.config is not None and self.config_override is not None:
            self._apply_and_validate_overrides()

        if self.config is not None:
            self._validate_config_structure()
            self._validate_config_sections()
            self._validate_environment_exists()

            # Resolve paths only once the environment mapping is known to be valid
            if not self.errors:
                self._resolve_model_file_path()

        if self.errors:
            raise ConfigValidationError(self.errors, logger)

        return self.config

    def _validate_file_existence(self, config_file_path: str) -> Optional[Path]:
        """Validate file path and existence."""
        if not config_file_path or not isinstance(config_file_path, str):
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["path_empty"])
            return None

        try:
            config_path = Path(config_file_path).resolve()
        except (OSError, RuntimeError) as e:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["invalid_path"].format(config_file_path, e))
            return None

        if not config_path.exists():
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["not_found"].format(config_file_path))
            return None

        if not config_path.is_file():
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["not_file"].format(config_file_path))
            return None

        self.config_path = config_path
        return config_path

    def _validate_yaml_content(self, config_path: Optional[Path]) -> Optional[dict]:
        """Validate YAML syntax and basic structure."""
        if config_path is None:
            return None

        try:
            with config_path.open(encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["yaml_syntax"].format(e))
            return None
        except UnicodeDecodeError as e:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["encoding_error"].format(e))
            return None
        except PermissionError as e:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["permission_denied"].format(e))
            return None
        except Exception as e:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["unexpected_error"].format(e))
            return None

        if config is None:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["empty_file"])
            return None

        if not isinstance(config, dict):
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["file"]["not_dict"].format(type(config).__name__))
            return None

        return config

    def _apply_and_validate_overrides(self) -> None:
        """Apply and validate config overrides."""
        for section, value in self.config_override.items():
            try:
                if not self._valid_override_section(section, value):
                    continue

                self._merge_overrides(section, value)

            except Exception as e:
                self.errors.append(constants.CONFIG_VALIDATION_MSGS["override"]["apply_failed"].format(section, e))

    def _valid_override_section(self, section: str, value: Any) -> bool:
        """Validates the override section and structure are correct."""
        if section not in constants.CONFIG_SECTIONS:
            self.errors.append(
                constants.CONFIG_VALIDATION_MSGS["override"]["unsupported_section"].format(
                    section, list(constants.CONFIG_SECTIONS.keys())
                )
            )
            return False

        expected_types = constants.CONFIG_SECTIONS[section]["type"]
        if not isinstance(value, expected_types):
            type_names = (
                " or ".join(t.__name__ for t in expected_types)
                if isinstance(expected_types, tuple)
                else expected_types.__name__
            )
            self.errors.append(
                constants.CONFIG_VALIDATION_MSGS["override"]["wrong_type"].format(
                    section, type_names, type(value).__name__
                )
            )
            return False

        if isinstance(value, dict) and section in ["core", "deploy", "process"]:
            supported = constants.CONFIG_SECTIONS[section]["settings"]
            for setting in value:
                if setting not in supported:
                    self.errors.append(
                        constants.CONFIG_VALIDATION_MSGS["override"]["unsupported_setting"].format(
                            section, setting, supported
                        )
                    )
                    return False

        return True

    def _merge_overrides(self, section: str, value: dict | list) -> None:
        """Merge section and setting overrides into config file."""
        if section in ["features", "constants"]:
            action = "updated" if section in self.config else "added"
            self.config[section] = value
            logger.warning(constants.CONFIG_VALIDATION_MSGS["log"]["override_section"].format(action, section, value))
            return

        # Add section if it doesn't already exist (deploy, process only)
        if section not in self.config:
            if section == "core":
                self.errors.append(constants.CONFIG_VALIDATION_MSGS["override"]["cannot_create_core"])
                return

            self.config[section] = {}
            logger.warning(constants.CONFIG_VALIDATION_MSGS["log"]["override_added_section"].format(section))

        for setting, setting_value in value.items():
            exists = setting in self.config[section]

            # Required fields can only be overridden, not added
            if not exists and section == "core" and setting in ["server", "database"]:
                self.errors.append(constants.CONFIG_VALIDATION_MSGS["override"]["cannot_create_required"].format(setting))
                continue

            if isinstance(setting_value, dict) and self.environment in setting_value:
                env_value = setting_value[self.environment]

                if exists and isinstance(self.config[section][setting], dict):
                    self.config[section][setting][self.environment] = env_value
                    logger.warning(
                        constants.CONFIG_VALIDATION_MSGS["log"]["override_env_specific"].format(
                            section, setting, self.environment, env_value
                        )
                    )
                else:
                    self.config[section][setting] = {self.environment: env_value}
                    logger.warning(
                        constants.CONFIG_VALIDATION_MSGS["log"]["override_env_mapping"].format(
                            section, setting, self.environment, env_value
                        )
                    )

            else:
                self.config[section][setting] = setting_value
                action = "updated" if exists else "added"
                logger.warning(
                    constants.CONFIG_VALIDATION_MSGS["log"]["override_setting"].format(
                        action, section, setting, setting_value
                    )
                )

    def _validate_config_structure(self) -> None:
        """Validate top-level configuration structure."""
        if "core" not in self.config:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["structure"]["missing_core"])
            return

        if not isinstance(self.config["core"], dict):
            self.errors.append(
                constants.CONFIG_VALIDATION_MSGS["structure"]["core_not_dict"].format(
                    type(self.config["core"]).__name__
                )
            )

    def _validate_config_sections(self) -> None:
        """Validate the configuration sections"""
        if "core" not in self.config or not isinstance(self.config["core"], dict):
            return

        core = self.config["core"]

        if "server" not in core:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["structure"]["missing_server"])
        else:
            self._validate_string_field(core["server"], "core.server", self._validate_server_value)

        if "database" not in core:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["structure"]["missing_database"])
        else:
            self._validate_string_field(core["database"], "core.database", self._validate_database_value)

        if "model_file" in core:
            self._validate_string_field(core["model_file"], "core.model_file")
        elif not self._is_deploy_skipped():
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["structure"]["missing_model_file"])

        if "deploy" in self.config:
            self._validate_deploy_section(self.config["deploy"])

        if "process" in self.config:
            self._validate_process_section(self.config["process"])

        if "features" in self.config:
            self._validate_features_section(self.config["features"])

        if "constants" in self.config:
            self._validate_constants_section(self.config["constants"])

    def _is_deploy_skipped(self) -> bool:
        deploy = self.config.get("deploy")
        skip = deploy.get("skip", False) if isinstance(deploy, dict) else False
        if isinstance(skip, dict):
            return skip.get(self.environment, False) is True
        return skip is True

    def _validate_environment_exists(self) -> None:
        """Validate that target environment exists in all environment mappings."""
        if self.environment == "N/A":
            if any(
                field_name in section and isinstance(section[field_name], dict)
                for section, field_name, _, _, _ in _get_config_fields(self.config)
                if not (field_name == "constants" and _is_regular_constants_dict(section.get(field_name, {})))
            ):
                self.errors.append(constants.CONFIG_VALIDATION_MSGS["environment"]["no_env_with_mappings"])
            return

        for section, field_name, display_name, is_required, log_warning in _get_config_fields(self.config):
            if field_name not in section:
                continue

            field_value = section[field_name]
            if field_name == "constants" and _is_regular_constants_dict(field_value):
                continue

            if isinstance(field_value, dict) and self.environment not in field_value:
                available_envs = list(field_value.keys())
                if is_required:
                    self.errors.append(
                        constants.CONFIG_VALIDATION_MSGS["environment"]["env_not_found"].format(
                            self.environment, display_name, available_envs
                        )
                    )
                    continue

                msg = (
                    f"Environment '{self.environment}' not found in '{display_name}'. "
                    f"Available environments: {available_envs}. This setting will be skipped."
                )
                if log_warning:
                    logger.warning(msg)
                else:
                    logger.debug(msg)

    def _validate_environment_mapping(self, field_value: dict, field_name: str, accepted_type: type) -> bool:
        """Validate field with environment mapping."""
        if not field_value:
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["environment"]["empty_mapping"].format(field_name))
            return False

        valid = True
        for env, value in field_value.items():
            if not isinstance(env, str) or not env.strip():
                self.errors.append(
                    constants.CONFIG_VALIDATION_MSGS["environment"]["invalid_env_key"].format(
                        field_name, type(env).__name__
                    )
                )
                valid = False
                continue

            if not isinstance(value, accepted_type):
                self.errors.append(
                    f"'{field_name}' value for environment '{env}' must be a {accepted_type.__name__}, got {type(value).__name__}"
                )
                valid = False
                continue

            if accepted_type is str and not value.strip():
                self.errors.append(
                    constants.CONFIG_VALIDATION_MSGS["environment"]["empty_env_value"].format(field_name, env)
                )
                valid = False

        return valid

    def _validate_string_field(self, field_value: Any, field_name: str, value_validator=None) -> bool:
        """Validate a string field or its environment mapping, then each value with the value validator."""
        if isinstance(field_value, str):
            if not field_value.strip():
                self.errors.append(constants.CONFIG_VALIDATION_MSGS["field"]["empty_value"].format(field_name))
                return False
            return value_validator(field_value, field_name) if value_validator else True

        if isinstance(field_value, dict):
            valid = self._validate_environment_mapping(field_value, field_name, str)
            if valid and value_validator:
                for env, value in field_value.items():
                    if not value_validator(value, f"{field_name}.{env}"):
                        valid = False
            return valid

        self.errors.append(
            constants.CONFIG_VALIDATION_MSGS["field"]["string_or_dict"].format(field_name, type(field_value).__name__)
        )
        return False

    def _validate_server_value(self, value: str, context: str) -> bool:
        if not re.match(constants.VALID_SERVER_REGEX, value.strip()):
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["field"]["invalid_server"].format(context, value))
            return False
        return True

    def _validate_database_value(self, value: str, context: str) -> bool:
        if re.search(constants.INVALID_DATABASE_CHAR_REGEX, value):
            self.errors.append(constants.CONFIG_VALIDATION_MSGS["field"]["invalid_database"].format(context, value))
            return False
        return True

    def _validate_refresh_type_value(self, value: str, context: str) -> bool:
        if value.strip().casefold() not in {refresh_type.casefold() for refresh_type in constants.REFRESH_TYPES}:
            self.errors.append(
                constants.CONFIG_VALIDATION_MSGS["field"]["invalid_refresh_type"].format(
                    context, value, ", ".join(constants.REFRESH_TYPES)
                )
            )
            return False
        return True

    def _validate_skip_field(self, skip_value: Any, field_name: str) -> None:
        if isinstance(skip_value, bool):
            return

        if isinstance(skip_value, dict):
            self._validate_environment_mapping(skip_value, field_name, bool)
            return

        self.errors.append(
            constants.CONFIG_VALIDATION_MSGS["field"]["bool_or_dict"].format(field_name, type(skip_value).__name__)
        )

    def _validate_deploy_section(self, section: Any) -> None:
        """Validate deploy section structure."""
        if not isinstance(section, dict):
            self.errors.append(
                constants.CONFIG_VALIDATION_MSGS["operation"]["not_dict"].format("deploy", type(section).__name__)
            )
            return

        if "data_sources" in section:
            data_sources = section["data_sources"]

            if isinstance(data_sources, list):
                self._validate_data_sources_list(data_sources, "deploy.data_sources")

            elif isinstance(data_sources, dict):
                if self._validate_environment_mapping(data_sources, "deploy.data_sources", list):
                    for env, data_sources_list in data_sources.items():
                        self._validate_data_sources_list(data_sources_list, f"deploy.data_sources.{env}")

            else:
                self.errors.append(
                    constants.CONFIG_VALIDATION_MSGS["field"]["list_or_dict"].format(
                        "deploy.data_sources", type(data_sources).__name__
                    )
                )

        if "skip" in section:
            self._validate_skip_field(section["skip"], "deploy.skip")

    def _validate_data_sources_list(self, data_sources: list, context: str) -> None:
        """Validate a list of data source overrides with proper context for error messages."""
        for i, data_source in enumerate(data_sources):
            if not isinstance(data_source, dict):
                self.errors.append(
                    constants.CONFIG_VALIDATION_MSGS["operation"]["data_source_type"].format(
                        context, i, type(data_source).__name__
                    )
                )
                continue

            name = data_source.get("name")
            if not isinstance(name, str) or not name.strip():
                self.errors.append(constants.CONFIG_VALIDATION_MSGS["operation"]["data_source_name"].format(context, i))

            unsupported = sorted(set(data_source) - set(constants.DATA_SOURCE_OVERRIDE_KEYS))
            if unsupported:
                self.errors.append(
                    constants.CONFIG_VALIDATION_MSGS["operation"]["data_source_keys"].format(
                        context, i, unsupported, list(constants.DATA_SOURCE_OVERRIDE_KEYS)
                    )
                )

    def _validate_process_section(self, section: Any) -> None:
        """Validate process section structure."""
        if not isinstance(section, dict):
            self.errors.append(
                constants.CONFIG_VALIDATION_MSGS["operation"]["not_dict"].format("process", type(section).__name__)
            )
            return

        if "refresh_type" in section:
            self._validate_string_field(
                section["refresh_type"], "process.refresh_type", self._validate_refresh_type_value
            )

        if "skip" in section:
            self._validate_skip_field(section["skip"], "process.skip")

    def _validate_features_section(self, features: Any) -> None:
        """Validate features section."""
        if isinstance(features, list):
            if not features:
                self.errors.append(constants.CONFIG_VALIDATION_MSGS["operation"]["empty_section"].format("features"))
                return

            self._validate_features_list(features, "features")
            return

        if isinstance(features, dict):
            if not self._validate_environment_mapping(features, "features", list):
                return

            for env, features_list in features.items():
                if not features_list:
                    self.errors.append(
                        constants.CONFIG_VALIDATION_MSGS["operation"]["empty_section_env"].format("features", env)
                    )
                    continue
                self._validate_features_list(features_list, f"features.{env}")
            return

        self.errors.append(
            constants.CONFIG_VALIDATION_MSGS["operation"]["features_type"].format(type(features).__name__)
        )

    def _validate_features_list(self, features_list: list, context: str) -> None:
        """Validate a list of features with proper context for error messages."""
        for i, feature in enumerate(features_list):
            if not isinstance(feature, str):
                self.errors.append(
                    constants.CONFIG_VALIDATION_MSGS["operation"]["list_entry_type"].format(
                        context, i, type(feature).__name__
                    )
                )
            elif not feature.strip():
                self.errors.append(constants.CONFIG_VALIDATION_MSGS["operation"]["list_entry_empty"].format(context, i))

    def _validate_constants_section(self, constants_section: Any) -> None:
        """Validate constants section."""
        if not isinstance(constants_section, dict):
            self.errors.append(
                constants.CONFIG_VALIDATION_MSGS["operation"]["not_dict"].format(
                    "constants", type(constants_section).__name__
                )
            )
            return

        if constants_section and all(isinstance(value, dict) for value in constants_section.values()):
            if not self._validate_environment_mapping(constants_section, "constants", dict):
                return

            for env, env_constants in constants_section.items():
                if not env_constants:
                    self.errors.append(
                        constants.CONFIG_VALIDATION_MSGS["operation"]["empty_section_env"].format("constants", env)
                    )
                    continue
                self._validate_constants_dict(env_constants, f"constants.{env}")
        else:
            self._validate_constants_dict(constants_section, "constants")

    def _validate_constants_dict(self, constants_dict: dict, context: str) -> None:
        """Validate a constants dictionary with proper context for error messages."""
        for key in constants_dict:
            if not isinstance(key, str) or not key.strip():
                self.errors.append(
                    constants.CONFIG_VALIDATION_MSGS["operation"]["invalid_constant_key"].format(context, key)
                )
                continue

            if not hasattr(constants, key):
                self.errors.append(
                    constants.CONFIG_VALIDATION_MSGS["operation"]["unknown_constant"].format(key, context)
                )

    def _resolve_model_file_path(self) -> None:
        """Resolve model file paths relative to the config file location."""
        core = self.config["core"]
        if "model_file" not in core:
            return

        field_value = core["model_file"]
        paths_to_resolve = {"_default": field_value} if isinstance(field_value, str) else dict(field_value)

        # Only the target environment path is resolved when an environment mapping is used
        if self.environment != "N/A" and isinstance(field_value, dict):
            if self.environment not in paths_to_resolve:
                logger.debug(f"Skipping path resolution for 'model_file' - environment '{self.environment}' not in mapping")
                return
            paths_to_resolve = {self.environment: paths_to_resolve[self.environment]}

        for env_key, path_str in paths_to_resolve.items():
            env_desc = f" for environment '{env_key}'" if env_key != "_default" else ""
            try:
                path = Path(path_str)
                if path.is_absolute():
                    resolved_path = path
                    logger.info(
                        constants.CONFIG_VALIDATION_MSGS["path"]["absolute"].format("model_file", env_desc, resolved_path)
                    )
                else:
                    resolved_path = (self.config_path.parent / path_str).resolve()
                    logger.info(
                        constants.CONFIG_VALIDATION_MSGS["path"]["resolved"].format(
                            "model_file", path_str, env_desc, resolved_path
                        )
                    )

                if not resolved_path.exists():
                    self.errors.append(
                        constants.CONFIG_VALIDATION_MSGS["path"]["not_found"].format("model_file", env_desc, resolved_path)
                    )
                    continue

                if not resolved_path.is_file():
                    self.errors.append(
                        constants.CONFIG_VALIDATION_MSGS["path"]["not_file"].format("model_file", env_desc, resolved_path)
                    )
                    continue

                if isinstance(field_value, str):
                    core["model_file"] = str(resolved_path)
                else:
                    core["model_file"][env_key] = str(resolved_path)

            except (OSError, ValueError) as e:
                self.errors.append(
                    constants.CONFIG_VALIDATION_MSGS["path"]["invalid"].format("model_file", path_str, env_desc, e)
                )


def _get_config_fields(config: dict) -> list[tuple[dict, str, str, bool, bool]]:
    """Get list of all fields that support environment mappings.

    Returns:
        List of tuples: (section_dict, field_name, display_name, is_required, log_warning)
        - is_required: If True, missing environment causes error.
        - log_warning: logging type (e.g., warning (True), debug (False)).
    """
    core = config.get("core", {}) if isinstance(config.get("core"), dict) else {}
    deploy = config.get("deploy", {}) if isinstance(config.get("deploy"), dict) else {}
    process = config.get("process", {}) if isinstance(config.get("process"), dict) else {}
    return [
        (core, "server", "core.server", True, False),
        (core, "database", "core.database", True, False),
        (core, "model_file", "core.model_file", False, True),
        (deploy, "data_sources", "deploy.data_sources", False, True),
        (deploy, "skip", "deploy.skip", False, False),
        (process, "refresh_type", "process.refresh_type", False, True),
        (process, "skip", "process.skip", False, False),
        (config, "features", "features", False, False),
        (config, "constants", "constants", False, False),
    ]


def _is_regular_constants_dict(constants_value: dict) -> bool:
    """Check if constants section is a regular dict (not environment mapping)."""
    if not isinstance(constants_value, dict) or not constants_value:
        return True
    return not all(isinstance(value, dict) for value in constants_value.values())
