# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Following functions are leveraged to validate user input for the ssas-cicd package
Primarily used for the TabularServer class, but also intended to be leveraged for
any user input throughout the package
"""

import logging
import re
from pathlib import Path
from typing import Optional

from azure.core.credentials import TokenCredential

import ssas_cicd.constants as constants
from ssas_cicd._common._exceptions import InputError
from ssas_cicd.tabular_server import TabularServer

logger = logging.getLogger(__name__)


def validate_data_type(expected_type: str, variable_name: str, input_value: any) -> any:
    """
    Validate the data type of the input value.

    Args:
        expected_type: The expected data type.
        variable_name: The name of the variable.
        input_value: The input value to validate.
    """
    type_validators = {
        "string": lambda x: isinstance(x, str),
        "bool": lambda x: isinstance(x, bool),
        "list": lambda x: isinstance(x, list),
        "list[dict]": lambda x: isinstance(x, list) and all(isinstance(item, dict) for item in x),
        "TabularServer": lambda x: isinstance(x, TabularServer),
        "TokenCredential": lambda x: isinstance(x, TokenCredential),
    }

    if expected_type not in type_validators or not type_validators[expected_type](input_value):
        msg = f"The provided {variable_name} is not of type {expected_type}."
        raise InputError(msg, logger)

    return input_value


def validate_server(input_value: str) -> str:
    """
    Validate the server is an http(s) XMLA endpoint URL.

    Args:
        input_value: The input value to validate.
    """
    validate_data_type("string", "server", input_value)
    input_value = input_value.strip()

    if not re.match(constants.VALID_SERVER_REGEX, input_value):
        msg = (
            f"The provided server '{input_value}' is not an http(s) XMLA endpoint URL, "
            "e.g. https://myserver/olap/msmdpump.dll."
        )
        raise InputError(msg, logger)

    return input_value


def validate_database_name(input_value: str) -> str:
    """
    Validate the database name.

    Args:
        input_value: The input value to validate.
    """
    validate_data_type("string", "database_name", input_value)
    input_value = input_value.strip()

    if not input_value:
        msg = "The provided database_name is empty."
        raise InputError(msg, logger)

    if re.search(constants.INVALID_DATABASE_CHAR_REGEX, input_value):
        msg = f"The provided database_name '{input_value}' contains characters that are not allowed."
        raise InputError(msg, logger)

    return input_value


def validate_refresh_type(input_value: str) -> str:
    """
    Validate the refresh type and return it in its canonical casing.

    Args:
        input_value: The input value to validate.
    """
    validate_data_type("string", "refresh_type", input_value)

    for refresh_type in constants.REFRESH_TYPES:
        if refresh_type.casefold() == input_value.strip().casefold():
            return refresh_type

    msg = (
        f"Invalid or unsupported refresh type: '{input_value}'. "
        f"Must be one of {', '.join(constants.REFRESH_TYPES)}."
    )
    raise InputError(msg, logger)


def validate_model_file(input_value: str) -> Path:
    """
    Validate the model file and convert string to Path object

    Args:
        input_value: The input value to validate.
    """
    if isinstance(input_value, Path):
        input_value = str(input_value)
    validate_data_type("string", "model_file", input_value)

    model_file = Path(input_value)

    if not model_file.is_file():
        msg = f"The provided model_file '{input_value}' does not exist."
        raise InputError(msg, logger)

    if model_file.suffix.lower() not in constants.MODEL_FILE_EXTENSIONS:
        msg = (
            f"The provided model_file '{input_value}' is not a supported model file. "
            f"Must be one of {', '.join(constants.MODEL_FILE_EXTENSIONS)}."
        )
        raise InputError(msg, logger)

    if not model_file.is_absolute():
        absolute_model_file = model_file.resolve()
        logger.info(f"Relative model file path '{model_file}' resolved as '{absolute_model_file}'")
        model_file = absolute_model_file

    return model_file


def validate_credentials(user_id: Optional[str], password: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Validate user ID and password are provided together.

    Args:
        user_id: The user ID for basic authentication.
        password: The password for basic authentication.
    """
    user_id = user_id or None
    password = password or None

    if user_id is not None:
        validate_data_type("string", "user_id", user_id)
    if password is not None:
        validate_data_type("string", "password", password)

    if (user_id is None) != (password is None):
        msg = "Both user_id and password must be specified when using basic authentication."
        raise InputError(msg, logger)

    return user_id, password


def validate_data_sources(input_value: Optional[list]) -> list[dict]:
    """
    Validate data source overrides.

    Args:
        input_value: List of dicts with a 'name' and any of 'connection_string', 'user_id', 'password'.
    """
    if input_value is None:
        return []

    validate_data_type("list[dict]", "data_sources", input_value)

    for data_source in input_value:
        unsupported = set(data_source) - set(constants.DATA_SOURCE_OVERRIDE_KEYS)
        if unsupported:
            msg = (
                f"Data source override contains unsupported keys {sorted(unsupported)}. "
                f"Must be any of {', '.join(constants.DATA_SOURCE_OVERRIDE_KEYS)}."
            )
            raise InputError(msg, logger)
        if not isinstance(data_source.get("name"), str) or not data_source["name"].strip():
            msg = "Data source override must contain a non-empty 'name'."
            raise InputError(msg, logger)

    return input_value


def validate_environment(input_value: str) -> str:
    """
    Validate the environment.

    Args:
        input_value: The input value to validate.
    """
    validate_data_type("string", "environment", input_value)

    return input_value


def validate_tabular_server_obj(input_value: TabularServer) -> TabularServer:
    """
    Validate the TabularServer object.

    Args:
        input_value: The input value to validate.
    """
    validate_data_type("TabularServer", "tabular_server_obj", input_value)

    return input_value


def validate_token_credential(input_value: TokenCredential) -> TokenCredential:
    """
    Validate the token credential.

    Args:
        input_value: The input value to validate.
    """
    validate_data_type("TokenCredential", "credential", input_value)

    return input_value
