# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Module for deploying tabular models to an Analysis Services server."""

import logging
import time
from pathlib import Path
from typing import Optional, Union

from azure.core.credentials import TokenCredential

from ssas_cicd import constants
from ssas_cicd._common._config_utils import (
    apply_config_overrides,
    extract_deploy_settings,
    extract_process_settings,
    extract_server_settings,
    load_config_file,
)
from ssas_cicd._common._logging import log_header
from ssas_cicd._common._model_file import apply_data_source_overrides, load_model_file
from ssas_cicd._common._validate_input import (
    validate_data_sources,
    validate_database_name,
    validate_environment,
    validate_model_file,
    validate_refresh_type,
    validate_tabular_server_obj,
)
from ssas_cicd._common._xmla_request import (
    build_alter_command,
    build_delete_command,
    build_tmsl_create_or_replace,
    build_tmsl_delete,
)
from ssas_cicd.process import process_tabular_database
from ssas_cicd.tabular_server import TabularServer

logger = logging.getLogger(__name__)


def deploy_tabular_model(
    tabular_server_obj: TabularServer,
    model_file: Union[str, Path],
    database_name: Optional[str] = None,
    data_sources: Optional[list[dict]] = None,
    refresh_type: Optional[str] = None,
) -> int:
    """
    Deploys a tabular model file to the server, creating or replacing the database.

    JSON models (compatibility level 1200 and above) are deployed with a TMSL createOrReplace command,
    legacy XML models with an XMLA Alter command that allows creation.

    Args:
        tabular_server_obj: The TabularServer object of the target server.
        model_file: Path to the model.bim file.
        database_name: The name of the deployed database. Defaults to the name in the model file.
        data_sources: Data source overrides, each a dict with a `name` and any of `connection_string`,
            `user_id`, `password`.
        refresh_type: When given, the database is processed with this refresh type after deployment.

    Returns:
        The compatibility level of the deployed database.

    Examples:
        Basic usage
        >>> from ssas_cicd import TabularServer, deploy_tabular_model
        >>> server = TabularServer(server="https://myserver/olap/msmdpump.dll")
        >>> deploy_tabular_model(server, "Model/Model.bim")

        With database name, data source override and refresh
        >>> from ssas_cicd import TabularServer, deploy_tabular_model
        >>> server = TabularServer(server="https://myserver/olap/msmdpump.dll")
        >>> deploy_tabular_model(
        ...     server,
        ...     "Model/Model.bim",
        ...     database_name="Sales_Test",
        ...     data_sources=[{"name": "SqlDW", "connection_string": "Data Source=test-sql;Initial Catalog=DW"}],
        ...     refresh_type="full"
        ... )
    """
    tabular_server_obj = validate_tabular_server_obj(tabular_server_obj)
    model_file = validate_model_file(model_file)
    data_sources = validate_data_sources(data_sources)
    if database_name is not None:
        database_name = validate_database_name(database_name)
    if refresh_type is not None:
        refresh_type = validate_refresh_type(refresh_type)

    model = load_model_file(model_file)
    if database_name:
        model = model.with_database_name(database_name)
    model = apply_data_source_overrides(model, data_sources)

    log_header(logger, f"Deploying Database '{model.name}'")
    logger.info(f"Deploying '{model_file.name}' (compatibility level {model.compatibility_level})")

    if model.is_tmsl:
        command = build_tmsl_create_or_replace(model.name, model.definition)
    else:
        command = build_alter_command(model.database_id, model.serialize())

    start_time = time.time()
    tabular_server_obj.execute(command)

    # Raises ObjectNotFoundError when the database did not get created
    compatibility_level = tabular_server_obj.get_compatibility_level(model.name)
    logger.info(f"{constants.INDENT}Deployed in {time.time() - start_time:.1f} seconds")

    if refresh_type:
        process_tabular_database(tabular_server_obj, model.name, refresh_type)

    return compatibility_level


def delete_tabular_database(tabular_server_obj: TabularServer, database_name: str) -> None:
    """
    Deletes a tabular database from the server. A database that does not exist is skipped with a warning.

    Args:
        tabular_server_obj: The TabularServer object of the server hosting the database.
        database_name: The name of the database to delete.

    Examples:
        Basic usage
        >>> from ssas_cicd import TabularServer, delete_tabular_database
        >>> server = TabularServer(server="https://myserver/olap/msmdpump.dll")
        >>> delete_tabular_database(server, "Sales_PR1234")
    """
    tabular_server_obj = validate_tabular_server_obj(tabular_server_obj)
    database_name = validate_database_name(database_name)

    log_header(logger, f"Deleting Database '{database_name}'")

    if not tabular_server_obj.database_exists(database_name):
        logger.warning(f"Database '{database_name}' does not exist on the server, nothing to delete")
        return

    compatibility_level = tabular_server_obj.get_compatibility_level(database_name)
    if compatibility_level >= constants.TMSL_MIN_COMPATIBILITY_LEVEL:
        command = build_tmsl_delete(database_name)
    else:
        command = build_delete_command(tabular_server_obj.get_database_id(database_name))

    tabular_server_obj.execute(command)
    logger.info(f"{constants.INDENT}Deleted")


def deploy_with_config(
    config_file_path: str,
    environment: str = "N/A",
    user_id: Optional[str] = None,
    password: Optional[str] = None,
    token_credential: Optional[TokenCredential] = None,
    config_override: Optional[dict] = None,
) -> Optional[int]:
    """
    Deploy and process a tabular model using a YAML configuration file with environment-specific settings.
    The TabularServer object is constructed internally, and the deploy and process operations run
    according to the configuration.

    Args:
        config_file_path: Path to the YAML configuration file as a string.
        environment: Environment name to use for deployment (e.g., 'dev', 'test', 'prod'), if missing defaults to 'N/A'.
        user_id: Optional user for basic authentication.
        password: Optional password for basic authentication.
        token_credential: Optional Azure token credential for authentication.
        config_override: Optional dictionary to override specific configuration values.

    Returns:
        The compatibility level of the database, or None when both deploy and process are skipped.

    Raises:
        ConfigValidationError: If configuration file is invalid or environment not found.

    Examples:
        Basic usage
        >>> from ssas_cicd import deploy_with_config
        >>> deploy_with_config(
        ...     config_file_path="cube/config.yml",
        ...     environment="prod"
        ... )

        With override configuration
        >>> from ssas_cicd import deploy_with_config
        >>> deploy_with_config(
        ...     config_file_path="cube/config.yml",
        ...     environment="prod",
        ...     config_override={
        ...         "process": {
        ...             "refresh_type": {
        ...                 "prod": "automatic"
        ...             }
        ...         }
        ...     }
        ... )
    """
    log_header(logger, "Config-Based Deployment")
    logger.info(f"Loading configuration from {config_file_path} for environment '{environment}'")

    environment = validate_environment(environment)

    config = load_config_file(config_file_path, environment, config_override)

    server_settings = extract_server_settings(config, environment)
    deploy_settings = extract_deploy_settings(config, environment)
    process_settings = extract_process_settings(config, environment)

    apply_config_overrides(config, environment)

    server = TabularServer(
        server=server_settings["server"],
        user_id=user_id,
        password=password,
        token_credential=token_credential,
    )
    database_name = server_settings["database"]
    compatibility_level = None

    if not deploy_settings.get("skip", False):
        compatibility_level = deploy_tabular_model(
            server,
            model_file=server_settings["model_file"],
            database_name=database_name,
            data_sources=deploy_settings.get("data_sources"),
        )
    else:
        logger.info(f"Skipping deploy operation for environment '{environment}'")

    if not process_settings.get("skip", False):
        compatibility_level = process_tabular_database(
            server,
            database_name,
            refresh_type=process_settings.get("refresh_type") or constants.DEFAULT_REFRESH_TYPE,
        )
    else:
        logger.info(f"Skipping process operation for environment '{environment}'")

    logger.info("Config-based deployment completed successfully")
    return compatibility_level
