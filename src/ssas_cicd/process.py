# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Module for processing (refreshing) tabular databases."""

import logging
import time

from ssas_cicd import constants
from ssas_cicd._common._logging import log_header
from ssas_cicd._common._validate_input import (
    validate_database_name,
    validate_refresh_type,
    validate_tabular_server_obj,
)
from ssas_cicd._common._xmla_request import build_process_command, build_tmsl_refresh
from ssas_cicd.tabular_server import TabularServer

logger = logging.getLogger(__name__)


def process_tabular_database(
    tabular_server_obj: TabularServer,
    database_name: str,
    refresh_type: str = constants.DEFAULT_REFRESH_TYPE,
) -> int:
    """
    Processes a tabular database with the given refresh type.

    Databases at compatibility level 1200 and above are refreshed with a TMSL refresh command, older ones
    with an XMLA Process command of the equivalent process type.

    Args:
        tabular_server_obj: The TabularServer object of the server hosting the database.
        database_name: The name of the database to process.
        refresh_type: One of full, clearValues, calculate, dataOnly, automatic, add, defragment. Defaults to full.

    Returns:
        The compatibility level of the processed database.

    Examples:
        Basic usage
        >>> from ssas_cicd import TabularServer, process_tabular_database
        >>> server = TabularServer(server="https://myserver/olap/msmdpump.dll")
        >>> process_tabular_database(server, "AdventureWorks")

        With refresh type
        >>> from ssas_cicd import TabularServer, process_tabular_database
        >>> server = TabularServer(server="https://myserver/olap/msmdpump.dll")
        >>> process_tabular_database(server, "AdventureWorks", refresh_type="dataOnly")
    """
    tabular_server_obj = validate_tabular_server_obj(tabular_server_obj)
    database_name = validate_database_name(database_name)
    refresh_type = validate_refresh_type(refresh_type)

    log_header(logger, f"Processing Database '{database_name}'")

    compatibility_level = tabular_server_obj.get_compatibility_level(database_name)

    if compatibility_level >= constants.TMSL_MIN_COMPATIBILITY_LEVEL:
        command = build_tmsl_refresh(database_name, refresh_type)
        logger.info(f"Refreshing '{database_name}' with refresh type '{refresh_type}'")
    else:
        process_type = constants.REFRESH_TYPES[refresh_type]
        command = build_process_command(tabular_server_obj.get_database_id(database_name), process_type)
        logger.info(
            f"Processing '{database_name}' with process type '{process_type}' (compatibility level {compatibility_level})"
        )

    start_time = time.time()
    tabular_server_obj.execute(command)
    logger.info(f"{constants.INDENT}Processed in {time.time() - start_time:.1f} seconds")

    return compatibility_level
