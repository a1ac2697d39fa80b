# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Provides tools for deploying and processing tabular models on Analysis Services servers."""

import logging
import sys

import ssas_cicd.constants as constants
from ssas_cicd._common._check_utils import check_version
from ssas_cicd._common._logging import configure_logger, exception_handler
from ssas_cicd._common._logging import disable_file_logging as _disable_file_logging
from ssas_cicd.deploy import delete_tabular_database, deploy_tabular_model, deploy_with_config
from ssas_cicd.process import process_tabular_database
from ssas_cicd.tabular_server import TabularServer

logger = logging.getLogger(__name__)


def append_feature_flag(feature: str) -> None:
    """
    Append a feature flag to the global feature_flag set.

    Args:
        feature: The feature flag to be included.

    Examples:
        Basic usage
        >>> from ssas_cicd import append_feature_flag
        >>> append_feature_flag("fail_on_warnings")
    """
    constants.FEATURE_FLAG.add(feature)


def change_log_level(level: str = "DEBUG") -> None:
    """
    Sets the log level for all loggers within the ssas_cicd package. Currently only supports DEBUG.

    Args:
        level: The logging level to set (e.g., DEBUG).

    Examples:
        Basic usage
        >>> from ssas_cicd import change_log_level
        >>> change_log_level("DEBUG")
    """
    if level.upper() == "DEBUG":
        configure_logger(logging.DEBUG)
        logger.info("Changed log level to DEBUG")
    else:
        logger.warning(f"Log level '{level}' not supported.  Only DEBUG is supported at this time. No changes made.")


def disable_file_logging() -> None:
    """
    Stops writing the ssas_cicd.error.log file. Console logging is unaffected.

    Examples:
        Basic usage
        >>> from ssas_cicd import disable_file_logging
        >>> disable_file_logging()
    """
    _disable_file_logging()


def configure_logger_with_rotation(file_path: str) -> None:
    """
    Sets DEBUG logging with a rotating log file at the given path.

    Args:
        file_path: Path of the log file.

    Examples:
        Basic usage
        >>> from ssas_cicd import configure_logger_with_rotation
        >>> configure_logger_with_rotation("logs/ssas_cicd.log")
    """
    configure_logger(logging.DEBUG, file_path=file_path, rotate_on=True, suppress_debug_console=True)
    logger.info(f"Logging with rotation to {file_path}")


configure_logger()
sys.excepthook = exception_handler

check_version()

__all__ = [
    "TabularServer",
    "append_feature_flag",
    "change_log_level",
    "configure_logger_with_rotation",
    "delete_tabular_database",
    "deploy_tabular_model",
    "deploy_with_config",
    "disable_file_logging",
    "process_tabular_database",
]
