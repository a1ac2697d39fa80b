# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Helpers for running as an Azure DevOps pipeline task: task inputs, logging commands and the task result."""

import logging
import os
from typing import Callable, Optional

from azure.identity import DefaultAzureCredential

from ssas_cicd import constants
from ssas_cicd._common._exceptions import BaseCustomError, InputError

logger = logging.getLogger(__name__)

AUTHENTICATION_TYPES = ["basic", "azure", "anonymous"]


def get_task_input(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Read a task input the agent exposes as an INPUT_<NAME> environment variable.

    Args:
        name: The input name as declared by the task, e.g. modelFile.
        default: Value returned when the input is missing or blank.
    """
    value = os.environ.get(f"{constants.PIPELINE_INPUT_PREFIX}{name.upper()}", "").strip()
    return value or default


def require_input(value: Optional[str], name: str) -> str:
    """Raise an InputError when a required task input is missing."""
    if value is None or not str(value).strip():
        msg = f"Input '{name}' is required."
        raise InputError(msg, logger)
    return value


def set_task_variable(name: str, value: str, is_output: bool = False) -> None:
    """Publish a pipeline variable for the following steps."""
    output = "isOutput=true;" if is_output else ""
    print(f"##vso[task.setvariable variable={name};{output}]{value}", flush=True)


def log_issue(message: str, issue_type: str = "error") -> None:
    """Report an error or warning on the pipeline run summary."""
    # Logging commands are single line
    message = " ".join(str(message).splitlines())
    print(f"##vso[task.logissue type={issue_type}]{message}", flush=True)


def complete_task(result: str, message: str = "") -> None:
    """Set the result of the task: Succeeded, SucceededWithIssues or Failed."""
    message = " ".join(str(message).splitlines())
    print(f"##vso[task.complete result={result};]{message}", flush=True)


def get_credentials(authentication: str, user_id: Optional[str], password: Optional[str]) -> dict:
    """
    Build the TabularServer authentication keyword arguments for the authentication input.

    Args:
        authentication: One of basic, azure, anonymous. When omitted, basic if a user is given, else anonymous.
        user_id: The user for basic authentication.
        password: The password for basic authentication.
    """
    if not authentication or not authentication.strip():
        authentication = "basic" if user_id else "anonymous"
    authentication = authentication.strip().lower()

    if authentication not in AUTHENTICATION_TYPES:
        msg = f"Invalid authentication '{authentication}'. Must be one of {', '.join(AUTHENTICATION_TYPES)}."
        raise InputError(msg, logger)

    if authentication == "basic":
        return {"user_id": require_input(user_id, "userId"), "password": require_input(password, "password")}

    if authentication == "azure":
        logger.info("Authenticating with DefaultAzureCredential")
        return {"token_credential": DefaultAzureCredential()}

    return {}


def run_task(task: Callable[[], None]) -> int:
    """
    Run a task body and report its result to the pipeline.

    Package errors fail the task with their message and exit code 1. Other exceptions propagate.

    Args:
        task: The task body.
    """
    try:
        task()
    except BaseCustomError as e:
        e.logger.debug("Task failed", exc_info=e)
        log_issue(str(e))
        complete_task("Failed", str(e))
        return 1

    complete_task("Succeeded")
    return 0
