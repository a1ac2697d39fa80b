# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Utility functions for checking versions."""

import logging

import requests
from colorama import Fore, Style
from packaging import version

import ssas_cicd.constants as constants

logger = logging.getLogger(__name__)


def check_version() -> None:
    """Check the current version of the ssas-cicd package and compare it with the latest version."""
    try:
        current_version = constants.VERSION
        response = requests.get("https://pypi.org/pypi/ssas-cicd/json", timeout=5)
        latest_version = response.json()["info"]["version"]

        if version.parse(current_version) < version.parse(latest_version):
            msg = (
                f"{Fore.BLUE}[notice]{Style.RESET_ALL} A new release of ssas-cicd is available: "
                f"{Fore.RED}{current_version}{Style.RESET_ALL} -> {Fore.GREEN}{latest_version}{Style.RESET_ALL}\n"
                f"{Fore.BLUE}[notice]{Style.RESET_ALL} To update, run: "
                f"{Fore.CYAN}pip install --upgrade ssas-cicd{Style.RESET_ALL}"
            )
            print(msg)
    except Exception as e:
        # Silently handle errors, but log them if debug is needed
        logger.debug(f"Error checking version: {e}")
