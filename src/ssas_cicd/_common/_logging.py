# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Logging utilities for the ssas_cicd package."""

import inspect
import logging
import re
import sys
import traceback
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import ClassVar, Optional

from colorama import Fore, Style

from ssas_cicd import constants
from ssas_cicd._common import _exceptions

DEFAULT_LOG_FILE = "ssas_cicd.error.log"
ANSI_ESCAPE_REGEX = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")

_log_file_path: Optional[Path] = Path(DEFAULT_LOG_FILE)


class CustomFormatter(logging.Formatter):
    LEVEL_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": Fore.BLACK,
        "INFO": Fore.WHITE + Style.BRIGHT,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Style.BRIGHT + Fore.RED,
    }

    def format(self, record: LogRecord) -> str:
        level_color = self.LEVEL_COLORS.get(record.levelname, "")
        level_name = {
            "WARNING": "warn",
            "DEBUG": "debug",
            "INFO": "info",
            "ERROR": "error",
            "CRITICAL": "crit",
        }.get(record.levelname, "unknown")

        level_name = f"{level_color}[{level_name}]"
        timestamp = f"{self.formatTime(record, self.datefmt)}"
        message = f"{record.getMessage()}{Style.RESET_ALL}"

        # indent if the message contains "->"
        if constants.INDENT in message:
            message = message.replace(constants.INDENT, "")
            full_message = f"{' ' * 8} {timestamp} - {message}"
        else:
            # Pad to 8 visual characters, ignoring ANSI codes
            visual_level_length = len(ANSI_ESCAPE_REGEX.sub("", level_name))
            padding = " " * max(0, 8 - visual_level_length)

            full_message = f"{level_name}{padding} {timestamp} - {message}"
        return full_message


def configure_logger(
    level: int = logging.INFO,
    file_path: Optional[str] = None,
    disable_log_file: bool = False,
    rotate_on: bool = False,
    suppress_debug_console: bool = False,
) -> None:
    """
    Configure the logger.

    Args:
        level: The log level to set. Must be one of the standard logging levels.
        file_path: Path of the log file. Defaults to ssas_cicd.error.log in the working directory.
        disable_log_file: Do not write a log file.
        rotate_on: Use a rotating log file (5 MB, 5 backups).
        suppress_debug_console: Keep the console at INFO when the package logs at DEBUG.
    """
    global _log_file_path

    # For non-ssas_cicd packages: INFO if DEBUG, else ERROR
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO if level == logging.DEBUG else logging.ERROR)
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    if disable_log_file:
        _log_file_path = None
    else:
        _log_file_path = Path(file_path or DEFAULT_LOG_FILE)
        if rotate_on:
            file_handler = RotatingFileHandler(
                _log_file_path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8", delay=True
            )
        else:
            file_handler = logging.FileHandler(_log_file_path, mode="w", encoding="utf-8", delay=True)
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s"))
        root_logger.addHandler(file_handler)

    # Configure Console Handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO if suppress_debug_console and level == logging.DEBUG else level)
    console_handler.setFormatter(
        CustomFormatter(
            "[%(levelname)s] %(asctime)s - %(message)s",
            datefmt="%H:%M:%S",
        )
    )

    # Create a logger that writes to the console and log file
    package_logger = logging.getLogger("ssas_cicd")
    package_logger.setLevel(level)
    package_logger.handlers = []
    package_logger.addHandler(console_handler)

    # Create a logger that only writes to the console
    console_only_logger = logging.getLogger("console_only")
    console_only_logger.setLevel(level)
    console_only_logger.handlers = []
    console_only_logger.addHandler(console_handler)
    console_only_logger.propagate = False


def disable_file_logging() -> None:
    """Remove the log file handlers from the root logger."""
    global _log_file_path

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root_logger.removeHandler(handler)
    _log_file_path = None


def exception_handler(exception_type: type[BaseException], exception: BaseException, traceback: traceback) -> None:
    """
    Handle exceptions that are instances of any class from the _common._exceptions module.

    Args:
        exception_type: The type of the exception.
        exception: The exception instance.
        traceback: The traceback object.
    """
    exception_classes = [cls for _, cls in inspect.getmembers(_exceptions, inspect.isclass)]

    if any(isinstance(exception, cls) for cls in exception_classes):
        original_logger = exception.logger

        # Write only the exception message to the console
        details = f"\n\nSee {_log_file_path.resolve()} for full details." if _log_file_path else ""
        logging.getLogger("console_only").error(f"{exception!s}{details}")

        additional_info = getattr(exception, "additional_info", None)
        additional_info = "\n\nAdditional Info: \n" + additional_info if additional_info is not None else ""

        # Write exception and full stack trace to logs but not terminal
        logging.getLogger("ssas_cicd").handlers = []
        original_logger.exception(f"%s{additional_info}", exception, exc_info=(exception_type, exception, traceback))
    else:
        sys.__excepthook__(exception_type, exception, traceback)


def log_header(logger: logging.Logger, message: str) -> None:
    """
    Logs a header message with a decorative line above and below it.

    Args:
        logger: The logger to write the header to.
        message: The header message.
    """
    line_separator = "#" * 100
    formatted_message = f"########## {message}"
    formatted_message = f"{formatted_message} {line_separator[len(formatted_message) + 1 :]}"

    logger.info("")
    logger.info(f"{Fore.GREEN}{Style.BRIGHT}{line_separator}{Style.RESET_ALL}")
    logger.info(f"{Fore.GREEN}{Style.BRIGHT}{formatted_message}{Style.RESET_ALL}")
    logger.info(f"{Fore.GREEN}{Style.BRIGHT}{line_separator}{Style.RESET_ALL}")
    logger.info("")
