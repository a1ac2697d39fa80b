# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Azure DevOps task that processes (refreshes) a tabular database."""

import argparse
from typing import Optional

from ssas_cicd import constants
from ssas_cicd._tasks._pipeline import get_credentials, get_task_input, require_input, run_task, set_task_variable
from ssas_cicd.process import process_tabular_database
from ssas_cicd.tabular_server import TabularServer


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse the task arguments, falling back to the task inputs of the pipeline agent."""
    parser = argparse.ArgumentParser(description="Process a tabular database on an Analysis Services server.")
    parser.add_argument("--Server", default=get_task_input("server"), help="XMLA endpoint URL of the server")
    parser.add_argument("--Database", default=get_task_input("database"), help="Name of the database to process")
    parser.add_argument(
        "--RefreshType",
        default=get_task_input("refreshType", constants.DEFAULT_REFRESH_TYPE),
        help=f"One of {', '.join(constants.REFRESH_TYPES)}",
    )
    parser.add_argument("--Authentication", default=get_task_input("authentication"))
    parser.add_argument("--UserId", default=get_task_input("userId"))
    parser.add_argument("--Password", default=get_task_input("password"))
    return parser.parse_args(argv)


def process(args: argparse.Namespace) -> None:
    """Process with the parsed task arguments and publish the compatibility level."""
    credentials = get_credentials(args.Authentication, args.UserId, args.Password)
    server = TabularServer(server=require_input(args.Server, "server"), **credentials)

    compatibility_level = process_tabular_database(
        server, require_input(args.Database, "database"), refresh_type=args.RefreshType
    )
    set_task_variable(constants.PIPELINE_COMPATIBILITY_LEVEL_VARIABLE, str(compatibility_level))


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point of the ssas-process command."""
    args = parse_args(argv)
    return run_task(lambda: process(args))


if __name__ == "__main__":
    raise SystemExit(main())
