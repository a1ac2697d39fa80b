# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Azure DevOps task that deploys a tabular model, directly from task inputs or from a YAML config file."""

import argparse
import logging
from typing import Optional

from ssas_cicd import constants
from ssas_cicd._common._exceptions import InputError
from ssas_cicd._tasks._pipeline import get_credentials, get_task_input, require_input, run_task, set_task_variable
from ssas_cicd.deploy import deploy_tabular_model, deploy_with_config
from ssas_cicd.tabular_server import TabularServer

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse the task arguments, falling back to the task inputs of the pipeline agent."""
    parser = argparse.ArgumentParser(description="Deploy a tabular model to an Analysis Services server.")
    parser.add_argument("--Server", default=get_task_input("server"), help="XMLA endpoint URL of the server")
    parser.add_argument("--Database", default=get_task_input("database"), help="Name of the deployed database")
    parser.add_argument("--ModelFile", default=get_task_input("modelFile"), help="Path to the model.bim file")
    parser.add_argument("--Authentication", default=get_task_input("authentication"))
    parser.add_argument("--UserId", default=get_task_input("userId"))
    parser.add_argument("--Password", default=get_task_input("password"))
    parser.add_argument("--RefreshType", default=get_task_input("refreshType"), help="Process after deployment")
    parser.add_argument("--ConfigFile", default=get_task_input("configFile"), help="Path to a YAML config file")
    parser.add_argument("--Environment", default=get_task_input("environment", "N/A"))
    return parser.parse_args(argv)


def deploy(args: argparse.Namespace) -> None:
    """Deploy with the parsed task arguments."""
    credentials = get_credentials(args.Authentication, args.UserId, args.Password)

    if args.ConfigFile:
        if args.Server or args.Database or args.ModelFile:
            msg = "Input 'configFile' cannot be combined with 'server', 'database' or 'modelFile'."
            raise InputError(msg, logger)

        compatibility_level = deploy_with_config(args.ConfigFile, environment=args.Environment, **credentials)
        if compatibility_level is not None:
            set_task_variable(constants.PIPELINE_COMPATIBILITY_LEVEL_VARIABLE, str(compatibility_level))
        return

    server = TabularServer(server=require_input(args.Server, "server"), **credentials)
    compatibility_level = deploy_tabular_model(
        server,
        require_input(args.ModelFile, "modelFile"),
        database_name=args.Database,
        refresh_type=args.RefreshType,
    )
    set_task_variable(constants.PIPELINE_COMPATIBILITY_LEVEL_VARIABLE, str(compatibility_level))


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point of the ssas-deploy command."""
    args = parse_args(argv)
    return run_task(lambda: deploy(args))


if __name__ == "__main__":
    raise SystemExit(main())
