# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Example of leveraging default authentication flows after authenticating in an Azure DevOps pipeline
Either as a service connection (AzureCLI@2 task) or a method like PowerShell

Shows how to gracefully pass through arguments added to a Python script task in Azure Pipelines
See azure-pipelines.yml in this directory
"""

# START-EXAMPLE
# argparse is required to gracefully deal with the arguments
import argparse

from azure.identity import DefaultAzureCredential

from ssas_cicd import deploy_with_config

parser = argparse.ArgumentParser(description="Process Azure Pipeline arguments.")
parser.add_argument("--ConfigFile", type=str)
parser.add_argument("--Environment", type=str)
parser.add_argument("--DatabaseSuffix", type=str, default="")
args = parser.parse_args()

config_override = None
if args.DatabaseSuffix:
    # e.g. deploy a pull request build next to the test database
    config_override = {"core": {"database": {args.Environment: f"Sales_{args.DatabaseSuffix}"}}}

deploy_with_config(
    config_file_path=args.ConfigFile,
    environment=args.Environment,
    token_credential=DefaultAzureCredential(),
    config_override=config_override,
)
