# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

# The following is intended for developers of ssas-cicd to debug locally against the github repo

import sys
from pathlib import Path

from azure.identity import ClientSecretCredential

root_directory = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(root_directory / "src"))

from ssas_cicd import (
    TabularServer,
    append_feature_flag,
    change_log_level,
    constants,
    delete_tabular_database,
    deploy_tabular_model,
    deploy_with_config,
    process_tabular_database,
)

# Uncomment to enable debug
# change_log_level()

# Uncomment to add feature flag
# append_feature_flag("disable_print_identity")

# In this example, the model sits within the root/sample/cube directory
model_file = str(root_directory / "sample" / "cube" / "Model.bim")
config_file = str(root_directory / "sample" / "cube" / "config.yml")

# Uncomment to use SPN auth against Azure Analysis Services
# client_id = "your-client-id"
# client_secret = "your-client-secret"
# tenant_id = "your-tenant-id"
# token_credential = ClientSecretCredential(client_id=client_id, client_secret=client_secret, tenant_id=tenant_id)

constants.REQUEST_TIMEOUT_SECONDS = 60

server = TabularServer(
    server="https://ssas-dev.contoso.com/olap/msmdpump.dll",
    user_id="CONTOSO\\your-user",
    password="your-password",
    # Uncomment to use SPN auth
    # token_credential=token_credential,
)

# Uncomment to deploy
# deploy_tabular_model(server, model_file, database_name="DEBUG_Sales")

# Uncomment to process
# process_tabular_database(server, "DEBUG_Sales", refresh_type="full")

# Uncomment to delete
# delete_tabular_database(server, "DEBUG_Sales")

# Uncomment to deploy with the config file
# deploy_with_config(config_file, environment="dev", user_id="CONTOSO\\your-user", password="your-password")
