# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Example of deploying to Azure Analysis Services with SPN + Secret
Can be expanded to retrieve values from Key Vault or other sources
"""

from azure.identity import ClientSecretCredential

from ssas_cicd import TabularServer, deploy_tabular_model

client_id = "your-client-id"
client_secret = "your-client-secret"
tenant_id = "your-tenant-id"
token_credential = ClientSecretCredential(client_id=client_id, client_secret=client_secret, tenant_id=tenant_id)

# The XMLA endpoint of the Azure Analysis Services server
server = TabularServer(
    server="https://westeurope.asazure.windows.net/webapi/xmla",
    token_credential=token_credential,
)

# Deploy the model under a different database name and process it afterwards
compatibility_level = deploy_tabular_model(
    server,
    model_file="cube/Model.bim",
    database_name="Sales",
    refresh_type="full",
)
print(f"Deployed database at compatibility level {compatibility_level}")
