# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Example of deploying to an on-premises SQL Server Analysis Services instance
The server is reached through its msmdpump.dll HTTP endpoint with basic authentication
"""
# START-EXAMPLE
from ssas_cicd import TabularServer, deploy_tabular_model, process_tabular_database

server = TabularServer(
    server="https://ssas.contoso.com/olap/msmdpump.dll",
    user_id="CONTOSO\\svc-deploy",
    password="your-password",
)

# Point the data source at the test warehouse, impersonating a service account
data_sources = [
    {
        "name": "SqlDW",
        "connection_string": "Provider=SQLNCLI11;Data Source=test-sql;Initial Catalog=DW;Integrated Security=SSPI",
        "user_id": "CONTOSO\\svc-ssas",
        "password": "your-service-account-password",
    }
]

deploy_tabular_model(server, "cube/Model.bim", database_name="Sales_Test", data_sources=data_sources)

# Refresh data only, calculations are recalculated separately
process_tabular_database(server, "Sales_Test", refresh_type="dataOnly")
process_tabular_database(server, "Sales_Test", refresh_type="calculate")
