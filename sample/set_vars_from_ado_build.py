# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Example to set variables based on the target environment.
Environment is determined based on the branch that produced the build.
"""
# START-EXAMPLE
import os

from ssas_cicd import TabularServer, delete_tabular_database, deploy_tabular_model

branch = os.getenv("BUILD_SOURCEBRANCHNAME")
pull_request_id = os.getenv("SYSTEM_PULLREQUEST_PULLREQUESTID")

if branch == "main":
    server_url = "https://ssas-prod.contoso.com/olap/msmdpump.dll"
    database_name = "Sales"
elif pull_request_id:
    server_url = "https://ssas-test.contoso.com/olap/msmdpump.dll"
    database_name = f"Sales_PR{pull_request_id}"
else:
    raise ValueError("Invalid branch to deploy from")

server = TabularServer(
    server=server_url,
    user_id=os.getenv("SSAS_USER_ID"),
    password=os.getenv("SSAS_PASSWORD"),
)

deploy_tabular_model(server, "cube/Model.bim", database_name=database_name, refresh_type="full")

# Remove the database of an abandoned pull request
abandoned_pull_request_id = os.getenv("ABANDONED_PULLREQUEST_ID")
if abandoned_pull_request_id:
    delete_tabular_database(server, f"Sales_PR{abandoned_pull_request_id}")
