# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Module provides the TabularServer class to query and command an Analysis Services server over XMLA."""

import logging
import xml.etree.ElementTree as ET
from typing import Optional

from azure.core.credentials import TokenCredential

from ssas_cicd import constants
from ssas_cicd._common._exceptions import ParsingError
from ssas_cicd._common._xmla_endpoint import XmlaEndpoint
from ssas_cicd._common._xmla_request import build_discover, build_execute
from ssas_cicd._common._xmla_response import (
    find_row,
    parse_rowset,
    parse_xml_metadata,
    raise_for_fault,
    raise_for_messages,
)

logger = logging.getLogger(__name__)


class TabularServer:
    """A class to query and command tabular databases on an Analysis Services server."""

    def __init__(
        self,
        server: str,
        user_id: Optional[str] = None,
        password: Optional[str] = None,
        token_credential: Optional[TokenCredential] = None,
    ) -> None:
        """
        Initializes the TabularServer instance.

        Args:
            server: The XMLA endpoint URL of the server, e.g. https://myserver/olap/msmdpump.dll.
            user_id: The user for basic authentication. Must be given together with `password`.
            password: The password for basic authentication.
            token_credential: The token credential to use for Azure Analysis Services. Takes precedence over `user_id`.

        Examples:
            Basic usage
            >>> from ssas_cicd import TabularServer
            >>> server = TabularServer(server="https://myserver/olap/msmdpump.dll")

            With basic authentication
            >>> from ssas_cicd import TabularServer
            >>> server = TabularServer(
            ...     server="https://myserver/olap/msmdpump.dll",
            ...     user_id="DOMAIN\\deploy",
            ...     password="your-password"
            ... )

            With token credential
            >>> from ssas_cicd import TabularServer
            >>> from azure.identity import ClientSecretCredential
            >>> token_credential = ClientSecretCredential(
            ...     client_id="your-client-id", client_secret="your-client-secret", tenant_id="your-tenant-id"
            ... )
            >>> server = TabularServer(
            ...     server="https://westeurope.asazure.windows.net/webapi/xmla",
            ...     token_credential=token_credential
            ... )
        """
        from ssas_cicd._common._validate_input import (
            validate_credentials,
            validate_server,
            validate_token_credential,
        )

        self.server = validate_server(server)
        user_id, password = validate_credentials(user_id, password)
        if token_credential is not None:
            token_credential = validate_token_credential(token_credential)

        self.endpoint = XmlaEndpoint(
            server_url=self.server,
            user_id=user_id,
            password=password,
            token_credential=token_credential,
        )

    def discover(self, request_type: str, restrictions: Optional[dict] = None) -> list[dict[str, str]]:
        """
        Sends a Discover request and returns the rows of the resulting rowset.

        Args:
            request_type: The schema rowset to discover (e.g. DBSCHEMA_CATALOGS).
            restrictions: Column name to value restrictions applied to the rowset.
        """
        return parse_rowset(self._send_discover(request_type, restrictions))

    def _send_discover(self, request_type: str, restrictions: Optional[dict]) -> ET.Element:
        response = self.endpoint.invoke("Discover", build_discover(request_type, restrictions))
        raise_for_fault(response["body"])
        raise_for_messages(response["body"])
        return response["body"]

    def execute(self, command: str, database: Optional[str] = None) -> ET.Element:
        """
        Sends an Execute request carrying a TMSL statement or XMLA command.

        Args:
            command: The TMSL statement or XMLA command.
            database: The catalog to execute the command against.
        """
        properties = {"Catalog": database} if database else None
        response = self.endpoint.invoke("Execute", build_execute(command, properties))
        raise_for_fault(response["body"])
        raise_for_messages(response["body"])
        return response["body"]

    def list_databases(self) -> list[str]:
        """Returns the names of all databases on the server."""
        rows = self.discover(constants.DISCOVER_CATALOGS)
        return [row[constants.CATALOG_NAME_COLUMN] for row in rows if row.get(constants.CATALOG_NAME_COLUMN)]

    def database_exists(self, database_name: str) -> bool:
        """
        Checks whether a database exists on the server.

        Args:
            database_name: The name of the database.
        """
        return any(name.casefold() == database_name.casefold() for name in self.list_databases())

    def get_compatibility_level(self, database_name: str) -> int:
        """
        Returns the compatibility level of a database.

        Args:
            database_name: The name of the database.

        Examples:
            >>> from ssas_cicd import TabularServer
            >>> server = TabularServer(server="https://myserver/olap/msmdpump.dll")
            >>> server.get_compatibility_level("AdventureWorks")
            1500
        """
        rows = self.discover(constants.DISCOVER_CATALOGS, {constants.CATALOG_NAME_COLUMN: database_name})
        row = find_row(rows, constants.CATALOG_NAME_COLUMN, database_name, "Database")

        level = row.get(constants.COMPATIBILITY_LEVEL_COLUMN, "").strip()
        if not level.isdigit():
            msg = f"Database '{database_name}' returned an invalid compatibility level: '{level}'."
            raise ParsingError(msg, logger)

        logger.debug(f"Database '{database_name}' has compatibility level {level}")
        return int(level)

    def get_database_id(self, database_name: str) -> str:
        """
        Returns the object ID of a database, which legacy XMLA commands address it by.

        The ID of a database deployed from an ASSL model can differ from its name.

        Args:
            database_name: The name of the database.
        """
        body = self._send_discover(
            constants.DISCOVER_XML_METADATA, {constants.OBJECT_EXPANSION_RESTRICTION: constants.EXPAND_OBJECT}
        )
        server = parse_xml_metadata(body)
        rows = [
            {
                "ID": database.findtext("engine:ID", default="", namespaces=constants.XMLA_NAMESPACES),
                "Name": database.findtext("engine:Name", default="", namespaces=constants.XMLA_NAMESPACES),
            }
            for database in server.iterfind("engine:Databases/engine:Database", constants.XMLA_NAMESPACES)
        ]
        row = find_row(rows, "Name", database_name, "Database")

        logger.debug(f"Database '{database_name}' has ID '{row['ID']}'")
        return row["ID"] or database_name
