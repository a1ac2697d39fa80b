# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Builders for XMLA Discover/Execute requests and the commands they carry."""

import json
from typing import Optional
from xml.sax.saxutils import escape

from ssas_cicd import constants


def build_discover(request_type: str, restrictions: Optional[dict] = None, properties: Optional[dict] = None) -> str:
    """
    Build a SOAP envelope for an XMLA Discover request.

    Args:
        request_type: The schema rowset to discover (e.g. DBSCHEMA_CATALOGS).
        restrictions: Column name to value restrictions applied to the rowset.
        properties: XMLA properties, such as Catalog.
    """
    body = constants.DISCOVER_TEMPLATE.format(
        request_type=escape(request_type),
        restrictions=_build_elements(restrictions),
        properties=_build_elements(properties),
    )
    return constants.SOAP_ENVELOPE_TEMPLATE.format(body=body)


def build_execute(command: str, properties: Optional[dict] = None) -> str:
    """
    Build a SOAP envelope for an XMLA Execute request.

    A command starting with '<' is an XMLA engine command and is embedded as is.
    Anything else is a TMSL (JSON) statement and is escaped into a Statement element.

    Args:
        command: The TMSL statement or XMLA command.
        properties: XMLA properties, such as Catalog.
    """
    command = command.strip()
    if not command.startswith("<"):
        command = constants.STATEMENT_TEMPLATE.format(statement=escape(command))

    body = constants.EXECUTE_TEMPLATE.format(command=command, properties=_build_elements(properties))
    return constants.SOAP_ENVELOPE_TEMPLATE.format(body=body)


def build_tmsl_refresh(database: str, refresh_type: str) -> str:
    """Build a TMSL refresh command for a whole database."""
    return json.dumps({"refresh": {"type": refresh_type, "objects": [{"database": database}]}}, indent=2)


def build_tmsl_create_or_replace(database: str, definition: dict) -> str:
    """Build a TMSL createOrReplace command from a model.bim definition."""
    return json.dumps(
        {"createOrReplace": {"object": {"database": database}, "database": definition}},
        indent=2,
    )


def build_tmsl_delete(database: str) -> str:
    """Build a TMSL delete command for a database."""
    return json.dumps({"delete": {"object": {"database": database}}}, indent=2)


def build_process_command(database_id: str, process_type: str) -> str:
    """Build a legacy XMLA Process command (compatibility level below 1200) for the database with the given ID."""
    return constants.PROCESS_TEMPLATE.format(process_type=escape(process_type), database=escape(database_id))


def build_alter_command(database_id: str, definition: str) -> str:
    """Build a legacy XMLA Alter command that creates or replaces a database."""
    return constants.ALTER_TEMPLATE.format(database=escape(database_id), definition=definition)


def build_delete_command(database_id: str) -> str:
    """Build a legacy XMLA Delete command for a database."""
    return constants.DELETE_TEMPLATE.format(database=escape(database_id))


def _build_elements(values: Optional[dict]) -> str:
    if not values:
        return ""
    return "".join(f"<{name}>{escape(str(value))}</{name}>" for name, value in values.items())
