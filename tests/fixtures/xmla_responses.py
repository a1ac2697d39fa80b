# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Canned XMLA responses as returned by msmdpump and Azure Analysis Services."""

from unittest.mock import Mock
from xml.sax.saxutils import escape, quoteattr

ENVELOPE = '<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/"><soap:Body>{body}</soap:Body></soap:Envelope>'


def catalog_rowset(catalogs: list[tuple[str, int]]) -> bytes:
    """A DBSCHEMA_CATALOGS Discover response with (name, compatibility level) rows."""
    rows = "".join(
        f"<row><CATALOG_NAME>{escape(name)}</CATALOG_NAME><DESCRIPTION/>"
        f"<COMPATIBILITY_LEVEL>{level}</COMPATIBILITY_LEVEL><TYPE>0</TYPE></row>"
        for name, level in catalogs
    )
    body = (
        '<DiscoverResponse xmlns="urn:schemas-microsoft-com:xml-analysis"><return>'
        '<root xmlns="urn:schemas-microsoft-com:xml-analysis:rowset" '
        'xmlns:xsd="http://www.w3.org/2001/XMLSchema"><xsd:schema targetNamespace="urn:schemas-microsoft-com:xml-analysis:rowset"/>'
        f"{rows}</root></return></DiscoverResponse>"
    )
    return ENVELOPE.format(body=body).encode("utf-8")


def xml_metadata(databases: list[tuple[str, str]]) -> bytes:
    """A DISCOVER_XML_METADATA response describing the server with (ID, name) databases."""
    entries = "".join(
        f"<Database><ID>{escape(database_id)}</ID><Name>{escape(name)}</Name></Database>"
        for database_id, name in databases
    )
    body = (
        '<DiscoverResponse xmlns="urn:schemas-microsoft-com:xml-analysis"><return>'
        '<root xmlns="urn:schemas-microsoft-com:xml-analysis:rowset"><row><METADATA>'
        '<Server xmlns="http://schemas.microsoft.com/analysisservices/2003/engine">'
        f"<ID>SSAS01</ID><Name>SSAS01</Name><Databases>{entries}</Databases></Server>"
        "</METADATA></row></root></return></DiscoverResponse>"
    )
    return ENVELOPE.format(body=body).encode("utf-8")


def execute_result(errors: tuple[str, ...] = (), warnings: tuple[str, ...] = ()) -> bytes:
    """An Execute response, with Error and Warning messages when given."""
    messages = "".join(
        f'<Error ErrorCode="-1055129594" Description={quoteattr(error)} Source="Microsoft SQL Server Analysis Services" HelpFile=""/>'
        for error in errors
    )
    messages += "".join(
        f'<Warning WarningCode="1092354049" Description={quoteattr(warning)} Source="Microsoft SQL Server Analysis Services" HelpFile=""/>'
        for warning in warnings
    )
    content = ""
    if errors:
        content += '<Exception xmlns="urn:schemas-microsoft-com:xml-analysis:exception"/>'
    if messages:
        content += f'<Messages xmlns="urn:schemas-microsoft-com:xml-analysis:exception">{messages}</Messages>'

    body = (
        '<ExecuteResponse xmlns="urn:schemas-microsoft-com:xml-analysis"><return>'
        f'<root xmlns="urn:schemas-microsoft-com:xml-analysis:empty">{content}</root>'
        "</return></ExecuteResponse>"
    )
    return ENVELOPE.format(body=body).encode("utf-8")


def soap_fault(fault_string: str, error: str = "") -> bytes:
    """A SOAP fault as returned with HTTP 500."""
    detail = (
        f'<detail><Error ErrorCode="3238658052" Description={quoteattr(error)} '
        'Source="Microsoft SQL Server Analysis Services" HelpFile=""/></detail>'
        if error
        else ""
    )
    body = (
        '<soap:Fault xmlns="http://schemas.xmlsoap.org/soap/envelope/">'
        "<faultcode>XMLAnalysisError.0xc10a0004</faultcode>"
        f"<faultstring>{escape(fault_string)}</faultstring>{detail}</soap:Fault>"
    )
    return ENVELOPE.format(body=body).encode("utf-8")


def mock_http_response(content: bytes, status_code: int = 200) -> Mock:
    """A requests.Response stand-in carrying an XMLA body."""
    return Mock(
        status_code=status_code,
        reason="OK" if status_code == 200 else "Internal Server Error",
        headers={"Content-Type": "text/xml"},
        content=content,
        text=content.decode("utf-8"),
    )
