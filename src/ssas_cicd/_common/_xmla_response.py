# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Namespace-aware parsing of XMLA responses."""

import logging
import xml.etree.ElementTree as ET

from ssas_cicd import constants
from ssas_cicd._common._exceptions import ObjectNotFoundError, ParsingError, XmlaError

logger = logging.getLogger(__name__)


def parse_response(content: bytes) -> ET.Element:
    """
    Parse the raw XMLA response into an element tree.

    Args:
        content: The response body.
    """
    if not content or not content.strip():
        msg = "Empty response received from the server."
        raise XmlaError(msg, logger)

    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        msg = f"Failed to parse the XMLA response. {e}"
        raise ParsingError(msg, logger, additional_info=content.decode("utf-8", errors="replace")) from e


def raise_for_fault(root: ET.Element) -> None:
    """
    Raise an XmlaError if the response is a SOAP fault.

    Args:
        root: The parsed response envelope.
    """
    fault = root.find("soap:Body/soap:Fault", constants.XMLA_NAMESPACES)
    if fault is None:
        return

    fault_string = (fault.findtext("{*}faultstring") or "").strip()
    details = [_format_message(error) for error in fault.iterfind("{*}detail//{*}Error")]
    msg = "XMLA request failed. " + " ".join(filter(None, [fault_string, *details]))
    raise XmlaError(msg.strip(), logger)


def raise_for_messages(root: ET.Element) -> None:
    """
    Raise an XmlaError for any Error message in the response, log Warning messages.

    Warnings are raised as well when the 'fail_on_warnings' feature flag is set.

    Args:
        root: The parsed response envelope.
    """
    errors = [
        _format_message(error)
        for error in root.iterfind(".//exception:Messages/exception:Error", constants.XMLA_NAMESPACES)
    ]
    if errors:
        msg = "XMLA command failed. " + " ".join(errors)
        raise XmlaError(msg, logger)

    warnings = [
        _format_message(warning, code_attribute="WarningCode")
        for warning in root.iterfind(".//exception:Messages/exception:Warning", constants.XMLA_NAMESPACES)
    ]
    for warning in warnings:
        logger.warning(f"{constants.INDENT}{warning}")

    if warnings and "fail_on_warnings" in constants.FEATURE_FLAG:
        msg = "XMLA command returned warnings. " + " ".join(warnings)
        raise XmlaError(msg, logger)


def parse_rowset(root: ET.Element) -> list[dict[str, str]]:
    """
    Map the rows of a Discover rowset to dictionaries keyed by column name.

    Args:
        root: The parsed response envelope.
    """
    rowset = root.find(".//rowset:root", constants.XMLA_NAMESPACES)
    if rowset is None:
        msg = "The XMLA response does not contain a rowset."
        raise ParsingError(msg, logger)

    return [
        {_local_name(column.tag): (column.text or "") for column in row}
        for row in rowset.iterfind("rowset:row", constants.XMLA_NAMESPACES)
    ]


def parse_xml_metadata(root: ET.Element) -> ET.Element:
    """
    Return the ASSL object described by a DISCOVER_XML_METADATA response.

    Args:
        root: The parsed response envelope.
    """
    metadata = root.find(".//rowset:row/rowset:METADATA", constants.XMLA_NAMESPACES)
    if metadata is None or len(metadata) == 0:
        msg = "The XMLA response does not contain object metadata."
        raise ParsingError(msg, logger)

    return metadata[0]


def find_row(rows: list[dict[str, str]], key: str, value: str, entity: str) -> dict[str, str]:
    """
    Return the first row whose key column matches the value.

    Object names on the server are case-insensitive, so is the match.

    Args:
        rows: The rows of a rowset.
        key: The column to match on.
        value: The expected value.
        entity: Description of the entity, used in the error message.
    """
    for row in rows:
        if row.get(key, "").casefold() == value.casefold():
            return row

    msg = f"{entity} '{value}' was not found on the server."
    raise ObjectNotFoundError(msg, logger)


def _format_message(element: ET.Element, code_attribute: str = "ErrorCode") -> str:
    description = element.get("Description", "").strip()
    code = element.get(code_attribute)
    return f"{description} (Code: {code})" if code else description


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]
