# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Test fixtures and utilities."""

from fixtures.credentials import DummyTokenCredential, create_dummy_jwt
from fixtures.mock_xmla_server import MockXmlaServer
from fixtures.xmla_responses import catalog_rowset, execute_result, soap_fault, xml_metadata

__all__ = [
    "DummyTokenCredential",
    "MockXmlaServer",
    "catalog_rowset",
    "create_dummy_jwt",
    "execute_result",
    "soap_fault",
    "xml_metadata",
]
