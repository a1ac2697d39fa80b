# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Integration tests for deploy, process and delete against a mock XMLA server."""

import json

import pytest
import yaml
from fixtures.mock_xmla_server import MockXmlaServer

from ssas_cicd import (
    TabularServer,
    delete_tabular_database,
    deploy_tabular_model,
    deploy_with_config,
    process_tabular_database,
)
from ssas_cicd._common._exceptions import InvokeError, ObjectNotFoundError
from ssas_cicd._tasks import process_task

CREDENTIALS = ("CONTOSO\\deploy", "secret")

JSON_MODEL = {
    "name": "SalesModel",
    "compatibilityLevel": 1500,
    "model": {
        "dataSources": [{"name": "SqlDW", "connectionString": "Data Source=dev-sql;Initial Catalog=DW"}],
        "tables": [{"name": "Sales"}],
    },
}

XML_MODEL = (
    '<Database xmlns="http://schemas.microsoft.com/analysisservices/2003/engine" '
    'xmlns:ddl200="http://schemas.microsoft.com/analysisservices/2010/engine/200">'
    "<ID>SalesLegacy</ID><Name>SalesLegacy</Name>"
    "<ddl200:CompatibilityLevel>1103</ddl200:CompatibilityLevel>"
    "</Database>"
)


@pytest.fixture
def mock_xmla_server():
    """Start a mock XMLA server that requires basic authentication."""
    server = MockXmlaServer(catalog={"Finance": 1103}, credentials=CREDENTIALS, ids={"Finance": "Finance_2016"})
    server.start()
    yield server
    server.stop()


@pytest.fixture
def tabular_server(mock_xmla_server):
    return TabularServer(server=mock_xmla_server.url, user_id=CREDENTIALS[0], password=CREDENTIALS[1])


@pytest.fixture
def model_dir(tmp_path):
    (tmp_path / "Model.bim").write_text(json.dumps(JSON_MODEL), encoding="utf-8")
    (tmp_path / "Legacy.xmla").write_text(XML_MODEL, encoding="utf-8")
    return tmp_path


def test_deploy_process_delete_json_model(mock_xmla_server, tabular_server, model_dir):
    """Test the full lifecycle of a JSON model database."""
    level = deploy_tabular_model(tabular_server, model_dir / "Model.bim", database_name="Sales_PR7")

    assert level == 1500
    assert tabular_server.list_databases() == ["Finance", "Sales_PR7"]

    assert process_tabular_database(tabular_server, "Sales_PR7", "dataOnly") == 1500
    assert json.loads(mock_xmla_server.commands[-1]) == {
        "refresh": {"type": "dataOnly", "objects": [{"database": "Sales_PR7"}]}
    }

    delete_tabular_database(tabular_server, "Sales_PR7")
    assert not tabular_server.database_exists("Sales_PR7")


def test_deploy_and_process_xml_model(mock_xmla_server, tabular_server, model_dir):
    level = deploy_tabular_model(tabular_server, model_dir / "Legacy.xmla", refresh_type="full")

    assert level == 1103
    assert mock_xmla_server.catalog["SalesLegacy"] == 1103
    assert "ProcessFull" in mock_xmla_server.commands[-1]


def test_deploy_process_delete_xml_model_by_id(mock_xmla_server, tabular_server, tmp_path):
    """Test a legacy database whose ID differs from its name is addressed by ID throughout."""
    path = tmp_path / "Legacy.xmla"
    path.write_text(
        XML_MODEL.replace(
            "<ID>SalesLegacy</ID><Name>SalesLegacy</Name>", "<ID>Sales_2012</ID><Name>Sales Legacy</Name>"
        ),
        encoding="utf-8",
    )

    assert deploy_tabular_model(tabular_server, path, refresh_type="dataOnly") == 1103
    assert mock_xmla_server.ids["Sales Legacy"] == "Sales_2012"
    assert "<DatabaseID>Sales_2012</DatabaseID>" in mock_xmla_server.commands[-1]

    delete_tabular_database(tabular_server, "Sales Legacy")

    assert "Sales Legacy" not in mock_xmla_server.catalog
    assert mock_xmla_server.catalog == {"Finance": 1103}


def test_process_missing_database(tabular_server):
    with pytest.raises(ObjectNotFoundError, match="was not found on the server"):
        process_tabular_database(tabular_server, "Marketing")


def test_invalid_credentials(mock_xmla_server):
    server = TabularServer(server=mock_xmla_server.url, user_id="CONTOSO\\deploy", password="wrong")
    with pytest.raises(InvokeError, match="not authorized"):
        server.list_databases()


def test_deploy_with_config(mock_xmla_server, model_dir):
    config = {
        "core": {
            "server": {"test": mock_xmla_server.url},
            "database": {"test": "Sales_Test"},
            "model_file": "Model.bim",
        },
        "deploy": {"data_sources": {"test": [{"name": "SqlDW", "connection_string": "Data Source=test-sql"}]}},
        "process": {"refresh_type": {"test": "automatic"}},
    }
    config_file = model_dir / "config.yml"
    config_file.write_text(yaml.dump(config), encoding="utf-8")

    deploy_with_config(str(config_file), "test", user_id=CREDENTIALS[0], password=CREDENTIALS[1])

    assert mock_xmla_server.catalog["Sales_Test"] == 1500
    create = json.loads(mock_xmla_server.commands[0])["createOrReplace"]
    assert create["database"]["model"]["dataSources"][0]["connectionString"] == "Data Source=test-sql"
    assert json.loads(mock_xmla_server.commands[-1])["refresh"]["type"] == "automatic"


def test_process_task(mock_xmla_server, monkeypatch, capsys):
    monkeypatch.setenv("INPUT_SERVER", mock_xmla_server.url)
    monkeypatch.setenv("INPUT_DATABASE", "Finance")
    monkeypatch.setenv("INPUT_USERID", CREDENTIALS[0])
    monkeypatch.setenv("INPUT_PASSWORD", CREDENTIALS[1])
    monkeypatch.delenv("INPUT_AUTHENTICATION", raising=False)

    assert process_task.main(["--RefreshType", "calculate"]) == 0

    assert "ProcessRecalc" in mock_xmla_server.commands[-1]
    assert "<DatabaseID>Finance_2016</DatabaseID>" in mock_xmla_server.commands[-1]
    assert "##vso[task.setvariable variable=SsasCompatibilityLevel;]1103" in capsys.readouterr().out


def test_process_task_anonymous(monkeypatch, capsys):
    """Test the process task runs with only a server and database against an anonymous endpoint."""
    server = MockXmlaServer(catalog={"Sales": 1500})
    server.start()
    try:
        monkeypatch.setenv("INPUT_SERVER", server.url)
        monkeypatch.setenv("INPUT_DATABASE", "Sales")
        for name in ("AUTHENTICATION", "USERID", "PASSWORD", "REFRESHTYPE"):
            monkeypatch.delenv(f"INPUT_{name}", raising=False)

        assert process_task.main([]) == 0
    finally:
        server.stop()

    assert json.loads(server.commands[-1])["refresh"]["type"] == "full"
    assert "##vso[task.complete result=Succeeded;]" in capsys.readouterr().out
