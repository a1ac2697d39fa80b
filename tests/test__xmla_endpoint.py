# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import base64
import json
from unittest.mock import Mock

import pytest
import requests
from azure.core.exceptions import ClientAuthenticationError
from fixtures.credentials import DummyTokenCredential, create_dummy_jwt
from fixtures.xmla_responses import execute_result, soap_fault

from ssas_cicd import constants
from ssas_cicd._common._exceptions import InvokeError, TokenError, XmlaError
from ssas_cicd._common._xmla_endpoint import XmlaEndpoint, _decode_jwt, _format_invoke_log, _mask_secrets

SERVER_URL = "https://ssas.contoso.com/olap/msmdpump.dll"


class DummyLogger:
    def __init__(self):
        self.messages = []

    def info(self, message):
        self.messages.append(message)

    def debug(self, message):
        self.messages.append(message)


@pytest.fixture
def setup_mocks(monkeypatch, mocker):
    dl = DummyLogger()
    mock_logger = mocker.Mock()
    mock_logger.isEnabledFor.return_value = True
    mock_logger.info.side_effect = dl.info
    mock_logger.debug.side_effect = dl.debug
    monkeypatch.setattr("ssas_cicd._common._xmla_endpoint.logger", mock_logger)
    mock_requests = mocker.patch("requests.request")
    return dl, mock_requests


@pytest.fixture(autouse=True)
def reset_feature_flags():
    original_flags = constants.FEATURE_FLAG.copy()
    yield
    constants.FEATURE_FLAG.clear()
    constants.FEATURE_FLAG.update(original_flags)


def mock_response(status_code=200, content=None, reason="OK"):
    content = execute_result() if content is None else content
    return Mock(
        status_code=status_code,
        reason=reason,
        headers={"Content-Type": "text/xml"},
        content=content,
        text=content.decode("utf-8"),
    )


def test_invoke_with_basic_auth(setup_mocks):
    """Test a request with basic authentication posts the envelope with the SOAP headers."""
    dl, mock_requests = setup_mocks
    mock_requests.return_value = mock_response()

    endpoint = XmlaEndpoint(SERVER_URL, user_id="CONTOSO\\deploy", password="secret")
    response = endpoint.invoke("Execute", "<Envelope/>")

    assert response["status_code"] == 200
    assert response["body"].tag == "{http://schemas.xmlsoap.org/soap/envelope/}Envelope"

    kwargs = mock_requests.call_args.kwargs
    assert kwargs["method"] == "POST"
    assert kwargs["url"] == SERVER_URL
    assert kwargs["headers"]["SOAPAction"] == "urn:schemas-microsoft-com:xml-analysis:Execute"
    assert kwargs["headers"]["Content-Type"].startswith("text/xml")
    assert "Authorization" not in kwargs["headers"]
    assert kwargs["auth"].username == "CONTOSO\\deploy"
    assert kwargs["data"] == b"<Envelope/>"
    assert kwargs["timeout"] == constants.REQUEST_TIMEOUT_SECONDS
    assert "Executing as User 'CONTOSO\\deploy'" in dl.messages


def test_invoke_with_token_credential(setup_mocks):
    """Test a token credential sends a bearer token for the Azure Analysis Services scope."""
    dl, mock_requests = setup_mocks
    mock_requests.return_value = mock_response()
    credential = DummyTokenCredential()

    endpoint = XmlaEndpoint(SERVER_URL, user_id="ignored", password="ignored", token_credential=credential)
    endpoint.invoke("Discover", "<Envelope/>")

    kwargs = mock_requests.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == f"Bearer {credential.token}"
    assert kwargs["auth"] is None
    assert credential.requested_scopes[0] == (constants.AZURE_AS_TOKEN_SCOPE,)
    assert "Executing as User 'deploy@contoso.com'" in dl.messages


@pytest.mark.parametrize(
    ("claims", "expected"),
    [
        ({"upn": "user@contoso.com"}, "Executing as User 'user@contoso.com'"),
        ({"appid": "app-id"}, "Executing as Application Id 'app-id'"),
        ({"oid": "object-id"}, "Executing as Object Id 'object-id'"),
    ],
    ids=["upn", "appid", "oid"],
)
def test_token_identity_logged(setup_mocks, claims, expected):
    """Test the executing identity is taken from the token claims."""
    dl, _ = setup_mocks
    XmlaEndpoint(SERVER_URL, token_credential=DummyTokenCredential(claims=claims))
    assert expected in dl.messages


def test_disable_print_identity(setup_mocks):
    """Test the executing identity is not logged with the disable_print_identity feature flag."""
    dl, _ = setup_mocks
    constants.FEATURE_FLAG.add("disable_print_identity")
    XmlaEndpoint(SERVER_URL, token_credential=DummyTokenCredential())
    assert not any("Executing as" in message for message in dl.messages)


def test_expired_token_is_refreshed(setup_mocks):
    """Test an expired token is requested again before the next request."""
    _, mock_requests = setup_mocks
    mock_requests.return_value = mock_response()
    credential = DummyTokenCredential(expiry_days=-1)

    endpoint = XmlaEndpoint(SERVER_URL, token_credential=credential)
    endpoint.invoke("Execute", "<Envelope/>")

    assert len(credential.requested_scopes) == 2


def test_valid_token_is_reused(setup_mocks):
    """Test a valid token is not requested again."""
    _, mock_requests = setup_mocks
    mock_requests.return_value = mock_response()
    credential = DummyTokenCredential()

    endpoint = XmlaEndpoint(SERVER_URL, token_credential=credential)
    endpoint.invoke("Execute", "<Envelope/>")
    endpoint.invoke("Execute", "<Envelope/>")

    assert len(credential.requested_scopes) == 1


def test_token_authentication_error(setup_mocks):
    """Test a failing credential raises TokenError."""
    credential = Mock()
    credential.get_token.side_effect = ClientAuthenticationError("Bad credential")
    with pytest.raises(TokenError, match="Failed to acquire AAD token"):
        XmlaEndpoint(SERVER_URL, token_credential=credential)


def test_token_without_expiration(setup_mocks):
    """Test a token without exp claim raises TokenError."""
    credential = Mock()
    credential.get_token.return_value.token = create_dummy_jwt(None)
    with pytest.raises(TokenError, match="expiration claim"):
        XmlaEndpoint(SERVER_URL, token_credential=credential)


@pytest.mark.parametrize("status_code", [401, 403])
def test_invoke_unauthorized(setup_mocks, status_code):
    """Test unauthorized responses raise InvokeError."""
    _, mock_requests = setup_mocks
    mock_requests.return_value = mock_response(status_code, content=b"", reason="Unauthorized")

    endpoint = XmlaEndpoint(SERVER_URL)
    with pytest.raises(InvokeError, match="not authorized to call Execute"):
        endpoint.invoke("Execute", "<Envelope/>")


def test_invoke_soap_fault_passes_through(setup_mocks):
    """Test a 500 carrying a SOAP fault is returned for the fault to be parsed."""
    _, mock_requests = setup_mocks
    mock_requests.return_value = mock_response(500, content=soap_fault("The syntax is incorrect."))

    endpoint = XmlaEndpoint(SERVER_URL)
    response = endpoint.invoke("Execute", "<Envelope/>")

    assert response["status_code"] == 500
    assert response["body"].find("soap:Body/soap:Fault", constants.XMLA_NAMESPACES) is not None


def test_invoke_unhandled_status(setup_mocks):
    """Test other error statuses raise InvokeError with the request details attached."""
    _, mock_requests = setup_mocks
    mock_requests.return_value = mock_response(502, content=b"<html>Bad Gateway</html>", reason="Bad Gateway")

    endpoint = XmlaEndpoint(SERVER_URL)
    with pytest.raises(InvokeError, match="Unhandled error occurred calling Discover") as exc_info:
        endpoint.invoke("Discover", "<Envelope/>")
    assert "Response Status: 502" in exc_info.value.additional_info


def test_invoke_connection_error(setup_mocks):
    """Test connection failures raise InvokeError."""
    _, mock_requests = setup_mocks
    mock_requests.side_effect = requests.exceptions.ConnectionError("Connection refused")

    endpoint = XmlaEndpoint(SERVER_URL)
    with pytest.raises(InvokeError, match="Connection refused"):
        endpoint.invoke("Execute", "<Envelope/>")


def test_invoke_empty_response(setup_mocks):
    """Test an empty response body raises XmlaError."""
    _, mock_requests = setup_mocks
    mock_requests.return_value = mock_response(200, content=b"")

    endpoint = XmlaEndpoint(SERVER_URL)
    with pytest.raises(XmlaError, match="Empty response"):
        endpoint.invoke("Execute", "<Envelope/>")


def test_decode_jwt():
    """Test the JWT payload is decoded."""
    token = create_dummy_jwt(9999999999, {"appid": "app-id"})
    assert _decode_jwt(token)["appid"] == "app-id"


def test_decode_jwt_invalid():
    """Test an invalid token raises TokenError."""
    with pytest.raises(TokenError):
        _decode_jwt("not-a-token")


def test_decode_jwt_padding():
    """Test payloads without base64 padding are decoded."""
    payload = base64.urlsafe_b64encode(json.dumps({"exp": 1}).encode()).decode().rstrip("=")
    assert _decode_jwt(f"header.{payload}.signature") == {"exp": 1}


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Data Source=sql;Password=P@ss;User ID=sa", "Data Source=sql;Password=********;User ID=sa"),
        ('{"password": "P@ss"}', '{"password": "********"}'),
        ("<Password>P@ss</Password>", "<Password>********</Password>"),
    ],
    ids=["connection_string", "tmsl", "xml"],
)
def test_mask_secrets(text, expected):
    """Test passwords are masked in logged requests."""
    assert _mask_secrets(text) == expected


def test_format_invoke_log_without_response():
    """Test the invoke log is formatted when no response was received."""
    message = _format_invoke_log(None, "Execute", SERVER_URL, "<Password>P@ss</Password>")
    assert f"URL: {SERVER_URL}" in message
    assert "SOAPAction: Execute" in message
    assert "P@ss" not in message
    assert "Response Status" not in message
