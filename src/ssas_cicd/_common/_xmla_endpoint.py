# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Handles interactions with the XMLA endpoint of an Analysis Services server, including authentication."""

import base64
import datetime
import json
import logging
import re
import time
import xml.etree.ElementTree as ET
from typing import Optional

import requests
from azure.core.credentials import TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from requests.auth import HTTPBasicAuth

import ssas_cicd.constants as constants
from ssas_cicd._common._exceptions import InvokeError, TokenError
from ssas_cicd._common._xmla_response import parse_response

logger = logging.getLogger(__name__)


class XmlaEndpoint:
    """Sends XMLA requests over HTTP to an Analysis Services server (msmdpump or Azure Analysis Services)."""

    def __init__(
        self,
        server_url: str,
        user_id: Optional[str] = None,
        password: Optional[str] = None,
        token_credential: Optional[TokenCredential] = None,
        requests_module: requests = requests,
    ) -> None:
        """
        Initializes the XmlaEndpoint instance and acquires a token when a credential is given.

        Args:
            server_url: The XMLA endpoint URL.
            user_id: The user for basic authentication.
            password: The password for basic authentication.
            token_credential: The token credential, takes precedence over basic authentication.
            requests_module: The requests module.
        """
        self.server_url = server_url
        self.auth = HTTPBasicAuth(user_id, password) if user_id and token_credential is None else None
        self.aad_token = None
        self.aad_token_expiration = None
        self.token_credential = token_credential
        self.requests = requests_module

        if self.token_credential is not None:
            self._refresh_token()
        elif self.auth is not None:
            _log_executing_identity(f"Executing as User '{user_id}'")

    def invoke(self, soap_action: str, envelope: str) -> dict:
        """
        Sends a single XMLA request to the server.

        Args:
            soap_action: The XMLA method, 'Discover' or 'Execute'.
            envelope: The SOAP envelope to send.
        """
        start_time = time.time()
        response = None
        invoke_log_message = ""

        try:
            if self.token_credential is not None:
                self._refresh_token()

            headers = {
                "Content-Type": "text/xml; charset=utf-8",
                "SOAPAction": f"{constants.SOAP_ACTION_PREFIX}{soap_action}",
                "User-Agent": constants.USER_AGENT,
            }
            if self.aad_token:
                headers["Authorization"] = f"Bearer {self.aad_token}"

            response = self.requests.request(
                method="POST",
                url=self.server_url,
                headers=headers,
                data=envelope.encode("utf-8"),
                auth=self.auth,
                timeout=constants.REQUEST_TIMEOUT_SECONDS,
            )
            invoke_log_message = _format_invoke_log(response, soap_action, self.server_url, envelope)
            _handle_response(response, soap_action, self.server_url)

        except TokenError:
            raise
        except Exception as e:
            invoke_log_message = invoke_log_message or _format_invoke_log(
                response, soap_action, self.server_url, envelope
            )
            logger.debug(invoke_log_message)
            raise InvokeError(e, logger, invoke_log_message) from e

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(invoke_log_message)
        logger.debug(f"Request completed in {time.time() - start_time} seconds")

        return {
            "header": dict(response.headers),
            "body": parse_response(response.content),
            "status_code": response.status_code,
        }

    def _refresh_token(self) -> None:
        """Refreshes the AAD token if empty or expiration has passed."""
        if (
            self.aad_token is not None
            and self.aad_token_expiration is not None
            and self.aad_token_expiration > datetime.datetime.now()
        ):
            return

        try:
            self.aad_token = self.token_credential.get_token(constants.AZURE_AS_TOKEN_SCOPE).token
        except ClientAuthenticationError as e:
            msg = f"Failed to acquire AAD token. {e}"
            raise TokenError(msg, logger) from e
        except Exception as e:
            msg = f"An unexpected error occurred when generating the AAD token. {e}"
            raise TokenError(msg, logger) from e

        decoded_token = _decode_jwt(self.aad_token)
        expiration = decoded_token.get("exp")
        if not expiration:
            msg = "Token does not contain expiration claim."
            raise TokenError(msg, logger)
        self.aad_token_expiration = datetime.datetime.fromtimestamp(expiration)

        if upn := decoded_token.get("upn"):
            _log_executing_identity(f"Executing as User '{upn}'")
        elif appid := decoded_token.get("appid"):
            _log_executing_identity(f"Executing as Application Id '{appid}'")
        elif oid := decoded_token.get("oid"):
            _log_executing_identity(f"Executing as Object Id '{oid}'")


def _log_executing_identity(msg: str) -> None:
    if "disable_print_identity" not in constants.FEATURE_FLAG:
        logger.info(msg)


def _handle_response(response: requests.Response, soap_action: str, url: str) -> None:
    """
    Raises for responses that carry no XMLA payload to parse.

    A 500 carrying a SOAP fault is left to the response parser, which surfaces the fault description.

    Args:
        response: The response object from the HTTP request.
        soap_action: The XMLA method used in the request.
        url: The URL used in the request.
    """
    if response.status_code == 200:
        return

    if response.status_code in {401, 403}:
        msg = f"The executing identity is not authorized to call {soap_action} on '{url}'."
        raise Exception(msg)

    if response.status_code == 500 and _is_soap_fault(response.content):
        return

    msg = f"Unhandled error occurred calling {soap_action} on '{url}'. Status: {response.status_code} {response.reason}."
    raise Exception(msg)


def _is_soap_fault(content: bytes) -> bool:
    try:
        root = ET.fromstring(content)
    except ET.ParseError:
        return False
    return root.find("soap:Body/soap:Fault", constants.XMLA_NAMESPACES) is not None


def _decode_jwt(token: str) -> dict:
    """
    Decodes a JWT token and returns the payload as a dictionary.

    Args:
        token: The JWT token to decode.
    """
    try:
        parts = token.split(".")
        if len(parts) != 3:
            msg = "The token has an invalid JWT format"
            raise TokenError(msg, logger)

        # Decode the payload (second part of the token)
        payload = parts[1]
        payload += "=" * (-len(payload) % 4)
        return json.loads(base64.urlsafe_b64decode(payload.encode("utf-8")).decode("utf-8"))
    except Exception as e:
        msg = f"An unexpected error occurred while decoding the credential token. {e}"
        raise TokenError(msg, logger) from e


def _mask_secrets(text: str) -> str:
    for pattern, replacement in constants.PASSWORD_MASK_REGEXES:
        text = re.sub(pattern, replacement, text)
    return text


def _format_invoke_log(response: Optional[requests.Response], soap_action: str, url: str, envelope: str) -> str:
    """
    Format the log message for the invoke method.

    Args:
        response: The response object from the HTTP request.
        soap_action: The XMLA method used in the request.
        url: The URL used in the request.
        envelope: The SOAP envelope sent.
    """
    message = [
        f"\nURL: {url}",
        f"SOAPAction: {soap_action}",
        f"Request Body:\n{_mask_secrets(envelope)}" if envelope else "Request Body: None",
    ]
    if response is not None:
        message.extend([
            f"Response Status: {response.status_code}",
            "Response Headers:",
            json.dumps(dict(response.headers), indent=4),
            "Response Body:",
            _mask_secrets(response.text or ""),
            "",
        ])

    return "\n".join(message)
