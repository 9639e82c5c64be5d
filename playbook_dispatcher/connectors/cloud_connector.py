"""Clients for sending messages through Cloud Connector."""

from __future__ import annotations

import json
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any
from urllib.parse import quote

from .http import (
    HEADER_REQUEST_ID,
    HttpRequest,
    HttpRequestDoer,
    RequestsDoer,
    UnexpectedResponseError,
)

BASE_PATH = "/api/cloud-connector/"

HEADER_CLOUD_CONNECTOR_CLIENT_ID = "x-rh-cloud-connector-client-id"
HEADER_CLOUD_CONNECTOR_PSK = "x-rh-cloud-connector-psk"
HEADER_CLOUD_CONNECTOR_ORG_ID = "x-rh-cloud-connector-org-id"


class ConnectionStatus(str, Enum):
    """Connection state of a recipient as reported by Cloud Connector."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


def _cfg_str(cfg: Mapping[str, Any], key: str) -> str:
    value = cfg.get(key)
    return "" if value is None else str(value)


def _cfg_int(cfg: Mapping[str, Any], key: str) -> int:
    value = cfg.get(key)
    return 0 if value in (None, "") else int(value)


class CloudConnectorClient(ABC):
    """Sends directives to recipients and queries their connection status."""

    @abstractmethod
    def send_cloud_connector_request(
        self,
        org_id: str,
        recipient: uuid.UUID,
        url: str | None,
        directive: str,
        metadata: Mapping[str, str],
        request_id: str | None = None,
    ) -> tuple[str | None, bool]:
        """Send a message; return (message id, recipient-not-found flag)."""

    @abstractmethod
    def get_connection_status(
        self, org_id: str, recipient: str, request_id: str | None = None
    ) -> ConnectionStatus:
        """Return whether the recipient is currently connected."""


class HttpCloudConnectorClient(CloudConnectorClient):
    """Cloud Connector client speaking its HTTP API."""

    def __init__(self, cfg: Mapping[str, Any], doer: HttpRequestDoer) -> None:
        self.server = (
            f"{_cfg_str(cfg, 'cloud.connector.scheme')}://"
            f"{_cfg_str(cfg, 'cloud.connector.host')}:"
            f"{_cfg_int(cfg, 'cloud.connector.port')}{BASE_PATH}"
        )
        self.client_id = _cfg_str(cfg, "cloud.connector.client.id")
        self.psk = _cfg_str(cfg, "cloud.connector.psk")
        self.doer = doer

    def _headers(self, org_id: str, request_id: str | None) -> dict[str, str]:
        return {
            HEADER_REQUEST_ID: request_id or "",
            HEADER_CLOUD_CONNECTOR_CLIENT_ID: self.client_id,
            HEADER_CLOUD_CONNECTOR_PSK: self.psk,
            HEADER_CLOUD_CONNECTOR_ORG_ID: org_id,
        }

    def _connection_url(self, client_id: str, action: str) -> str:
        return f"{self.server}v2/connections/{quote(client_id, safe='')}/{action}"

    def send_cloud_connector_request(
        self,
        org_id: str,
        recipient: uuid.UUID,
        url: str | None,
        directive: str,
        metadata: Mapping[str, str],
        request_id: str | None = None,
    ) -> tuple[str | None, bool]:
        payload: dict[str, Any] = {
            "directive": directive,
            "metadata": dict(metadata or {}),
        }
        if url is not None:
            payload["payload"] = url
        body = (json.dumps(payload, separators=(",", ":")) + "\n").encode("utf-8")

        headers = self._headers(org_id, request_id)
        headers["Content-Type"] = "application/json"
        response = self.doer.send(
            HttpRequest("POST", self._connection_url(str(recipient), "message"), headers, body)
        )

        if response.status_code == 404:
            return None, True

        parsed = response.json_object() if response.status_code == 201 else None
        if parsed is None:
            raise UnexpectedResponseError(response)

        message_id = parsed.get("id")
        return (None if message_id is None else str(message_id)), False

    def get_connection_status(
        self, org_id: str, recipient: str, request_id: str | None = None
    ) -> ConnectionStatus:
        response = self.doer.send(
            HttpRequest(
                "GET",
                self._connection_url(recipient, "status"),
                self._headers(org_id, request_id),
            )
        )

        parsed = response.json_object() if response.status_code == 200 else None
        if parsed is None:
            raise UnexpectedResponseError(response)

        try:
            return ConnectionStatus(parsed.get("status"))
        except ValueError:
            raise UnexpectedResponseError(response) from None


class MockCloudConnectorClient(CloudConnectorClient):
    """In-process stand-in with a few recipients that misbehave on purpose."""

    def send_cloud_connector_request(
        self,
        org_id: str,
        recipient: uuid.UUID,
        url: str | None,
        directive: str,
        metadata: Mapping[str, str],
        request_id: str | None = None,
    ) -> tuple[str | None, bool]:
        recipient_str = str(recipient)
        if recipient_str == "b5fbb740-5590-45a4-8240-89192dc49199":
            return None, True
        if recipient_str == "b31955fb-3064-4f56-ae44-a1c488a28587":
            raise TimeoutError("timeout")
        if (
            recipient_str == "9200e4a3-c97c-4021-9856-82fa4673e8d2"
            and metadata.get("sat_id") != "9274c274-a258-5d00-91fe-dbe0f7849cef"
        ):
            raise ValueError("sat_id mismatch")
        return str(uuid.uuid4()), False

    def get_connection_status(
        self, org_id: str, recipient: str, request_id: str | None = None
    ) -> ConnectionStatus:
        if org_id == "5318290" and recipient == "411cb203-f8c9-480e-ba20-1efbc74e3a33":
            return ConnectionStatus.DISCONNECTED
        return ConnectionStatus.CONNECTED


def new_connector_client(cfg: Mapping[str, Any]) -> HttpCloudConnectorClient:
    """Build an HTTP client using the configured timeout in seconds."""
    doer = RequestsDoer(timeout=_cfg_int(cfg, "cloud.connector.timeout"))
    return HttpCloudConnectorClient(cfg, doer)