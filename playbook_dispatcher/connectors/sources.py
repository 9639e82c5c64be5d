"""Client for looking up Satellite sources and their RHC connections."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from .http import (
    HEADER_IDENTITY,
    HEADER_REQUEST_ID,
    HttpRequest,
    HttpRequestDoer,
    HttpResponse,
    RequestsDoer,
)

BASE_PATH = "/api/sources/v3.1/"
FILTER_PARAM = "filter%5Bsource_ref%5D%5Beq%5D"


def _cfg_str(cfg: Mapping[str, Any], key: str) -> str:
    value = cfg.get(key)
    return "" if value is None else str(value)


def _cfg_int(cfg: Mapping[str, Any], key: str) -> int:
    value = cfg.get(key)
    return 0 if value in (None, "") else int(value)


@dataclass
class SourceConnectionStatus:
    """A source and the state of its RHC connection."""

    id: str
    source_name: str | None = None
    rhc_id: str | None = None
    availability_status: str | None = None


class SourcesError(Exception):
    """The sources service could not provide connection details."""


class SourcesConnector(ABC):
    """Looks up connection details of a Satellite source."""

    @abstractmethod
    def get_source_connection_details(
        self, source_id: str, request_id: str | None = None, identity: str | None = None
    ) -> SourceConnectionStatus:
        """Return the connection details for the given Satellite instance id."""


def _unexpected(operation: str, response: HttpResponse) -> SourcesError:
    return SourcesError(
        f'{operation} unexpected status code "{response.status_code}" '
        f'or content type "{response.content_type}"'
    )


def _first_entry(parsed: dict[str, Any] | None) -> dict[str, Any] | None:
    if parsed is None:
        return None
    data = parsed.get("data")
    if not data:
        return None
    return data[0]


class SourcesClient(SourcesConnector):
    """Sources client speaking its HTTP API."""

    def __init__(self, cfg: Mapping[str, Any], doer: HttpRequestDoer) -> None:
        self.server = (
            f"{_cfg_str(cfg, 'sources.scheme')}://"
            f"{_cfg_str(cfg, 'sources.host')}:"
            f"{_cfg_int(cfg, 'sources.port')}{BASE_PATH}"
        )
        self.doer = doer

    @staticmethod
    def _headers(request_id: str | None, identity: str | None) -> dict[str, str]:
        headers = {HEADER_REQUEST_ID: request_id or ""}
        if identity is not None:
            headers[HEADER_IDENTITY] = identity
        return headers

    def _source_by_satellite_id(
        self, satellite_id: str, headers: dict[str, str]
    ) -> tuple[str, str | None]:
        url = f"{self.server}sources?{FILTER_PARAM}={quote(satellite_id, safe='')}"
        response = self.doer.send(HttpRequest("GET", url, dict(headers)))

        if response.status_code == 400 and response.json_object() is not None:
            raise SourcesError("Source Bad Request")

        parsed = response.json_object() if response.status_code == 200 else None
        if parsed is None:
            raise _unexpected("GetSources", response)

        source = _first_entry(parsed)
        if source is None:
            raise SourcesError("GetSources returned an empty response")

        if source.get("id") is None:
            raise SourcesError("GetSources did not return a valid sources id")

        return str(source["id"]), source.get("name")

    def _rhc_connection_status(
        self, source_id: str, headers: dict[str, str]
    ) -> tuple[str | None, str | None]:
        url = f"{self.server}sources/{quote(source_id, safe='')}/rhc_connections"
        response = self.doer.send(HttpRequest("GET", url, dict(headers)))

        if response.status_code == 404:
            raise SourcesError("RHCStatus Not Found")
        if response.status_code == 400:
            raise SourcesError("RHCStatus Bad Request")

        parsed = response.json_object() if response.status_code == 200 else None
        if parsed is None:
            raise _unexpected("GetRhcConnectionStatus", response)

        connection = _first_entry(parsed)
        if connection is None:
            raise SourcesError("GetRHCConnectionStatus returned an empty response")

        return connection.get("rhc_id"), connection.get("availability_status")

    def get_source_connection_details(
        self, source_id: str, request_id: str | None = None, identity: str | None = None
    ) -> SourceConnectionStatus:
        headers = self._headers(request_id, identity)
        found_id, name = self._source_by_satellite_id(source_id, headers)
        rhc_id, availability = self._rhc_connection_status(found_id, headers)
        return SourceConnectionStatus(
            id=found_id,
            source_name=name,
            rhc_id=rhc_id,
            availability_status=availability,
        )


class MockSourcesClient(SourcesConnector):
    """In-process stand-in with a few source ids that fail on purpose."""

    RHC_ID = "d415fc2d-9700-4e30-9621-6a410ccc92d8"
    NAME = "test"
    STATUS_AVAILABLE = "available"

    _FAILURES = {
        "07c9268f-6dc2-4e05-be57-d9d252a6bb47": "RHCStatus Not Found",
        "5d322fdb-1de4-4402-b383-30f0f66b0bc1": "RHCStatus Bad Request",
        "d3966054-5d45-45a5-a4b4-2f34ea4ae9e0": "Source Bad Request",
    }

    def get_source_connection_details(
        self, source_id: str, request_id: str | None = None, identity: str | None = None
    ) -> SourceConnectionStatus:
        failure = self._FAILURES.get(source_id)
        if failure is not None:
            raise SourcesError(failure)
        return SourceConnectionStatus(
            id=source_id,
            source_name=self.NAME,
            rhc_id=self.RHC_ID,
            availability_status=self.STATUS_AVAILABLE,
        )


def new_sources_client(cfg: Mapping[str, Any]) -> SourcesClient:
    """Build a sources client using the configured timeout in seconds."""
    doer = RequestsDoer(timeout=_cfg_int(cfg, "sources.timeout"))
    return SourcesClient(cfg, doer)