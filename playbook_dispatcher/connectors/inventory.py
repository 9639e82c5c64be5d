"""Client for looking up host connection details in the host inventory."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

from .http import (
    HEADER_IDENTITY,
    HEADER_REQUEST_ID,
    HttpRequest,
    HttpRequestDoer,
    RequestsDoer,
    UnexpectedResponseError,
)

BASE_PATH = "/api/inventory/v1/hosts"

SYSTEM_PROFILE_FIELDS = ("rhc_client_id", "owner_id")


def _cfg_str(cfg: Mapping[str, Any], key: str) -> str:
    value = cfg.get(key)
    return "" if value is None else str(value)


def _cfg_int(cfg: Mapping[str, Any], key: str) -> int:
    value = cfg.get(key)
    return 0 if value in (None, "") else int(value)


@dataclass
class SatelliteFacts:
    """Satellite-related facts reported for a host."""

    satellite_instance_id: str | None = None
    satellite_version: str | None = None
    satellite_org_id: str | None = None


@dataclass
class HostDetails:
    """How a host is connected, as far as the inventory knows."""

    id: str
    owner_id: str | None = None
    satellite_instance_id: str | None = None
    satellite_version: str | None = None
    satellite_org_id: str | None = None
    rhc_client_id: str | None = None


def convert_to_string(value: Any) -> str:
    """Render a fact value: numbers as integers, strings as is, anything else empty."""
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(int(value))
    if isinstance(value, str):
        return value
    return ""


def get_satellite_facts(facts: Iterable[Mapping[str, Any]] | None) -> SatelliteFacts:
    """Extract the Satellite facts from a host's fact sets."""
    result = SatelliteFacts()
    for fact_set in facts or ():
        if fact_set.get("namespace") != "satellite":
            continue
        values = fact_set.get("facts") or {}
        if "satellite_instance_id" in values:
            result.satellite_instance_id = convert_to_string(values["satellite_instance_id"])
        if "satellite_version" in values:
            result.satellite_version = convert_to_string(values["satellite_version"])
        if "organization_id" in values:
            result.satellite_org_id = convert_to_string(values["organization_id"])
    return result


class InventoryClient:
    """Host inventory client speaking its HTTP API."""

    def __init__(self, cfg: Mapping[str, Any], doer: HttpRequestDoer) -> None:
        self.server = (
            f"{_cfg_str(cfg, 'inventory.connector.scheme')}://"
            f"{_cfg_str(cfg, 'inventory.connector.host')}:"
            f"{_cfg_int(cfg, 'inventory.connector.port')}{BASE_PATH}"
        )
        self.doer = doer

    @staticmethod
    def _headers(request_id: str | None, identity: str | None) -> dict[str, str]:
        headers = {HEADER_REQUEST_ID: request_id or ""}
        if identity is not None:
            headers[HEADER_IDENTITY] = identity
        return headers

    def _hosts_url(self, ids: Sequence[str], suffix: str, query: dict[str, str]) -> str:
        joined = quote(",".join(ids), safe=",")
        return f"{self.server}/{joined}{suffix}?{urlencode(query, safe='[],')}"

    def _host_details(
        self, ids: Sequence[str], order_by: str, headers: dict[str, str]
    ) -> list[dict[str, Any]]:
        url = self._hosts_url(ids, "", {"order_by": order_by, "order_how": "ASC"})
        response = self.doer.send(HttpRequest("GET", url, dict(headers)))

        if response.status_code == 404:
            return []

        parsed = response.json_object() if response.status_code == 200 else None
        if parsed is None:
            raise UnexpectedResponseError(response)
        return list(parsed.get("results") or [])

    def _system_profiles(
        self, ids: Sequence[str], order_by: str, order_how: str, headers: dict[str, str]
    ) -> dict[str, dict[str, Any]]:
        query = {
            "order_by": order_by,
            "order_how": order_how,
            "fields[system_profile]": ",".join(SYSTEM_PROFILE_FIELDS),
        }
        url = self._hosts_url(ids, "/system_profile", query)
        response = self.doer.send(HttpRequest("GET", url, dict(headers)))

        parsed = response.json_object() if response.status_code == 200 else None
        if parsed is None:
            raise UnexpectedResponseError(response)
        return {
            str(result.get("id")): result.get("system_profile") or {}
            for result in parsed.get("results") or []
        }

    def get_host_connection_details(
        self,
        ids: Sequence[str],
        order_by: str,
        order_how: str,
        limit: int,
        offset: int,
        request_id: str | None = None,
        identity: str | None = None,
    ) -> list[HostDetails]:
        """Return connection details for the hosts the inventory knows about."""
        headers = self._headers(request_id, identity)

        hosts = self._host_details(ids, order_by, headers)
        if not hosts:
            return []

        profiles = self._system_profiles(ids, order_by, order_how, headers)

        details = []
        for host in hosts:
            host_id = str(host.get("id"))
            facts = get_satellite_facts(host.get("facts"))
            profile = profiles.get(host_id, {})
            details.append(
                HostDetails(
                    id=host_id,
                    owner_id=profile.get("owner_id"),
                    satellite_instance_id=facts.satellite_instance_id,
                    satellite_version=facts.satellite_version,
                    satellite_org_id=facts.satellite_org_id,
                    rhc_client_id=profile.get("rhc_client_id"),
                )
            )
        return details


def new_inventory_client(cfg: Mapping[str, Any]) -> InventoryClient:
    """Build an inventory client using the configured timeout in seconds."""
    doer = RequestsDoer(timeout=_cfg_int(cfg, "inventory.connector.timeout"))
    return InventoryClient(cfg, doer)