"""Connection status of recipients and of the hosts behind them."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..connectors.cloud_connector import CloudConnectorClient, ConnectionStatus
from ..connectors.inventory import HostDetails, InventoryClient
from ..connectors.sources import SourcesConnector
from ..ratelimit import RateLimiter

log = logging.getLogger(__name__)

RECIPIENT_TYPE_SATELLITE = "satellite"
RECIPIENT_TYPE_DIRECT_CONNECT = "directConnect"
RECIPIENT_TYPE_NONE = "none"

STATUS_CONNECTED = "connected"
STATUS_DISCONNECTED = "disconnected"
STATUS_RHC_NOT_CONFIGURED = "rhc_not_configured"


def _cfg_str(cfg: Mapping[str, Any], key: str) -> str:
    value = cfg.get(key)
    return "" if value is None else str(value)


def _cfg_int(cfg: Mapping[str, Any], key: str) -> int:
    value = cfg.get(key)
    return 0 if value in (None, "") else int(value)


@dataclass
class RecipientWithConnectionInfo:
    """A recipient, the systems reachable through it and its connection state."""

    org_id: str
    recipient: str
    recipient_type: str
    sat_id: str
    sat_org_id: str
    status: str
    systems: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "org_id": self.org_id,
            "recipient": self.recipient,
            "recipient_type": self.recipient_type,
            "sat_id": self.sat_id,
            "sat_org_id": self.sat_org_id,
            "status": self.status,
            "systems": list(self.systems),
        }


@dataclass
class RecipientStatus:
    """Whether a recipient of an organization is connected."""

    recipient: str
    org_id: str
    connected: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipient": self.recipient,
            "org_id": self.org_id,
            "connected": self.connected,
        }


@dataclass
class _RhcSatellite:
    satellite_instance_id: str
    satellite_org_id: str
    satellite_version: str
    hosts: list[str] = field(default_factory=list)
    source_id: str = ""
    rhc_client_id: str | None = None
    source_availability_status: str | None = None


def sort_hosts_by_recipient(
    details: Iterable[HostDetails],
) -> tuple[list[HostDetails], list[HostDetails], list[HostDetails]]:
    """Split hosts into (satellite, direct connected, not connected)."""
    satellite: list[HostDetails] = []
    direct: list[HostDetails] = []
    none: list[HostDetails] = []

    for host in details:
        if host.satellite_instance_id is not None:
            satellite.append(host)
        elif host.rhc_client_id is not None:
            direct.append(host)
        else:
            none.append(host)

    return satellite, direct, none


def format_connection_response(
    sat_id: str | None,
    sat_org_id: str | None,
    rhc_client_id: str | None,
    org_id: str,
    hosts: Sequence[str],
    recipient_type: str,
    status: str,
) -> RecipientWithConnectionInfo:
    """Build a response entry; missing identifiers become empty strings."""
    return RecipientWithConnectionInfo(
        org_id=org_id,
        recipient=rhc_client_id or "",
        recipient_type=recipient_type,
        sat_id=sat_id or "",
        sat_org_id=sat_org_id or "",
        status=status,
        systems=list(hosts),
    )


def group_hosts_by_satellite(details: Iterable[HostDetails]) -> dict[str, _RhcSatellite]:
    """Group Satellite hosts by Satellite instance and organization."""
    groups: dict[str, _RhcSatellite] = {}

    for host in details:
        instance_id = host.satellite_instance_id or ""
        org_id = host.satellite_org_id or ""
        key = instance_id + org_id
        group = groups.get(key)
        if group is None:
            groups[key] = _RhcSatellite(
                satellite_instance_id=instance_id,
                satellite_org_id=org_id,
                satellite_version=host.satellite_version or "",
                hosts=[host.id],
            )
        else:
            group.hosts.append(host.id)

    return groups


def _attach_source_info(
    groups: Mapping[str, _RhcSatellite], sources: SourcesConnector
) -> None:
    for satellite in groups.values():
        try:
            result = sources.get_source_connection_details(satellite.satellite_instance_id)
        except Exception as error:
            log.error(
                "Sources data could not be found for SatelliteID %s Error: %s",
                satellite.satellite_instance_id,
                error,
            )
            continue
        satellite.source_id = result.id
        satellite.rhc_client_id = result.rhc_id
        satellite.source_availability_status = result.availability_status


def _status_label(status: ConnectionStatus) -> str:
    return STATUS_CONNECTED if status == ConnectionStatus.CONNECTED else STATUS_DISCONNECTED


def _satellite_responses(
    groups: Mapping[str, _RhcSatellite],
    cloud_connector: CloudConnectorClient,
    org_id: str,
) -> list[RecipientWithConnectionInfo]:
    responses = []
    for satellite in groups.values():
        if satellite.rhc_client_id is None:
            continue
        status = cloud_connector.get_connection_status(
            satellite.satellite_org_id, satellite.rhc_client_id
        )
        responses.append(
            format_connection_response(
                satellite.satellite_instance_id,
                satellite.satellite_org_id,
                satellite.rhc_client_id,
                org_id,
                satellite.hosts,
                RECIPIENT_TYPE_SATELLITE,
                _status_label(status),
            )
        )
    return responses


def _direct_connect_responses(
    details: Iterable[HostDetails],
    cloud_connector: CloudConnectorClient,
    org_id: str,
) -> list[RecipientWithConnectionInfo]:
    responses = []
    for host in details:
        status = cloud_connector.get_connection_status(org_id, host.rhc_client_id or "")
        responses.append(
            format_connection_response(
                None,
                None,
                host.rhc_client_id,
                org_id,
                [host.id],
                RECIPIENT_TYPE_DIRECT_CONNECT,
                _status_label(status),
            )
        )
    return responses


def get_rhc_status(details: Iterable[HostDetails], org_id: str) -> RecipientWithConnectionInfo:
    """The entry listing hosts that have no RHC connection configured."""
    return format_connection_response(
        None,
        None,
        None,
        org_id,
        [host.id for host in details],
        RECIPIENT_TYPE_NONE,
        STATUS_RHC_NOT_CONFIGURED,
    )


def high_level_connection_status(
    inventory: InventoryClient,
    cloud_connector: CloudConnectorClient,
    sources: SourcesConnector,
    cfg: Mapping[str, Any],
    org_id: str,
    hosts: Sequence[str],
) -> list[RecipientWithConnectionInfo]:
    """Connection status of the given hosts, grouped by the recipient reaching them.

    Satellite entries come first, then direct connections, then unconnected hosts.
    """
    details = inventory.get_host_connection_details(
        hosts,
        _cfg_str(cfg, "inventory.connector.ordered.by"),
        _cfg_str(cfg, "inventory.connector.ordered.how"),
        _cfg_int(cfg, "inventory.connector.limit"),
        _cfg_int(cfg, "inventory.connector.offset"),
    )

    if not details:
        log.info("host(s) not found in inventory")
        return []

    satellite, direct, none = sort_hosts_by_recipient(details)

    no_rhc_responses = [get_rhc_status(none, org_id)] if none else []

    if not satellite and not direct:
        return no_rhc_responses

    satellite_responses: list[RecipientWithConnectionInfo] = []
    if satellite:
        groups = group_hosts_by_satellite(satellite)
        _attach_source_info(groups, sources)
        satellite_responses = _satellite_responses(groups, cloud_connector, org_id)

    direct_responses: list[RecipientWithConnectionInfo] = []
    if direct:
        direct_responses = _direct_connect_responses(direct, cloud_connector, org_id)

    return satellite_responses + direct_responses + no_rhc_responses


def recipients_status(
    cloud_connector: CloudConnectorClient,
    rate_limiter: RateLimiter,
    recipients: Iterable[Mapping[str, Any]],
) -> list[RecipientStatus]:
    """Ask Cloud Connector, one rate-limited request each, whether recipients are connected."""
    results = []
    for entry in recipients:
        rate_limiter.wait()
        recipient = str(entry["recipient"])
        org_id = str(entry["org_id"])
        status = cloud_connector.get_connection_status(org_id, recipient)
        results.append(
            RecipientStatus(
                recipient=recipient,
                org_id=org_id,
                connected=status == ConnectionStatus.CONNECTED,
            )
        )
    return results