"""Message formats for the rhc workers that execute playbooks."""

from __future__ import annotations

import hashlib
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any

from .models import CancelInput, RunInput

LABEL_RUNNER_REQUEST = "ansible"
LABEL_SAT_REQUEST = "satellite"


class Directive(str, Enum):
    """Identifies the rhc worker a message is addressed to."""

    RUNNER = "rhc-worker-playbook"
    SATELLITE = "foreman_rh_cloud"


def _cfg_str(cfg: Mapping[str, Any], key: str) -> str:
    value = cfg.get(key)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _cfg_bool(cfg: Mapping[str, Any], key: str) -> bool:
    value = cfg.get(key)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "t", "true")
    return bool(value)


def _require(value, name: str):
    if value is None:
        raise ValueError(f"{name} is required")
    return value


def build_common_signal(cfg: Mapping[str, Any]) -> dict[str, str]:
    """Metadata entries shared by every protocol."""
    return {
        "return_url": _cfg_str(cfg, "return.url"),
        "response_interval": _cfg_str(cfg, "response.interval"),
    }


class Protocol(ABC):
    """Formats run messages for a particular rhc worker."""

    directive: Directive
    label: str

    @abstractmethod
    def response_full(self, cfg: Mapping[str, Any]) -> bool:
        """Whether the worker sends the full response."""

    @abstractmethod
    def build_metadata(
        self, run_input: RunInput, correlation_id: uuid.UUID, cfg: Mapping[str, Any]
    ) -> dict[str, str]:
        """Build the metadata dictionary the worker understands."""


class RunnerProtocol(Protocol):
    """Protocol of rhc-worker-playbook."""

    directive = Directive.RUNNER
    label = LABEL_RUNNER_REQUEST

    def response_full(self, cfg: Mapping[str, Any]) -> bool:
        return True

    def build_metadata(
        self, run_input: RunInput, correlation_id: uuid.UUID, cfg: Mapping[str, Any]
    ) -> dict[str, str]:
        metadata = build_common_signal(cfg)
        metadata["crc_dispatcher_correlation_id"] = str(correlation_id)
        return metadata


class SatelliteProtocol(Protocol):
    """Protocol of the Satellite cloud worker."""

    directive = Directive.SATELLITE
    label = LABEL_SAT_REQUEST

    def response_full(self, cfg: Mapping[str, Any]) -> bool:
        return _cfg_bool(cfg, "satellite.response.full")

    def principal_hash(self, principal: str) -> str:
        return hashlib.sha256(principal.encode("utf-8")).hexdigest()

    def build_metadata(
        self, run_input: RunInput, correlation_id: uuid.UUID, cfg: Mapping[str, Any]
    ) -> dict[str, str]:
        hosts = ",".join(
            str(_require(host.inventory_id, "inventory_id")) for host in run_input.hosts
        )
        metadata = build_common_signal(cfg)
        metadata.update(
            operation="run",
            correlation_id=str(correlation_id),
            playbook_run_name=_require(run_input.name, "name"),
            playbook_run_url=_require(run_input.web_console_url, "web_console_url"),
            sat_id=str(_require(run_input.sat_id, "sat_id")),
            sat_org_id=_require(run_input.sat_org_id, "sat_org_id"),
            initiator_user_id=self.principal_hash(_require(run_input.principal, "principal")),
            hosts=hosts,
            response_full="true" if self.response_full(cfg) else "false",
        )
        return metadata

    def build_cancel_metadata(
        self, cancel_input: CancelInput, correlation_id: uuid.UUID, cfg: Mapping[str, Any]
    ) -> dict[str, str]:
        return {
            "operation": "cancel",
            "correlation_id": str(correlation_id),
            "initiator_user_id": self.principal_hash(cancel_input.principal),
        }


RUNNER_PROTOCOL = RunnerProtocol()
SATELLITE_PROTOCOL = SatelliteProtocol()