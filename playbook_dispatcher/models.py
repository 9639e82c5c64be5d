"""Run records and the generic inputs they are created from."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class RunStatus(str, Enum):
    """Lifecycle state of a playbook run or of one of its hosts."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"
    CANCELED = "canceled"


@dataclass
class RunHostsInput:
    """A host targeted by a run request."""

    ansible_host: str | None = None
    inventory_id: uuid.UUID | None = None


@dataclass
class RunInput:
    """Protocol-independent description of a run request."""

    recipient: uuid.UUID
    org_id: str
    url: str
    account: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    timeout: int | None = None
    hosts: list[RunHostsInput] = field(default_factory=list)
    name: str | None = None
    web_console_url: str | None = None
    principal: str | None = None
    sat_id: uuid.UUID | None = None
    sat_org_id: str | None = None


@dataclass
class CancelInput:
    """A request to cancel a run."""

    run_id: uuid.UUID
    org_id: str
    principal: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Run:
    """A stored playbook run."""

    id: uuid.UUID
    org_id: str
    correlation_id: uuid.UUID
    url: str
    status: RunStatus
    recipient: uuid.UUID
    labels: dict[str, str]
    response_full: bool
    service: str
    timeout: int
    playbook_run_url: str
    playbook_name: str | None = None
    principal: str | None = None
    sat_id: uuid.UUID | None = None
    sat_org_id: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class RunHost:
    """A stored host belonging to a run."""

    id: uuid.UUID
    run_id: uuid.UUID
    host: str
    status: RunStatus
    inventory_id: uuid.UUID | None = None
    log: str = ""


def new_run(
    run_input: RunInput,
    correlation_id: uuid.UUID,
    response_full: bool,
    service: str,
) -> Run:
    """Build a new running Run record; timeout and console URL must be defaulted."""
    if run_input.timeout is None or run_input.web_console_url is None:
        raise ValueError("timeout and web_console_url must be set before creating a run")

    return Run(
        id=uuid.uuid4(),
        org_id=run_input.org_id,
        correlation_id=correlation_id,
        url=run_input.url,
        status=RunStatus.RUNNING,
        recipient=run_input.recipient,
        labels=dict(run_input.labels),
        response_full=response_full,
        service=service,
        timeout=run_input.timeout,
        playbook_run_url=run_input.web_console_url,
        playbook_name=run_input.name,
        principal=run_input.principal,
        sat_id=run_input.sat_id,
        sat_org_id=run_input.sat_org_id,
    )


def new_host_runs(hosts: list[RunHostsInput], run_id: uuid.UUID) -> list[RunHost]:
    """Build running RunHost records for the given run."""

    def build(host: RunHostsInput) -> RunHost:
        if host.ansible_host is not None:
            name = host.ansible_host
        elif host.inventory_id is not None:
            name = str(host.inventory_id)
        else:
            raise ValueError("a host needs either ansible_host or inventory_id")
        return RunHost(
            id=uuid.uuid4(),
            run_id=run_id,
            host=name,
            status=RunStatus.RUNNING,
            inventory_id=host.inventory_id,
        )

    return [build(host) for host in hosts]