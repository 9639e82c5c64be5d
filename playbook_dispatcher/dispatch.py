"""Sending playbook run signals and storing the run records."""

from __future__ import annotations

import dataclasses
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from contextvars import ContextVar
from typing import Any

from . import instrumentation
from .connectors.cloud_connector import CloudConnectorClient
from .errors import (
    RecipientNotFoundError,
    RunCancelNotCancelableError,
    RunCancelTypeError,
    RunNotFoundError,
    RunOrgIdMismatchError,
)
from .models import (
    CancelInput,
    Run,
    RunHost,
    RunInput,
    RunStatus,
    new_host_runs,
    new_run,
)
from .protocols import RUNNER_PROTOCOL, SATELLITE_PROTOCOL, Protocol
from .ratelimit import RateLimiter

current_api_version: ContextVar[str] = ContextVar(
    "current_api_version", default=instrumentation.API_V1
)


def _cfg_str(cfg: Mapping[str, Any], key: str) -> str:
    value = cfg.get(key)
    return "" if value is None else str(value)


def _cfg_int(cfg: Mapping[str, Any], key: str) -> int:
    value = cfg.get(key)
    return 0 if value in (None, "") else int(value)


def _cfg_bool(cfg: Mapping[str, Any], key: str) -> bool:
    value = cfg.get(key)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "t", "true")
    return bool(value)


def get_protocol(run_input: RunInput) -> Protocol:
    """Satellite runs carry a sat_id; everything else goes to the runner."""
    return SATELLITE_PROTOCOL if run_input.sat_id is not None else RUNNER_PROTOCOL


class RunStore(ABC):
    """Persistence for runs and their hosts."""

    @abstractmethod
    def create(self, run: Run, hosts: Sequence[RunHost]) -> None:
        """Store a run together with its hosts, all or nothing."""

    @abstractmethod
    def get(self, run_id: uuid.UUID) -> Run:
        """Return the run with the given id; raise KeyError if there is none."""


class InMemoryRunStore(RunStore):
    """RunStore keeping everything in dictionaries."""

    def __init__(self) -> None:
        self.runs: dict[uuid.UUID, Run] = {}
        self.hosts: dict[uuid.UUID, list[RunHost]] = {}
        self._lock = threading.Lock()

    def create(self, run: Run, hosts: Sequence[RunHost]) -> None:
        with self._lock:
            if run.id in self.runs:
                raise ValueError(f"duplicate run id: {run.id}")
            self.runs[run.id] = run
            self.hosts[run.id] = list(hosts)

    def get(self, run_id: uuid.UUID) -> Run:
        with self._lock:
            return self.runs[run_id]


class DispatchManager:
    """Orchestrates sending of run signals and storing of run records."""

    def __init__(
        self,
        cfg: Mapping[str, Any],
        cloud_connector: CloudConnectorClient,
        rate_limiter: RateLimiter,
        store: RunStore,
    ) -> None:
        self.cfg = cfg
        self.cloud_connector = cloud_connector
        self.rate_limiter = rate_limiter
        self.store = store

    def _new_correlation_id(self) -> uuid.UUID:
        if _cfg_bool(self.cfg, "demo.mode"):
            return uuid.UUID(int=0)
        return uuid.uuid4()

    def _apply_defaults(self, run_input: RunInput) -> RunInput:
        changes: dict[str, Any] = {}
        if run_input.web_console_url is None:
            changes["web_console_url"] = _cfg_str(self.cfg, "web.console.url.default")
        if run_input.timeout is None:
            changes["timeout"] = _cfg_int(self.cfg, "default.run.timeout")
        return dataclasses.replace(run_input, **changes)

    def _send(
        self,
        org_id: str,
        recipient: uuid.UUID,
        payload: str,
        protocol: Protocol,
        metadata: Mapping[str, str],
    ) -> None:
        self.rate_limiter.wait()
        try:
            message_id, not_found = self.cloud_connector.send_cloud_connector_request(
                org_id, recipient, payload, protocol.directive.value, metadata
            )
        except Exception as error:
            instrumentation.cloud_connector_request_error(error, recipient, protocol.label)
            raise

        if not_found:
            instrumentation.cloud_connector_no_connection(recipient, protocol.label)
            raise RecipientNotFoundError(recipient)

        instrumentation.cloud_connector_ok(recipient, message_id)

    def process_run(
        self, org_id: str, service: str, run_input: RunInput
    ) -> tuple[uuid.UUID, uuid.UUID]:
        """Signal the recipient and store the run; return (run id, correlation id)."""
        correlation_id = self._new_correlation_id()
        run_input = self._apply_defaults(run_input)
        protocol = get_protocol(run_input)
        metadata = protocol.build_metadata(run_input, correlation_id, self.cfg)

        self._send(org_id, run_input.recipient, run_input.url, protocol, metadata)

        entity = new_run(run_input, correlation_id, protocol.response_full(self.cfg), service)
        hosts = new_host_runs(run_input.hosts, entity.id) if run_input.hosts else []
        api_version = current_api_version.get()

        try:
            self.store.create(entity, hosts)
        except Exception as error:
            instrumentation.playbook_run_create_error(
                error, entity, protocol.label, api_version
            )
            raise

        instrumentation.run_created(
            run_input.recipient, entity.id, run_input.url, entity.service,
            protocol.label, api_version,
        )
        return entity.id, correlation_id

    def process_cancel(
        self, org_id: str, cancel_input: CancelInput
    ) -> tuple[uuid.UUID, uuid.UUID]:
        """Signal cancelation of a Satellite run; return (run id, correlation id)."""
        try:
            run = self.store.get(cancel_input.run_id)
        except KeyError as error:
            instrumentation.playbook_run_cancel_error(error)
            raise RunNotFoundError(cancel_input.run_id, error) from error

        if run.org_id != org_id:
            instrumentation.playbook_run_cancel_error(None)
            raise RunOrgIdMismatchError(cancel_input.run_id)

        if run.sat_id is None or run.sat_org_id is None:
            instrumentation.playbook_run_cancel_run_type_error(run.id)
            raise RunCancelTypeError(run.id)

        if run.status != RunStatus.RUNNING:
            raise RunCancelNotCancelableError(run.id)

        protocol = SATELLITE_PROTOCOL
        metadata = protocol.build_cancel_metadata(cancel_input, run.correlation_id, self.cfg)

        self._send(org_id, run.recipient, "", protocol, metadata)
        instrumentation.run_canceled(run.id)

        return cancel_input.run_id, run.correlation_id