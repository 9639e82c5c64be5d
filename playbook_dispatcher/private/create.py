"""Creating runs on behalf of the internal API."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Protocol, TypeVar

from .. import instrumentation
from ..dispatch import DispatchManager, current_api_version
from ..errors import RecipientNotFoundError
from ..models import RunHostsInput, RunInput
from ..protocols import LABEL_RUNNER_REQUEST, LABEL_SAT_REQUEST

log = logging.getLogger(__name__)

_API_V1 = instrumentation.API_V1
_API_V2 = "v2"

_T = TypeVar("_T")
_R = TypeVar("_R")


class _Translator(Protocol):
    def ean_to_org_id(self, account: str) -> str: ...


@dataclass
class RunCreated:
    """Outcome of one run creation request."""

    code: int
    id: str | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code}
        if self.id is not None:
            result["id"] = self.id
        if self.message is not None:
            result["message"] = self.message
        return result


class BlocklistedOrgIdError(Exception):
    """Requests from this organization are rejected."""

    def __init__(self, org_id: str) -> None:
        self.org_id = org_id
        super().__init__(f"This org_id ({org_id}) is blocklisted")


class TenantNotFoundError(Exception):
    """No organization is known for the given account."""


class InvalidRequestError(ValueError):
    """A run request is malformed."""


def validate_satellite_fields(run_input: Mapping[str, Any]) -> Mapping[str, Any]:
    """Check the Satellite-specific fields of a v2 run request; return it unchanged."""
    config = run_input.get("recipient_config")
    if config is None:
        return run_input

    sat_id = config.get("sat_id")
    sat_org_id = config.get("sat_org_id")
    if (sat_id is None) != (sat_org_id is None):
        raise InvalidRequestError("Both sat_id and sat_org need to be defined")

    if sat_id is None:
        return run_input

    hosts = run_input.get("hosts")
    if hosts is None:
        raise InvalidRequestError("Hosts need to be defined")
    if len(hosts) == 0:
        raise InvalidRequestError("Hosts cannot be empty")
    if any(host.get("inventory_id") is None for host in hosts):
        raise InvalidRequestError("Inventory ID needs to be defined")

    return run_input


def is_org_id_blocklisted(cfg: Mapping[str, Any], org_id: str) -> bool:
    """Whether the org id is on the configured comma-separated blocklist."""
    value = cfg.get("blocklist.org.ids")
    if value is None:
        return False
    entries = value.split(",") if isinstance(value, str) else [str(item) for item in value]
    return org_id in {entry.strip() for entry in entries if entry.strip()}


def parse_run_hosts(hosts: Iterable[Mapping[str, Any]] | None) -> list[RunHostsInput]:
    """Turn the hosts of a request body into RunHostsInput values."""
    result = []
    for host in hosts or ():
        inventory_id = host.get("inventory_id")
        result.append(
            RunHostsInput(
                ansible_host=host.get("ansible_host"),
                inventory_id=None if inventory_id is None else uuid.UUID(str(inventory_id)),
            )
        )
    return result


def _labels(payload: Mapping[str, Any]) -> dict[str, str]:
    return {str(key): str(value) for key, value in (payload.get("labels") or {}).items()}


def _timeout(payload: Mapping[str, Any]) -> int | None:
    timeout = payload.get("timeout")
    return None if timeout is None else int(timeout)


def run_input_v1_to_generic(
    payload: Mapping[str, Any],
    org_id: str,
    recipient: uuid.UUID,
    hosts: list[RunHostsInput],
) -> RunInput:
    """Build a RunInput from a v1 request body."""
    return RunInput(
        recipient=recipient,
        org_id=org_id,
        account=str(payload["account"]),
        url=str(payload["url"]),
        labels=_labels(payload),
        timeout=_timeout(payload),
        hosts=hosts,
    )


def run_input_v2_to_generic(
    payload: Mapping[str, Any],
    recipient: uuid.UUID,
    hosts: list[RunHostsInput],
    sat_id: uuid.UUID | None,
) -> RunInput:
    """Build a RunInput from a v2 request body."""
    config = payload.get("recipient_config")
    web_console_url = payload.get("web_console_url")
    return RunInput(
        recipient=recipient,
        org_id=str(payload["org_id"]),
        url=str(payload["url"]),
        labels=_labels(payload),
        timeout=_timeout(payload),
        hosts=hosts,
        name=str(payload.get("name") or ""),
        web_console_url=None if web_console_url is None else str(web_console_url),
        principal=str(payload.get("principal") or ""),
        sat_id=sat_id,
        sat_org_id=None if config is None else config.get("sat_org_id"),
    )


def handle_run_create_error(error: BaseException) -> RunCreated:
    """Map a creation failure to its response status and message."""
    if isinstance(error, RecipientNotFoundError):
        return RunCreated(code=int(HTTPStatus.NOT_FOUND), message="Receipient not found")
    if isinstance(error, TenantNotFoundError):
        return RunCreated(code=int(HTTPStatus.NOT_FOUND), message="Tenant not found")
    if isinstance(error, BlocklistedOrgIdError):
        return RunCreated(code=int(HTTPStatus.BAD_REQUEST), message="Block listed org")
    return RunCreated(
        code=int(HTTPStatus.INTERNAL_SERVER_ERROR),
        message="Unexpected error during processing",
    )


def run_created(run_id: uuid.UUID) -> RunCreated:
    """The response for a created run."""
    return RunCreated(code=int(HTTPStatus.CREATED), id=str(run_id))


def get_request_type_label(payload: Mapping[str, Any]) -> str:
    """Metrics label: Satellite when a sat_id is given, ansible otherwise."""
    config = payload.get("recipient_config")
    if config is not None and config.get("sat_id") is not None:
        return LABEL_SAT_REQUEST
    return LABEL_RUNNER_REQUEST


def _pmap(fn: Callable[[_T], _R], items: Sequence[_T], api_version: str) -> list[_R]:
    def run(item: _T) -> _R:
        token = current_api_version.set(api_version)
        try:
            return fn(item)
        finally:
            current_api_version.reset(token)

    if not items:
        return []
    with ThreadPoolExecutor(max_workers=min(len(items), 32)) as pool:
        return list(pool.map(run, items))


def _dispatch(
    manager: DispatchManager, org_id: str, principal: str, run_input: RunInput
) -> RunCreated:
    try:
        run_id, _ = manager.process_run(org_id, principal, run_input)
    except Exception as error:
        return handle_run_create_error(error)
    return run_created(run_id)


def create_runs_v1(
    manager: DispatchManager,
    translator: _Translator,
    cfg: Mapping[str, Any],
    inputs: Sequence[Mapping[str, Any]],
    principal: str,
) -> list[RunCreated]:
    """Process v1 run requests concurrently; results keep the input order."""

    def create_one(payload: Mapping[str, Any]) -> RunCreated:
        recipient = uuid.UUID(str(payload["recipient"]))
        try:
            org_id = translator.ean_to_org_id(str(payload["account"]))
        except Exception as error:
            log.error("%s", error)
            return handle_run_create_error(error)

        if is_org_id_blocklisted(cfg, org_id):
            log.debug("Rejecting request because the org_id is blocklisted")
            return handle_run_create_error(BlocklistedOrgIdError(org_id))

        hosts = parse_run_hosts(payload.get("hosts"))
        run_input = run_input_v1_to_generic(payload, org_id, recipient, hosts)
        return _dispatch(manager, org_id, principal, run_input)

    return _pmap(create_one, list(inputs), _API_V1)


def create_runs_v2(
    manager: DispatchManager,
    cfg: Mapping[str, Any],
    inputs: Sequence[Mapping[str, Any]],
    principal: str,
) -> list[RunCreated]:
    """Validate all v2 run requests, then process them concurrently.

    Raises InvalidRequestError if any request is malformed.
    """
    for payload in inputs:
        try:
            validate_satellite_fields(payload)
        except InvalidRequestError as error:
            instrumentation.invalid_satellite_request(error)
            raise

    def create_one(payload: Mapping[str, Any]) -> RunCreated:
        org_id = str(payload["org_id"])
        if is_org_id_blocklisted(cfg, org_id):
            log.debug("Rejecting request because the org_id is blocklisted")
            return handle_run_create_error(BlocklistedOrgIdError(org_id))

        recipient = uuid.UUID(str(payload["recipient"]))
        hosts = parse_run_hosts(payload.get("hosts"))

        config = payload.get("recipient_config")
        sat_id = None
        if config is not None and config.get("sat_id") is not None:
            sat_id = uuid.UUID(str(config["sat_id"]))

        run_input = run_input_v2_to_generic(payload, recipient, hosts, sat_id)
        return _dispatch(manager, run_input.org_id, principal, run_input)

    return _pmap(create_one, list(inputs), _API_V2)