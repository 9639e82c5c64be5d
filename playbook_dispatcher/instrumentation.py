"""Metrics counters and log probes for the API."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterable
from typing import Any

log = logging.getLogger(__name__)

LABEL_DB = "db"
LABEL_PLAYBOOK_RUN_CREATE = "playbook_run_create"
LABEL_PLAYBOOK_RUN_HOST_CREATE = "playbook_run_host_create"
LABEL_PLAYBOOK_RUN_READ = "playbook_run_read"
LABEL_NO_CONNECTION = "no_connection"
LABEL_ERROR_GENERIC = "error"
LABEL_TENANT_ANEMIC = "anemic-tenant"
LABEL_SATELLITE = "satellite"
LABEL_ANSIBLE_REQUEST = "ansible"
LABEL_SAT_REQUEST = "satellite"

API_V1 = "v1"
API_V2 = "v2"


class Counter:
    """A monotonically increasing counter, optionally split by label values."""

    def __init__(self, name: str, help: str, label_names: Iterable[str] = ()) -> None:
        self.name = name
        self.help = help
        self.label_names = tuple(label_names)
        self._values: dict[tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def _key(self, args: tuple[Any, ...]) -> tuple[str, ...]:
        if len(args) != len(self.label_names):
            raise ValueError(
                f"{self.name} expects {len(self.label_names)} label values, got {len(args)}"
            )
        return tuple(str(arg) for arg in args)

    def _touch(self, *args: Any) -> None:
        key = self._key(args)
        with self._lock:
            self._values.setdefault(key, 0.0)

    def inc(self, *args: Any) -> None:
        """Add one to the series identified by the label values."""
        key = self._key(args)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + 1

    def value(self, *args: Any) -> float:
        """Current value of the series identified by the label values."""
        key = self._key(args)
        with self._lock:
            return self._values.get(key, 0.0)

    def __contains__(self, label_values: object) -> bool:
        if not isinstance(label_values, tuple):
            label_values = (label_values,)
        with self._lock:
            return tuple(str(v) for v in label_values) in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


validation_failure_total = Counter(
    "api_validation_failure_total", "The total number of invalid requests", ["type"]
)
error_total = Counter(
    "api_error_total",
    "The total number of errors",
    ["type", "subtype", "request", "api_version"],
)
connector_error_total = Counter(
    "api_cloud_connector_error_total",
    "The total number of errors talking to cloud connector",
    ["type", "request"],
)
connector_sent_total = Counter(
    "api_cloud_connector_sent_total", "The total number of messages sent via cloud connector"
)
rbac_error_total = Counter("api_rbac_error_total", "The total number of errors from RBAC")
rbac_rejected_total = Counter(
    "api_rbac_rejected_total", "The total number of requests rejected due to RBAC"
)
run_created_total = Counter(
    "api_run_created_total",
    "The total number of created playbook runs",
    ["dispatching_service", "request", "api_version"],
)
run_canceled_total = Counter(
    "api_run_canceled_total", "The total number of canceled playbook runs"
)
run_canceled_error_total = Counter(
    "app_run_canceled_error_total", "The total number of errors from the run cancel endpoint"
)


def tenant_anemic(org_id: str) -> None:
    log.error("Rejecting request for anemic tenant", extra={"org_id": org_id})
    validation_failure_total.inc(LABEL_TENANT_ANEMIC)


def invalid_satellite_request(error: BaseException) -> None:
    log.error("Invalid Satellite request: %s", error)
    validation_failure_total.inc(LABEL_SATELLITE)


def cloud_connector_request_error(
    error: BaseException, recipient: uuid.UUID, request_type: str
) -> None:
    log.error("Error sending message to cloud connector: %s (recipient %s)", error, recipient)
    connector_error_total.inc(LABEL_ERROR_GENERIC, request_type)


def cloud_connector_no_connection(recipient: uuid.UUID, request_type: str) -> None:
    log.error("Cloud connector reporting no connection for recipient %s", recipient)
    connector_error_total.inc(LABEL_NO_CONNECTION, request_type)


def cloud_connector_ok(recipient: uuid.UUID, message_id: str | None) -> None:
    log.debug(
        "Received response from cloud connector (recipient %s, message_id %s)",
        recipient,
        message_id,
    )
    connector_sent_total.inc()


def playbook_run_create_error(
    error: BaseException, run: Any, request_type: str, api_version: str
) -> None:
    log.error("Error creating run: %s (run %r)", error, run)
    error_total.inc(LABEL_DB, LABEL_PLAYBOOK_RUN_CREATE, request_type, api_version)


def playbook_run_host_create_error(
    error: BaseException, hosts: Any, request_type: str, api_version: str
) -> None:
    log.error("Error creating run host: %s (data %r)", error, hosts)
    error_total.inc(LABEL_DB, LABEL_PLAYBOOK_RUN_HOST_CREATE, request_type, api_version)


def playbook_api_request_error(error: BaseException) -> None:
    log.error("Unable to process api request: %s", error)


def playbook_run_cancel_error(error: BaseException | None) -> None:
    log.error("Error canceling run: %s", error)
    run_canceled_error_total.inc()


def playbook_run_cancel_run_type_error(run_id: uuid.UUID) -> None:
    log.error("Attempting to cancel run not of type Satellite RHC (run %s)", run_id)
    run_canceled_error_total.inc()


def playbook_run_read_error(error: BaseException) -> None:
    log.error("Error reading playbook runs from database: %s", error)
    error_total.inc(LABEL_DB, LABEL_PLAYBOOK_RUN_READ, "", "")


def rbac_error(error: BaseException) -> None:
    log.error("error getting permissions from RBAC: %s", error)
    rbac_error_total.inc()


def rbac_rejected() -> None:
    log.info("access rejected due to RBAC")
    rbac_rejected_total.inc()


def run_created(
    recipient: uuid.UUID,
    run_id: uuid.UUID,
    payload: str,
    service: str,
    request_type: str,
    api_version: str,
) -> None:
    log.info(
        "Created new playbook run (recipient %s, run_id %s, payload %s, service %s)",
        recipient,
        run_id,
        payload,
        service,
    )
    run_created_total.inc(service, request_type, api_version)


def run_canceled(run_id: uuid.UUID) -> None:
    log.info("Successfully initiated playbook run cancelation (run_id %s)", run_id)
    run_canceled_total.inc()


def start() -> None:
    """Initialise the known label combinations so they report zero."""
    validation_failure_total._touch(LABEL_TENANT_ANEMIC)
    validation_failure_total._touch(LABEL_SATELLITE)

    combinations = [
        (LABEL_ANSIBLE_REQUEST, API_V1),
        (LABEL_ANSIBLE_REQUEST, API_V2),
        (LABEL_SAT_REQUEST, API_V2),
    ]
    for request_type, api_version in combinations:
        for subtype in (
            LABEL_PLAYBOOK_RUN_CREATE,
            LABEL_PLAYBOOK_RUN_HOST_CREATE,
            LABEL_PLAYBOOK_RUN_READ,
        ):
            error_total._touch(LABEL_DB, subtype, request_type, api_version)

    for kind in (LABEL_ERROR_GENERIC, LABEL_NO_CONNECTION):
        for request_type in (LABEL_ANSIBLE_REQUEST, LABEL_SAT_REQUEST):
            connector_error_total._touch(kind, request_type)