"""Query building blocks and row conversions for the public list endpoints."""

from __future__ import annotations

import json
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from ..models import RunHost
from .conversions import (
    FIELD_HOST,
    FIELD_INVENTORY_ID,
    FIELD_LINKS,
    FIELD_NAME,
    FIELD_RUN,
    FIELD_STATUS,
    FIELD_STDOUT,
    FIELD_WEB_CONSOLE_URL,
)

_STATUS_WITH_TIMEOUT = (
    "CASE WHEN runs.status='running' AND runs.created_at + runs.timeout * "
    "interval '1 second' <= NOW() THEN 'timeout' ELSE runs.status END as status"
)

_HOST_COLUMNS = {
    FIELD_HOST: "run_hosts.host",
    FIELD_RUN: "run_hosts.run_id",
    FIELD_STATUS: "run_hosts.status",
    FIELD_STDOUT: "run_hosts.log",
    FIELD_LINKS: "run_hosts.inventory_id",
    FIELD_INVENTORY_ID: "run_hosts.inventory_id",
}


def get_order_by(sort_by: str | None) -> str:
    """ORDER BY clause for ``field`` or ``field:direction``; newest first by default."""
    if not sort_by:
        return "created_at desc"
    parts = sort_by.split(":")
    if len(parts) == 1:
        return f"{parts[0]} desc"
    return f"{parts[0]} {parts[1]}"


def map_fields_to_sql(field: str) -> str:
    """Column expression for a run field; expired running runs read as timeout."""
    if field == FIELD_STATUS:
        return _STATUS_WITH_TIMEOUT
    if field == FIELD_NAME:
        return "playbook_name"
    if field == FIELD_WEB_CONSOLE_URL:
        return "playbook_run_url"
    return field


def map_host_fields_to_sql(field: str) -> str:
    """Column for a run host field; raise ValueError for unknown fields."""
    try:
        return _HOST_COLUMNS[field]
    except KeyError:
        raise ValueError("unknown field " + field) from None


def inventory_link(inventory_id: uuid.UUID | None) -> str | None:
    """Link to the inventory host, if the host has an inventory id."""
    if inventory_id is None:
        return None
    return f"/api/inventory/v1/hosts/{inventory_id}"


def _escape_html(text: str) -> str:
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def label_filter_json(label_filters: Mapping[str, Sequence[str]]) -> str | None:
    """JSON object for a labels containment filter; the last value of a key wins.

    Returns None when there is nothing to filter on.
    """
    labels: dict[str, str] = {}
    for key, values in label_filters.items():
        for value in values:
            labels[key] = value

    if not labels:
        return None

    encoded = json.dumps(labels, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return _escape_html(encoded)


def db_run_host_to_api(host: RunHost, fields: Sequence[str]) -> dict[str, Any]:
    """The public representation of a run host, holding only the selected fields."""
    result: dict[str, Any] = {}
    for field in fields:
        if field == FIELD_HOST:
            result["host"] = host.host
        elif field == FIELD_STDOUT:
            result["stdout"] = host.log
        elif field == FIELD_STATUS:
            result["status"] = getattr(host.status, "value", host.status)
        elif field == FIELD_RUN:
            result["run"] = {"id": str(host.run_id)}
        elif field == FIELD_LINKS:
            result["links"] = {"inventory_host": inventory_link(host.inventory_id)}
        elif field == FIELD_INVENTORY_ID:
            if host.inventory_id is not None:
                result["inventory_id"] = str(host.inventory_id)
    return result