"""Conversion of stored runs into public API representations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..models import Run

FIELD_ID = "id"
FIELD_ORG_ID = "org_id"
FIELD_RECIPIENT = "recipient"
FIELD_URL = "url"
FIELD_LABELS = "labels"
FIELD_TIMEOUT = "timeout"
FIELD_STATUS = "status"
FIELD_CREATED_AT = "created_at"
FIELD_UPDATED_AT = "updated_at"
FIELD_RUN = "run"
FIELD_HOST = "host"
FIELD_STDOUT = "stdout"
FIELD_SERVICE = "service"
FIELD_CORRELATION_ID = "correlation_id"
FIELD_LINKS = "links"
FIELD_INVENTORY_ID = "inventory_id"
FIELD_NAME = "name"
FIELD_WEB_CONSOLE_URL = "web_console_url"

RUN_FIELDS = frozenset(
    {
        FIELD_ID,
        FIELD_ORG_ID,
        FIELD_RECIPIENT,
        FIELD_URL,
        FIELD_LABELS,
        FIELD_TIMEOUT,
        FIELD_STATUS,
        FIELD_CREATED_AT,
        FIELD_UPDATED_AT,
        FIELD_SERVICE,
        FIELD_CORRELATION_ID,
        FIELD_NAME,
        FIELD_WEB_CONSOLE_URL,
    }
)

RUN_HOST_FIELDS = frozenset(
    {FIELD_HOST, FIELD_RUN, FIELD_STATUS, FIELD_STDOUT, FIELD_LINKS, FIELD_INVENTORY_ID}
)

DEFAULT_RUN_FIELDS = (
    FIELD_ID,
    FIELD_ORG_ID,
    FIELD_RECIPIENT,
    FIELD_URL,
    FIELD_LABELS,
    FIELD_TIMEOUT,
    FIELD_STATUS,
)

DEFAULT_RUN_HOST_FIELDS = (FIELD_HOST, FIELD_RUN, FIELD_STATUS)


def _format_time(value: datetime) -> str:
    """RFC 3339 with trailing fractional zeros dropped and 'Z' for UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    fraction = f"{value.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    offset = value.utcoffset()
    seconds = int(offset.total_seconds()) if offset is not None else 0
    if seconds == 0:
        return text + "Z"
    sign = "+" if seconds > 0 else "-"
    hours, minutes = divmod(abs(seconds) // 60, 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def db_run_to_api_run(run: Run, fields: list[str] | tuple[str, ...]) -> dict[str, Any]:
    """The public representation of a run, holding only the selected fields."""
    result: dict[str, Any] = {}

    for field in fields:
        if field == FIELD_ID:
            result["id"] = str(run.id)
        elif field == FIELD_ORG_ID:
            result["org_id"] = run.org_id
        elif field == FIELD_RECIPIENT:
            result["recipient"] = str(run.recipient)
        elif field == FIELD_URL:
            result["url"] = run.url
        elif field == FIELD_LABELS:
            result["labels"] = dict(run.labels or {})
        elif field == FIELD_TIMEOUT:
            result["timeout"] = run.timeout
        elif field == FIELD_STATUS:
            result["status"] = getattr(run.status, "value", run.status)
        elif field == FIELD_NAME:
            if run.playbook_name is not None:
                result["name"] = run.playbook_name
        elif field == FIELD_WEB_CONSOLE_URL:
            result["web_console_url"] = run.playbook_run_url
        elif field == FIELD_CREATED_AT:
            result["created_at"] = _format_time(run.created_at)
        elif field == FIELD_UPDATED_AT:
            result["updated_at"] = _format_time(run.updated_at)
        elif field == FIELD_SERVICE:
            result["service"] = run.service
        elif field == FIELD_CORRELATION_ID:
            result["correlation_id"] = str(run.correlation_id)
        else:
            raise ValueError("unknown field " + field)

    return result