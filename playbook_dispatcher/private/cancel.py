"""Canceling runs on behalf of the internal API."""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from ..dispatch import DispatchManager
from ..errors import (
    RecipientNotFoundError,
    RunCancelNotCancelableError,
    RunCancelTypeError,
    RunNotFoundError,
    RunOrgIdMismatchError,
)
from ..models import CancelInput


@dataclass
class RunCanceled:
    """Outcome of one cancel request."""

    code: int
    run_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code}
        if self.run_id is not None:
            result["run_id"] = self.run_id
        return result


_ERROR_CODES: tuple[tuple[type[BaseException], HTTPStatus], ...] = (
    (RunNotFoundError, HTTPStatus.NOT_FOUND),
    (RunOrgIdMismatchError, HTTPStatus.BAD_REQUEST),
    (RecipientNotFoundError, HTTPStatus.CONFLICT),
    (RunCancelNotCancelableError, HTTPStatus.CONFLICT),
    (RunCancelTypeError, HTTPStatus.BAD_REQUEST),
)


def cancel_input_from_v2(payload: Mapping[str, Any], run_id: uuid.UUID) -> CancelInput:
    """Turn a v2 cancel request body into a CancelInput."""
    return CancelInput(
        run_id=run_id,
        org_id=str(payload["org_id"]),
        principal=str(payload["principal"]),
    )


def handle_run_cancel_error(error: BaseException) -> RunCanceled:
    """Map a cancel failure to its response status."""
    for error_type, status in _ERROR_CODES:
        if isinstance(error, error_type):
            return RunCanceled(code=int(status))
    return RunCanceled(code=int(HTTPStatus.INTERNAL_SERVER_ERROR))


def run_canceled(run_id: uuid.UUID) -> RunCanceled:
    """The response for an accepted cancelation."""
    return RunCanceled(code=int(HTTPStatus.ACCEPTED), run_id=str(run_id))


def cancel_runs(
    manager: DispatchManager, inputs: Sequence[Mapping[str, Any]]
) -> list[RunCanceled]:
    """Process cancel requests concurrently; results keep the input order."""

    def cancel_one(payload: Mapping[str, Any]) -> RunCanceled:
        cancel_input = cancel_input_from_v2(payload, uuid.UUID(str(payload["run_id"])))
        try:
            run_id, _ = manager.process_cancel(cancel_input.org_id, cancel_input)
        except Exception as error:
            return handle_run_cancel_error(error)
        return run_canceled(run_id)

    if not inputs:
        return []
    with ThreadPoolExecutor(max_workers=min(len(inputs), 32)) as pool:
        return list(pool.map(cancel_one, inputs))