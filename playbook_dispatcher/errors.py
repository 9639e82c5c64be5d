"""Errors raised while dispatching or canceling runs."""

from __future__ import annotations

import uuid


class DispatchError(Exception):
    """Base class for dispatch failures."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class RecipientNotFoundError(DispatchError):
    """The recipient is not connected."""

    def __init__(self, recipient: uuid.UUID, cause: BaseException | None = None) -> None:
        self.recipient = recipient
        super().__init__(f"Recipient not found: {recipient}", cause)


class RunNotFoundError(DispatchError):
    """No run exists with the given id."""

    def __init__(self, run_id: uuid.UUID, cause: BaseException | None = None) -> None:
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}", cause)


class RunOrgIdMismatchError(DispatchError):
    """The run belongs to a different organization."""

    def __init__(self, run_id: uuid.UUID, cause: BaseException | None = None) -> None:
        self.run_id = run_id
        super().__init__(f"Invalid org_id for cancel request: {run_id}", cause)


class RunCancelTypeError(DispatchError):
    """The run is not a Satellite run and cannot be canceled."""

    def __init__(self, run_id: uuid.UUID, cause: BaseException | None = None) -> None:
        self.run_id = run_id
        super().__init__(
            f"Run not of type RHC Satellite and cannot be canceled: {run_id}", cause
        )


class RunCancelNotCancelableError(DispatchError):
    """The run has already finished."""

    def __init__(self, run_id: uuid.UUID) -> None:
        self.run_id = run_id
        super().__init__(f"Run has finished running and cannot be canceled: {run_id}")