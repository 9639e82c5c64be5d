import uuid

import pytest

from playbook_dispatcher.errors import (
    DispatchError,
    RecipientNotFoundError,
    RunCancelNotCancelableError,
    RunCancelTypeError,
    RunNotFoundError,
    RunOrgIdMismatchError,
)


@pytest.mark.parametrize(
    "cls, prefix",
    [
        (RecipientNotFoundError, "Recipient not found: "),
        (RunNotFoundError, "Run not found: "),
        (RunOrgIdMismatchError, "Invalid org_id for cancel request: "),
        (RunCancelTypeError, "Run not of type RHC Satellite and cannot be canceled: "),
        (RunCancelNotCancelableError, "Run has finished running and cannot be canceled: "),
    ],
)
def test_messages(cls, prefix):
    ident = uuid.uuid4()
    error = cls(ident)
    assert str(error) == prefix + str(ident)
    assert isinstance(error, DispatchError)


def test_recipient_attribute_and_cause():
    recipient = uuid.uuid4()
    cause = RuntimeError("boom")
    error = RecipientNotFoundError(recipient, cause)
    assert error.recipient == recipient
    assert error.cause is cause


def test_run_id_attribute():
    run_id = uuid.uuid4()
    assert RunNotFoundError(run_id).run_id == run_id
    assert RunCancelNotCancelableError(run_id).run_id == run_id
    assert RunOrgIdMismatchError(run_id).cause is None


def test_raised_and_caught_as_base():
    run_id = uuid.uuid4()
    with pytest.raises(DispatchError) as info:
        raise RunCancelTypeError(run_id)
    assert info.value.run_id == run_id