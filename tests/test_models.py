import uuid

import pytest

from playbook_dispatcher.models import (
    CancelInput,
    RunHostsInput,
    RunInput,
    RunStatus,
    new_host_runs,
    new_run,
)


def make_input(**overrides):
    values = dict(
        recipient=uuid.uuid4(),
        org_id="5318290",
        url="http://example.com",
        labels={"foo": "bar"},
        timeout=3600,
        web_console_url="http://example.com/console",
        name="test-playbook",
        principal="test-user",
    )
    values.update(overrides)
    return RunInput(**values)


def test_run_status_values():
    run = new_run(make_input(), uuid.uuid4(), True, "svc")
    hosts = new_host_runs([RunHostsInput(ansible_host="localhost")], run.id)
    assert run.status.value == "running"
    assert hosts[0].status.value == "running"
    assert RunStatus("timeout") is RunStatus.TIMEOUT


def test_new_run_copies_input():
    run_input = make_input()
    correlation_id = uuid.uuid4()
    run = new_run(run_input, correlation_id, True, "remediations")

    assert run.org_id == run_input.org_id
    assert run.correlation_id == correlation_id
    assert run.url == run_input.url
    assert run.recipient == run_input.recipient
    assert run.labels == run_input.labels
    assert run.response_full is True
    assert run.service == "remediations"
    assert run.timeout == run_input.timeout
    assert run.playbook_run_url == run_input.web_console_url
    assert run.playbook_name == run_input.name
    assert run.principal == run_input.principal
    assert run.status is RunStatus.RUNNING


def test_new_run_generates_unique_ids():
    run_input = make_input()
    first = new_run(run_input, uuid.uuid4(), False, "svc")
    second = new_run(run_input, uuid.uuid4(), False, "svc")
    assert first.id != second.id
    assert first.response_full is False


def test_new_run_satellite_fields():
    sat_id = uuid.uuid4()
    run = new_run(make_input(sat_id=sat_id, sat_org_id="1"), uuid.uuid4(), False, "svc")
    assert run.sat_id == sat_id
    assert run.sat_org_id == "1"


def test_new_run_requires_defaults():
    with pytest.raises(ValueError):
        new_run(make_input(timeout=None), uuid.uuid4(), True, "svc")
    with pytest.raises(ValueError):
        new_run(make_input(web_console_url=None), uuid.uuid4(), True, "svc")


def test_new_host_runs_prefers_ansible_host():
    run_id = uuid.uuid4()
    inventory_id = uuid.uuid4()
    hosts = new_host_runs(
        [
            RunHostsInput(ansible_host="localhost", inventory_id=inventory_id),
            RunHostsInput(inventory_id=inventory_id),
        ],
        run_id,
    )
    assert [h.host for h in hosts] == ["localhost", str(inventory_id)]
    assert all(h.run_id == run_id for h in hosts)
    assert all(h.status is RunStatus.RUNNING for h in hosts)
    assert all(h.inventory_id == inventory_id for h in hosts)
    assert hosts[0].id != hosts[1].id


def test_new_host_runs_empty():
    assert new_host_runs([], uuid.uuid4()) == []


def test_new_host_runs_rejects_unnamed_host():
    with pytest.raises(ValueError):
        new_host_runs([RunHostsInput()], uuid.uuid4())


def test_cancel_input_fields():
    run_id = uuid.uuid4()
    cancel = CancelInput(run_id=run_id, org_id="24601", principal="jharting")
    assert cancel.run_id == run_id
    assert cancel.org_id == "24601"