import json
import uuid

import pytest

from playbook_dispatcher.connectors.cloud_connector import (
    HEADER_CLOUD_CONNECTOR_ORG_ID,
    HEADER_CLOUD_CONNECTOR_PSK,
    ConnectionStatus,
    HttpCloudConnectorClient,
    MockCloudConnectorClient,
    new_connector_client,
)
from playbook_dispatcher.connectors.http import (
    HEADER_REQUEST_ID,
    HttpRequestDoer,
    HttpResponse,
    RequestsDoer,
    UnexpectedResponseError,
)

ANSIBLE_DIRECTIVE = "playbook"
SAT_DIRECTIVE = "playbook-sat"
MESSAGE_ID = "871e31aa-7d41-43e3-8ef7-05706a0ee34a"

CFG = {
    "cloud.connector.scheme": "http",
    "cloud.connector.host": "localhost",
    "cloud.connector.port": 8080,
    "cloud.connector.client.id": "playbook-dispatcher",
    "cloud.connector.psk": "secret",
    "cloud.connector.timeout": 10,
}


class RecordingDoer(HttpRequestDoer):
    def __init__(self, status_code, body):
        self.status_code = status_code
        self.body = body.encode("utf-8")
        self.request = None

    def send(self, request):
        self.request = request
        return HttpResponse(self.status_code, {"Content-Type": "application/json"}, self.body)


def ansible_metadata(correlation_id):
    return {
        "crc_dispatcher_correlation_id": str(correlation_id),
        "return_url": "http://example.com/return",
        "response_interval": "60",
    }


def make_client(status_code, body):
    doer = RecordingDoer(status_code, body)
    return HttpCloudConnectorClient(CFG, doer), doer


def test_interprets_response():
    client, _ = make_client(201, f'{{"id": "{MESSAGE_ID}"}}')
    result, not_found = client.send_cloud_connector_request(
        "1234", uuid.uuid4(), "http://example.com", ANSIBLE_DIRECTIVE, ansible_metadata(uuid.uuid4())
    )
    assert not_found is False
    assert result == MESSAGE_ID


def test_interprets_bad_request():
    client, _ = make_client(400, f'{{"id": "{MESSAGE_ID}"}}')
    with pytest.raises(UnexpectedResponseError) as info:
        client.send_cloud_connector_request(
            "1234", uuid.uuid4(), "http://example.com", ANSIBLE_DIRECTIVE, ansible_metadata(uuid.uuid4())
        )
    assert 'unexpected status code "400"' in str(info.value)


def test_interprets_no_connection():
    client, _ = make_client(404, "{}")
    result, not_found = client.send_cloud_connector_request(
        "1234", uuid.uuid4(), "http://example.com", ANSIBLE_DIRECTIVE, ansible_metadata(uuid.uuid4())
    )
    assert result is None
    assert not_found is True


def test_constructs_correct_request():
    client, doer = make_client(201, f'{{"id": "{MESSAGE_ID}"}}')
    correlation_id = uuid.uuid4()
    recipient = uuid.uuid4()
    url = "http://example.com"

    result, not_found = client.send_cloud_connector_request(
        "1234", recipient, url, ANSIBLE_DIRECTIVE, ansible_metadata(correlation_id)
    )
    assert not_found is False
    assert result == MESSAGE_ID

    parsed = json.loads(doer.request.body)
    assert parsed["directive"] == "playbook"
    assert parsed["payload"] == url
    assert str(recipient) in doer.request.url
    assert doer.request.header(HEADER_CLOUD_CONNECTOR_ORG_ID) == "1234"

    metadata = parsed["metadata"]
    assert metadata["crc_dispatcher_correlation_id"] == str(correlation_id)
    assert metadata["return_url"] == "http://example.com/return"
    assert metadata["response_interval"] == "60"


def test_constructs_correct_satellite_request():
    client, doer = make_client(201, f'{{"id": "{MESSAGE_ID}"}}')
    url = "http://example.com"
    correlation_id = uuid.uuid4()
    sat_metadata = {
        "operation": "run",
        "correlation_id": str(correlation_id),
        "playbook_run_name": "test-playbook",
        "playbook_run_url": "http://example.com",
        "sat_id": "16372e6f-1c18-4cdb-b780-50ab4b88e74b",
        "sat_org_id": "123",
        "initiator_user_id": "test-user",
        "hosts": "16372e6f-1c18-4cdb-b780-50ab4b88e74b,baf2bb2f-06a3-42cc-ae7b-68ccc8e2a344",
        "return_url": "http://example.com/return",
        "response_interval": "60",
    }
    recipient = uuid.uuid4()

    result, not_found = client.send_cloud_connector_request(
        "1234", recipient, url, SAT_DIRECTIVE, sat_metadata
    )
    assert not_found is False
    assert result == MESSAGE_ID

    parsed = json.loads(doer.request.body)
    assert parsed["directive"] == "playbook-sat"
    assert parsed["payload"] == url
    assert str(recipient) in doer.request.url
    assert doer.request.header(HEADER_CLOUD_CONNECTOR_ORG_ID) == "1234"
    assert parsed["metadata"] == sat_metadata


def test_constructs_correct_satellite_cancel_request():
    client, doer = make_client(201, f'{{"id": "{MESSAGE_ID}"}}')
    correlation_id = uuid.uuid4()
    cancel_metadata = {
        "operation": "cancel",
        "correlation_id": str(correlation_id),
        "initiator_user_id": "test-user",
    }
    recipient = uuid.uuid4()

    result, not_found = client.send_cloud_connector_request(
        "1234", recipient, None, SAT_DIRECTIVE, cancel_metadata
    )
    assert not_found is False
    assert result == MESSAGE_ID

    parsed = json.loads(doer.request.body)
    assert len(parsed) == 2
    assert parsed["directive"] == "playbook-sat"
    assert str(recipient) in doer.request.url
    assert doer.request.header(HEADER_CLOUD_CONNECTOR_ORG_ID) == "1234"
    assert parsed["metadata"]["operation"] == "cancel"
    assert parsed["metadata"]["correlation_id"] == str(correlation_id)
    assert parsed["metadata"]["initiator_user_id"] == "test-user"


def test_forwards_request_id_header():
    request_id = "e6b06142-9589-4213-9a5e-1e2f513c448b"
    client, doer = make_client(201, f'{{"id": "{MESSAGE_ID}"}}')
    result, not_found = client.send_cloud_connector_request(
        "1234",
        uuid.uuid4(),
        "http://example.com",
        ANSIBLE_DIRECTIVE,
        ansible_metadata(uuid.uuid4()),
        request_id=request_id,
    )
    assert not_found is False
    assert result == MESSAGE_ID
    assert doer.request.header(HEADER_REQUEST_ID) == request_id


def test_does_not_escape_ampersands():
    client, doer = make_client(201, f'{{"id": "{MESSAGE_ID}"}}')
    url = "http://example.com/?field1=test&field2=test2&field3"
    result, _ = client.send_cloud_connector_request(
        "1234", uuid.uuid4(), url, ANSIBLE_DIRECTIVE, ansible_metadata(uuid.uuid4())
    )
    assert result == MESSAGE_ID
    assert b'"payload":"http://example.com/?field1=test&field2=test2&field3"' in doer.request.body


@pytest.mark.parametrize(
    "status, expected",
    [
        ("connected", ConnectionStatus.CONNECTED),
        ("disconnected", ConnectionStatus.DISCONNECTED),
    ],
)
def test_connection_status_interprets_response(status, expected):
    body = (
        '{"org_id": "1234", "internal": {"org_id": "1234"}, "client_id": "1234",'
        ' "canonical_facts": null, "dispatchers": null, "tags": null,'
        f' "status": "{status}"}}'
    )
    client, _ = make_client(200, body)
    result = client.get_connection_status("5318290", "be175f04-4634-49f2-a292-b4ad7107af78")
    assert result == expected


def test_connection_status_constructs_correct_request():
    client, doer = make_client(200, '{"status": "connected"}')
    client.get_connection_status("5318290", "be175f04-4634-49f2-a292-b4ad7107af78")
    assert doer.request.method == "GET"
    assert "be175f04-4634-49f2-a292-b4ad7107af78" in doer.request.url
    assert doer.request.header(HEADER_CLOUD_CONNECTOR_ORG_ID) == "5318290"
    assert doer.request.header(HEADER_CLOUD_CONNECTOR_PSK) == CFG["cloud.connector.psk"]


def test_connection_status_unexpected_status():
    client, _ = make_client(500, "{}")
    with pytest.raises(UnexpectedResponseError) as info:
        client.get_connection_status("5318290", "be175f04-4634-49f2-a292-b4ad7107af78")
    assert 'unexpected status code "500"' in str(info.value)


def test_mock_reports_not_found():
    client = MockCloudConnectorClient()
    result = client.send_cloud_connector_request(
        "1", uuid.UUID("b5fbb740-5590-45a4-8240-89192dc49199"), "u", "d", {}
    )
    assert result == (None, True)


def test_mock_reports_timeout():
    client = MockCloudConnectorClient()
    with pytest.raises(TimeoutError, match="timeout"):
        client.send_cloud_connector_request(
            "1", uuid.UUID("b31955fb-3064-4f56-ae44-a1c488a28587"), "u", "d", {}
        )


def test_mock_checks_sat_id():
    client = MockCloudConnectorClient()
    recipient = uuid.UUID("9200e4a3-c97c-4021-9856-82fa4673e8d2")
    with pytest.raises(ValueError, match="sat_id mismatch"):
        client.send_cloud_connector_request("1", recipient, "u", "d", {"sat_id": "other"})
    message_id, not_found = client.send_cloud_connector_request(
        "1", recipient, "u", "d", {"sat_id": "9274c274-a258-5d00-91fe-dbe0f7849cef"}
    )
    assert not_found is False
    assert uuid.UUID(message_id).version == 4


def test_mock_connection_status():
    client = MockCloudConnectorClient()
    assert (
        client.get_connection_status("5318290", "411cb203-f8c9-480e-ba20-1efbc74e3a33")
        == ConnectionStatus.DISCONNECTED
    )
    assert (
        client.get_connection_status("5318290", "be175f04-4634-49f2-a292-b4ad7107af78")
        == ConnectionStatus.CONNECTED
    )


def test_new_connector_client_uses_config():
    client = new_connector_client(CFG)
    assert client.server == "http://localhost:8080/api/cloud-connector/"
    assert isinstance(client.doer, RequestsDoer)
    assert client.doer.timeout == CFG["cloud.connector.timeout"]