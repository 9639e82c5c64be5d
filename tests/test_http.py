from unittest import mock

import pytest

from playbook_dispatcher.connectors.http import (
    HttpRequest,
    HttpRequestDoer,
    HttpResponse,
    RequestsDoer,
    UnexpectedResponseError,
)


def test_response_header_lookup_is_case_insensitive():
    response = HttpResponse(200, {"Content-Type": "application/json"}, b"{}")
    assert response.header("content-type") == "application/json"
    assert response.header("X-Missing") == ""


def test_request_header_lookup_is_case_insensitive():
    request = HttpRequest("GET", "http://localhost/", {"X-Rh-Identity": "abc"})
    assert request.header("x-rh-identity") == "abc"


def test_json_object_parses_json_body():
    response = HttpResponse(201, {"Content-Type": "application/json"}, b'{"id": "1"}')
    assert response.json_object() == {"id": "1"}


def test_json_object_rejects_non_json_content_type():
    response = HttpResponse(200, {"Content-Type": "text/plain"}, b'{"id": "1"}')
    assert response.json_object() is None


def test_json_object_rejects_invalid_or_non_object_body():
    assert HttpResponse(200, {}, b"not json").json_object() is None
    assert HttpResponse(200, {}, b"[1, 2]").json_object() is None


def test_unexpected_response_message():
    response = HttpResponse(400, {"Content-Type": "application/json"}, b"{}")
    error = UnexpectedResponseError(response)
    assert 'unexpected status code "400"' in str(error)
    assert "application/json" in str(error)
    assert error.response is response


def test_requests_doer_sends_request():
    fake = mock.Mock(status_code=201, headers={"Content-Type": "application/json"}, content=b"{}")
    with mock.patch("requests.request", return_value=fake) as request_fn:
        doer = RequestsDoer(timeout=5)
        request = HttpRequest("POST", "http://localhost/x", {"A": "b"}, b"body")
        response = doer.send(request)

    request_fn.assert_called_once_with(
        "POST", "http://localhost/x", headers={"A": "b"}, data=b"body", timeout=5
    )
    assert response.status_code == 201
    assert response.body == b"{}"
    assert response.header("content-type") == "application/json"


def test_requests_doer_zero_timeout_means_none():
    assert RequestsDoer(timeout=0).timeout is None


def test_doer_is_abstract():
    with pytest.raises(TypeError):
        HttpRequestDoer()