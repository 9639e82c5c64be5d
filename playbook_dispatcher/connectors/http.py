"""Minimal HTTP transport abstraction used by the service connectors."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import requests

HEADER_REQUEST_ID = "x-rh-insights-request-id"
HEADER_IDENTITY = "x-rh-identity"


def _lookup(headers: dict[str, str], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return ""


@dataclass
class HttpRequest:
    """An outgoing HTTP request."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    def header(self, name: str) -> str:
        """Value of a header, looked up case-insensitively; empty if absent."""
        return _lookup(self.headers, name)


@dataclass
class HttpResponse:
    """A received HTTP response."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> str:
        """Value of a header, looked up case-insensitively; empty if absent."""
        return _lookup(self.headers, name)

    @property
    def content_type(self) -> str:
        return self.header("content-type")

    def json_object(self) -> dict[str, Any] | None:
        """The body as a JSON object, or None if it is not one."""
        content_type = self.content_type
        if content_type and "json" not in content_type:
            return None
        try:
            parsed = json.loads(self.body)
        except (ValueError, TypeError):
            return None
        return parsed if isinstance(parsed, dict) else None


class HttpRequestDoer(ABC):
    """Anything that can perform an HttpRequest."""

    @abstractmethod
    def send(self, request: HttpRequest) -> HttpResponse:
        """Perform the request and return the response."""


class RequestsDoer(HttpRequestDoer):
    """HttpRequestDoer backed by the requests library."""

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout if timeout else None

    def send(self, request: HttpRequest) -> HttpResponse:
        response = requests.request(
            request.method,
            request.url,
            headers=request.headers,
            data=request.body,
            timeout=self.timeout,
        )
        return HttpResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )


class UnexpectedResponseError(Exception):
    """A service answered with a status code or content type we cannot handle."""

    def __init__(self, response: HttpResponse) -> None:
        self.response = response
        super().__init__(
            f'unexpected status code "{response.status_code}" '
            f'or content type "{response.content_type}"'
        )