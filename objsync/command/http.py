"""
HTTP execution primitive.

The command layer talks to the network through the HttpClient protocol:
one blocking ``execute(request) -> response`` call, always run on a worker
thread by the request executor.

Invariants:
    - execute never retries; retry policy lives in RequestExecutor
    - Transport failures raise (httpx.TransportError or OSError); any HTTP
      status, including 4xx/5xx, is returned as a response

How to change safely:
    - Protocol changes require updating HttpxClient and InMemoryHttpClient
"""

from __future__ import annotations

import json
import logging
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass
class HttpRequest:
    """One HTTP request.

    Attributes:
        method: GET, POST, PUT or DELETE
        url: Absolute URL
        headers: Request headers
        body: Encoded body, or None
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    def json(self) -> Any:
        """Decoded JSON body (None when empty)."""
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))


@dataclass
class HttpResponse:
    """One HTTP response.

    Attributes:
        status_code: HTTP status
        body: Raw body
        headers: Response headers
        reason: Reason phrase
    """

    status_code: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    reason: str = ""

    @classmethod
    def from_json(cls, status_code: int, payload: Any) -> HttpResponse:
        return cls(
            status_code=status_code,
            body=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for blocking HTTP clients."""

    @abstractmethod
    def execute(self, request: HttpRequest) -> HttpResponse:
        """Send ``request`` and return the response.

        Raises:
            httpx.TransportError: On connection failure or timeout
        """
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class HttpxClient:
    """HttpClient backed by ``httpx.Client``.

    Args:
        timeout: Request timeout in seconds
        transport: Optional custom transport (e.g. httpx.MockTransport)
    """

    def __init__(self, timeout: float = 30.0, transport: httpx.BaseTransport | None = None) -> None:
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def execute(self, request: HttpRequest) -> HttpResponse:
        response = self._client.request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        )
        logger.debug(
            "HTTP exchange",
            extra={
                "method": request.method,
                "url": request.url,
                "status": response.status_code,
            },
        )
        return HttpResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
            reason=response.reason_phrase,
        )

    def close(self) -> None:
        self._client.close()
