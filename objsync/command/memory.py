"""
In-memory HTTP client for testing.

Responses are scripted up front (FIFO) or produced by a handler function;
every request is recorded for assertions.

Invariants:
    - Safe to call from executor worker threads
    - Scripted exceptions are raised from execute, like transport failures

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the HttpClient protocol
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from typing import Any

from .http import HttpRequest, HttpResponse


class InMemoryHttpClient:
    """Scripted implementation of HttpClient.

    Example:
        >>> client = InMemoryHttpClient()
        >>> client.enqueue_json(200, {"objectId": "abc"})
        >>> client.execute(HttpRequest("POST", "http://x/classes/A")).status_code
        200
    """

    def __init__(self, handler: Callable[[HttpRequest], HttpResponse] | None = None) -> None:
        self._handler = handler
        self._script: deque[HttpResponse | BaseException] = deque()
        self._lock = threading.Lock()
        self.requests: list[HttpRequest] = []
        self.closed = False

    def enqueue(self, response: HttpResponse | BaseException) -> None:
        """Queue a response (or an exception to raise) for the next call."""
        with self._lock:
            self._script.append(response)

    def enqueue_json(self, status_code: int, payload: Any) -> None:
        self.enqueue(HttpResponse.from_json(status_code, payload))

    def execute(self, request: HttpRequest) -> HttpResponse:
        with self._lock:
            self.requests.append(request)
            scripted = self._script.popleft() if self._script else None

        if scripted is None:
            if self._handler is None:
                raise AssertionError(f"Unexpected request: {request.method} {request.url}")
            return self._handler(request)
        if isinstance(scripted, BaseException):
            raise scripted
        return scripted

    @property
    def send_count(self) -> int:
        with self._lock:
            return len(self.requests)

    def close(self) -> None:
        self.closed = True
