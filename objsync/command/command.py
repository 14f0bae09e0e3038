"""
REST commands against the object store.

A RestCommand is one logical request: method, path relative to the server
URL, optional JSON body and session token. It knows how to turn itself into
an HttpRequest and how to classify the response:

    2xx, JSON body        -> result
    2xx..5xx, bad JSON    -> transient CONNECTION_FAILED
    4xx                   -> permanent (server code, server message)
    5xx                   -> transient (server code, server message)
    anything else         -> permanent OTHER_CAUSE

Invariants:
    - Commands are immutable once built
    - GET and DELETE never carry a body on the wire; a body is sent as POST
      with a ``_method`` override instead
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin, urlparse

from ..config import RetryPolicy
from ..errors import CommandError, ErrorCode
from .cancellation import CancellationToken
from .http import JSON_CONTENT_TYPE, HttpRequest, HttpResponse

if TYPE_CHECKING:
    from ..model.state import ObjectState
    from ..ops.operation_set import OperationSet

HEADER_APPLICATION_ID = "X-Parse-Application-Id"
HEADER_CLIENT_KEY = "X-Parse-Client-Key"
HEADER_INSTALLATION_ID = "X-Parse-Installation-Id"
HEADER_SESSION_TOKEN = "X-Parse-Session-Token"
PARAMETER_METHOD_OVERRIDE = "_method"

METHOD_GET = "GET"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_DELETE = "DELETE"


@dataclass(frozen=True)
class RestCommand:
    """One logical request.

    Attributes:
        method: HTTP method
        path: Path relative to the server URL (e.g. ``classes/GameScore``)
        body: JSON body, or None
        session_token: Session credential, or None
        retry_policy: Retry budget (None uses the executor default)
        cancellation: Cancellation token (None means not cancellable)
    """

    method: str
    path: str
    body: dict[str, Any] | None = None
    session_token: str | None = None
    retry_policy: RetryPolicy | None = None
    cancellation: CancellationToken | None = field(default=None, compare=False)

    # -- factories ------------------------------------------------------

    @classmethod
    def save_object(
        cls,
        state: ObjectState,
        operations: OperationSet,
        encoder: Any,
        session_token: str | None = None,
    ) -> RestCommand:
        """Create (POST) or update (PUT) an object with pending operations."""
        body = operations.encode(encoder)
        if state.object_id is None:
            return cls(METHOD_POST, f"classes/{state.class_name}", body, session_token)
        return cls(
            METHOD_PUT,
            f"classes/{state.class_name}/{state.object_id}",
            body,
            session_token,
        )

    @classmethod
    def delete_object(cls, state: ObjectState, session_token: str | None = None) -> RestCommand:
        return cls(
            METHOD_DELETE,
            f"classes/{state.class_name}/{state.object_id}",
            None,
            session_token,
        )

    @classmethod
    def fetch_object(cls, state: ObjectState, session_token: str | None = None) -> RestCommand:
        return cls(
            METHOD_GET,
            f"classes/{state.class_name}/{state.object_id}",
            None,
            session_token,
        )

    @classmethod
    def batch(
        cls,
        commands: list[RestCommand],
        server_url: str,
        session_token: str | None = None,
    ) -> RestCommand:
        """Bundle ``commands`` into one ``batch`` request."""
        requests = [command.to_batch_entry(server_url) for command in commands]
        return cls(METHOD_POST, "batch", {"requests": requests}, session_token)

    # -- wire -----------------------------------------------------------

    def with_cancellation(self, token: CancellationToken | None) -> RestCommand:
        return RestCommand(
            self.method,
            self.path,
            self.body,
            self.session_token,
            self.retry_policy,
            token,
        )

    def to_batch_entry(self, server_url: str) -> dict[str, Any]:
        """Entry for a batch body; ``path`` is the absolute URL path."""
        entry: dict[str, Any] = {
            "method": self.method,
            "path": urlparse(urljoin(server_url, self.path)).path,
        }
        if self.body is not None:
            entry["body"] = self.body
        return entry

    def build_request(
        self,
        server_url: str,
        application_id: str,
        client_key: str | None = None,
        installation_id: str | None = None,
    ) -> HttpRequest:
        method = self.method
        body = self.body
        if body is not None and method in (METHOD_GET, METHOD_DELETE):
            body = dict(body)
            body[PARAMETER_METHOD_OVERRIDE] = method
            method = METHOD_POST

        headers = {HEADER_APPLICATION_ID: application_id}
        if client_key is not None:
            headers[HEADER_CLIENT_KEY] = client_key
        if installation_id is not None:
            headers[HEADER_INSTALLATION_ID] = installation_id
        if self.session_token is not None:
            headers[HEADER_SESSION_TOKEN] = self.session_token

        content = None
        if body is not None:
            headers["Content-Type"] = JSON_CONTENT_TYPE
            content = json.dumps(body, separators=(",", ":")).encode("utf-8")

        return HttpRequest(method, urljoin(server_url, self.path), headers, content)

    @staticmethod
    def parse_response(response: HttpResponse) -> Any:
        """Classify ``response``.

        Returns:
            Decoded JSON result of a 2xx response

        Raises:
            CommandError: Transient or permanent failure
        """
        status = response.status_code
        if not 200 <= status < 600:
            raise CommandError.permanent_failure(
                ErrorCode.OTHER_CAUSE, response.body.decode("utf-8", "replace")
            )

        try:
            payload = json.loads(response.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            raise CommandError.temporary_failure(
                ErrorCode.CONNECTION_FAILED, "bad json response"
            ) from None

        if 400 <= status < 500:
            code, message = error_fields(payload)
            raise CommandError.permanent_failure(code, message)
        if status >= 500:
            code, message = error_fields(payload)
            raise CommandError.temporary_failure(code, message)
        if status >= 300:
            raise CommandError.permanent_failure(
                ErrorCode.OTHER_CAUSE, response.body.decode("utf-8", "replace")
            )
        return payload

    def __str__(self) -> str:
        return f"{self.method} {self.path}"


def error_fields(payload: Any) -> tuple[int, str]:
    """Read ``(code, message)`` from a server error body.

    A missing code reads as 0. A body that is not an object, or a code that
    is not an integer, reads as OTHER_CAUSE.
    """
    if not isinstance(payload, dict):
        return ErrorCode.OTHER_CAUSE, f"Invalid error body: {payload!r}"
    message = str(payload.get("error") or "")
    code = payload.get("code") or 0
    if isinstance(code, bool):
        return ErrorCode.OTHER_CAUSE, message
    try:
        return int(code), message
    except (TypeError, ValueError):
        return ErrorCode.OTHER_CAUSE, message
