"""
Integration test fixtures.

FakeServer answers object and batch requests in memory so the whole client
stack (controller, executors, stores) runs without a network.
"""

import itertools
from urllib.parse import urlparse

import pytest

from objsync.client import SyncClient
from objsync.command.http import HttpRequest, HttpResponse
from objsync.command.memory import InMemoryHttpClient
from objsync.config import Settings
from objsync.registry import ObjectTypeRegistry
from objsync.store.current import CurrentObjectStore
from objsync.store.memory import InMemoryObjectStore

SERVER_URL = "https://api.example.com/1/"
TIMESTAMP = "2024-01-01T00:00:00.000Z"


class ObjectNotFound(Exception):
    pass


class FakeServer:
    """In-memory object store speaking the REST protocol."""

    def __init__(self):
        self.objects = {}
        self._ids = itertools.count(1)

    def __call__(self, request: HttpRequest) -> HttpResponse:
        path = urlparse(request.url).path
        body = request.json()

        if path.endswith("/batch"):
            results = []
            for entry in body["requests"]:
                try:
                    results.append({"success": self.handle(entry["method"], entry["path"], entry.get("body"))})
                except ObjectNotFound:
                    results.append({"error": {"code": 101, "error": "Object not found."}})
            return HttpResponse.from_json(200, results)

        try:
            return HttpResponse.from_json(200, self.handle(request.method, path, body))
        except ObjectNotFound:
            return HttpResponse.from_json(404, {"code": 101, "error": "Object not found."})

    def handle(self, method, path, body):
        parts = path.strip("/").split("/")
        class_name = parts[2]
        object_id = parts[3] if len(parts) > 3 else None

        if method == "POST":
            object_id = f"obj{next(self._ids)}"
            self.objects[(class_name, object_id)] = self._apply({}, body or {})
            return {"objectId": object_id, "createdAt": TIMESTAMP}

        key = (class_name, object_id)
        if key not in self.objects:
            raise ObjectNotFound(key)
        if method == "PUT":
            self.objects[key] = self._apply(self.objects[key], body or {})
            return {"updatedAt": TIMESTAMP}
        if method == "GET":
            return {"objectId": object_id, "createdAt": TIMESTAMP, **self.objects[key]}
        if method == "DELETE":
            del self.objects[key]
            return {}
        raise ValueError(f"Unexpected method {method}")

    @staticmethod
    def _apply(data, body):
        data = dict(data)
        for field, value in body.items():
            if not (isinstance(value, dict) and "__op" in value):
                data[field] = value
            elif value["__op"] == "Delete":
                data.pop(field, None)
            elif value["__op"] == "Increment":
                data[field] = data.get(field, 0) + value["amount"]
            elif value["__op"] == "Add":
                data[field] = list(data.get(field, [])) + value["objects"]
            elif value["__op"] == "AddUnique":
                data[field] = list(data.get(field, []))
                data[field] += [o for o in value["objects"] if o not in data[field]]
            elif value["__op"] == "Remove":
                data[field] = [o for o in data.get(field, []) if o not in value["objects"]]
        return data


class RecordingSleep:
    """Awaitable sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def http(server):
    return InMemoryHttpClient(handler=server)


@pytest.fixture
def registry():
    return ObjectTypeRegistry()


@pytest.fixture
def user_store(registry):
    return InMemoryObjectStore("_User", registry)


@pytest.fixture
def installation_store(registry):
    return InMemoryObjectStore("_Installation", registry)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def client(http, registry, user_store, installation_store, sleep, tmp_path):
    """Client wired to the fake server and in-memory stores."""
    settings = Settings(
        server_url=SERVER_URL,
        application_id="app",
        installation_id="inst-1",
        data_dir=str(tmp_path),
    )
    client = SyncClient(
        settings,
        http_client=http,
        type_registry=registry,
        sleep=sleep,
        current_user_store=CurrentObjectStore(user_store),
        current_installation_store=CurrentObjectStore(installation_store),
    )
    yield client
    client.context.close()
