"""
Unit tests for BatchExecutor.

Tests cover:
- Chunking at the batch size cap
- One future per command, in input order
- Single command bypass
- Response length mismatch
- Per-entry errors and whole-exchange failures
- Cancellation
"""

import asyncio
from urllib.parse import urlparse

import pytest

from objsync.command.batch import BatchExecutor
from objsync.command.cancellation import CancellationToken
from objsync.command.command import RestCommand
from objsync.command.executor import RequestExecutor
from objsync.command.http import HttpResponse
from objsync.command.memory import InMemoryHttpClient
from objsync.config import Settings
from objsync.context import ClientContext
from objsync.errors import BatchProtocolError, CommandError, ErrorCode


async def no_sleep(delay):
    return None


def echo_batch(request):
    """Answer every batch entry with its own path."""
    entries = request.json()["requests"]
    return HttpResponse.from_json(200, [{"success": {"path": e["path"]}} for e in entries])


def make_commands(count):
    return [RestCommand("PUT", f"classes/GameScore/obj{i}", {"score": i}) for i in range(count)]


@pytest.fixture
def http():
    return InMemoryHttpClient(handler=echo_batch)


@pytest.fixture
def context(http):
    context = ClientContext.create(
        Settings(server_url="https://api.example.com/1/", application_id="app"),
        http_client=http,
    )
    yield context
    context.close()


@pytest.fixture
def batch_executor(context):
    return BatchExecutor(context, RequestExecutor(context, sleep=no_sleep), max_batch_size=50)


class TestBatching:
    """Tests for chunking and result fan-out."""

    @pytest.mark.asyncio
    async def test_chunks_at_cap(self, batch_executor, http):
        """120 commands with a cap of 50 take three exchanges."""
        results = await batch_executor.execute_all(make_commands(120))

        sizes = sorted(len(request.json()["requests"]) for request in http.requests)
        assert sizes == [20, 50, 50]
        assert all(urlparse(request.url).path == "/1/batch" for request in http.requests)
        assert results == [{"path": f"/1/classes/GameScore/obj{i}"} for i in range(120)]

    @pytest.mark.asyncio
    async def test_batch_entries(self, batch_executor, http):
        await batch_executor.execute_all(make_commands(2), session_token="r:token")

        request = http.requests[0]
        assert request.headers["X-Parse-Session-Token"] == "r:token"
        assert request.json()["requests"][1] == {
            "method": "PUT",
            "path": "/1/classes/GameScore/obj1",
            "body": {"score": 1},
        }

    @pytest.mark.asyncio
    async def test_single_command_bypasses_batch(self, batch_executor, http):
        http.enqueue_json(200, {"updatedAt": "2024-01-01T00:00:00.000Z"})

        results = await batch_executor.execute_all(make_commands(1))

        assert http.send_count == 1
        assert http.requests[0].url == "https://api.example.com/1/classes/GameScore/obj0"
        assert http.requests[0].method == "PUT"
        assert results == [{"updatedAt": "2024-01-01T00:00:00.000Z"}]

    @pytest.mark.asyncio
    async def test_no_commands(self, batch_executor, http):
        assert batch_executor.execute_batch([]) == []
        assert http.send_count == 0

    def test_default_cap_from_settings(self, context):
        executor = BatchExecutor(context, RequestExecutor(context))
        assert executor.max_batch_size == 50


class TestBatchFailures:
    """Tests for failure fan-out."""

    @pytest.mark.asyncio
    async def test_length_mismatch_fails_every_future(self, batch_executor, http):
        http.enqueue_json(200, [{"success": {}}, {"success": {}}])

        results = await batch_executor.execute_all(make_commands(3))

        assert len(results) == 3
        for result in results:
            assert isinstance(result, BatchProtocolError)
            assert result.expected == 3
            assert result.actual == 2

    @pytest.mark.asyncio
    async def test_entry_error_fails_only_that_command(self, batch_executor, http):
        http.enqueue_json(200, [
            {"success": {"objectId": "a"}},
            {"error": {"code": 101, "error": "Object not found."}},
        ])

        results = await batch_executor.execute_all(make_commands(2))

        assert results[0] == {"objectId": "a"}
        assert isinstance(results[1], CommandError)
        assert results[1].error_code == 101
        assert results[1].permanent

    @pytest.mark.asyncio
    async def test_malformed_entry_error_settles_every_future(self, batch_executor, http):
        http.enqueue_json(200, [
            {"error": "boom"},
            {"error": {"code": "not-a-number", "error": "odd"}},
            {"success": {"objectId": "c"}},
        ])

        results = await asyncio.wait_for(batch_executor.execute_all(make_commands(3)), 2)

        assert isinstance(results[0], CommandError)
        assert results[0].error_code == ErrorCode.OTHER_CAUSE
        assert results[0].permanent
        assert isinstance(results[1], CommandError)
        assert results[1].error_code == ErrorCode.OTHER_CAUSE
        assert results[1].message == "odd"
        assert results[2] == {"objectId": "c"}

    @pytest.mark.asyncio
    async def test_exchange_failure_fails_every_future(self, batch_executor, http):
        http.enqueue_json(400, {"code": 107, "error": "invalid JSON"})

        results = await batch_executor.execute_all(make_commands(3))

        assert all(isinstance(r, CommandError) and r.error_code == 107 for r in results)

    @pytest.mark.asyncio
    async def test_failing_chunk_leaves_other_chunks(self):
        def fail_first_chunk(request):
            entries = request.json()["requests"]
            if entries[0]["path"].endswith("obj0"):
                return HttpResponse.from_json(400, {"code": 107, "error": "invalid JSON"})
            return echo_batch(request)

        context = ClientContext.create(
            Settings(server_url="https://api.example.com/1/", application_id="app"),
            http_client=InMemoryHttpClient(handler=fail_first_chunk),
        )
        batch_executor = BatchExecutor(
            context, RequestExecutor(context, sleep=no_sleep), max_batch_size=2
        )

        try:
            results = await batch_executor.execute_all(make_commands(4))
        finally:
            context.close()

        assert isinstance(results[0], CommandError)
        assert isinstance(results[1], CommandError)
        assert results[2] == {"path": "/1/classes/GameScore/obj2"}
        assert results[3] == {"path": "/1/classes/GameScore/obj3"}

    @pytest.mark.asyncio
    async def test_cancelled_batch_cancels_futures(self, batch_executor, http):
        token = CancellationToken()
        token.cancel()

        futures = batch_executor.execute_batch(make_commands(3), cancellation=token)
        await asyncio.gather(*futures, return_exceptions=True)

        assert all(future.cancelled() for future in futures)
        assert http.send_count == 0
