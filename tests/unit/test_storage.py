"""
Unit tests for key/value storage and the legacy file store.

Tests cover:
- FileStorage read/write/delete and key sanitizing
- FileObjectStore snapshot persistence
- CurrentObjectStore.from_context migrating a legacy file into SQLite
"""

import json
import tempfile
from pathlib import Path

import pytest

from objsync.command.memory import InMemoryHttpClient
from objsync.config import Settings
from objsync.context import ClientContext
from objsync.model.state import ObjectState
from objsync.object import SyncObject
from objsync.registry import ObjectTypeRegistry
from objsync.store.current import CurrentObjectStore
from objsync.store.file_store import FileObjectStore
from objsync.store.storage import FileStorage, InMemoryStorage


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestFileStorage:
    """Tests for FileStorage."""

    def test_write_and_read(self, temp_dir):
        storage = FileStorage(temp_dir / "nested")

        storage.write_object("currentUser", b"{}")

        assert storage.read_object("currentUser") == b"{}"
        assert (temp_dir / "nested" / "currentUser").exists()

    def test_overwrite_leaves_no_temp_files(self, temp_dir):
        storage = FileStorage(temp_dir)
        storage.write_object("currentUser", b"1")
        storage.write_object("currentUser", b"2")

        assert storage.read_object("currentUser") == b"2"
        assert [p.name for p in temp_dir.iterdir()] == ["currentUser"]

    def test_missing_key(self, temp_dir):
        storage = FileStorage(temp_dir)

        assert storage.read_object("missing") is None
        storage.delete("missing")

    def test_key_is_sanitized(self, temp_dir):
        storage = FileStorage(temp_dir / "data")
        storage.write_object("pins/current user", b"x")

        assert (temp_dir / "data" / "pinscurrentuser").exists()
        assert storage.read_object("pins/current user") == b"x"

    @pytest.mark.parametrize("key", ["..", "../escape", "", "///"])
    def test_invalid_key(self, temp_dir, key):
        with pytest.raises(ValueError):
            FileStorage(temp_dir).write_object(key, b"x")


class TestInMemoryStorage:
    """Tests for InMemoryStorage."""

    def test_round_trip(self):
        storage = InMemoryStorage()
        storage.write_object("a", b"1")

        assert storage.read_object("a") == b"1"
        assert storage.keys() == ["a"]

        storage.delete("a")
        assert storage.read_object("a") is None


class TestFileObjectStore:
    """Tests for the legacy single-file store."""

    @pytest.fixture
    def storage(self):
        return InMemoryStorage()

    @pytest.fixture
    def store(self, storage):
        return FileObjectStore(storage, "currentUser", "_User", ObjectTypeRegistry())

    @pytest.mark.asyncio
    async def test_set_and_get(self, store, storage):
        await store.set(SyncObject.from_state(
            ObjectState(class_name="_User", object_id="u1", data={"username": "alice"})
        ))

        written = json.loads(storage.read_object("currentUser"))
        assert written["classname"] == "_User"
        assert written["data"]["objectId"] == "u1"

        loaded = await store.get()
        assert loaded.object_id == "u1"
        assert loaded.get("username") == "alice"

    @pytest.mark.asyncio
    async def test_reads_older_layout(self, store, storage):
        storage.write_object("currentUser", json.dumps({
            "id": "u1",
            "created_at": "2015-06-01T00:00:00.000Z",
            "data": {"username": "alice"},
        }).encode("utf-8"))

        loaded = await store.get()

        assert loaded.class_name == "_User"
        assert loaded.object_id == "u1"
        assert loaded.get("username") == "alice"

    @pytest.mark.asyncio
    async def test_exists_and_delete(self, store):
        assert await store.exists() is False

        await store.set(SyncObject("_User", "u1"))
        assert await store.exists() is True

        await store.delete()
        assert await store.exists() is False


class TestCurrentObjectStoreFromContext:
    """CurrentObjectStore wired to the configured data directory."""

    @pytest.mark.asyncio
    async def test_migrates_legacy_file_into_sqlite(self, temp_dir):
        context = ClientContext.create(
            Settings(data_dir=str(temp_dir)), http_client=InMemoryHttpClient()
        )
        try:
            FileStorage(temp_dir).write_object("currentUser", json.dumps({
                "classname": "_User",
                "data": {"objectId": "u1", "username": "alice"},
            }).encode("utf-8"))

            store = CurrentObjectStore.from_context(context, "currentUser", "_User")
            migrated = await store.get()

            assert migrated.object_id == "u1"
            assert not (temp_dir / "currentUser").exists()
            assert (temp_dir / "objsync.db").exists()

            reopened = CurrentObjectStore.from_context(context, "currentUser", "_User")
            assert (await reopened.get()).get("username") == "alice"
        finally:
            context.close()
