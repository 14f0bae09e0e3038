"""
Legacy single-file store.

Keeps the object as one JSON snapshot under a fixed key of a KeyValueStorage.
Older clients persisted the current object this way; it is now only read
as a migration source by CurrentObjectStore.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from .base import SnapshotCodec, StoredObjectSnapshot
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)


class FileObjectStore:
    """ObjectStore persisting one snapshot file.

    Args:
        storage: Key/value storage holding the file
        key: Storage key (file name)
        class_name: Class name assumed for snapshots that omit one
        registry: Type registry used to instantiate the object
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        class_name: str,
        registry: Any,
    ) -> None:
        self.storage = storage
        self.key = key
        self._codec = SnapshotCodec(class_name, registry)

    async def get(self) -> Any | None:
        data = await asyncio.to_thread(self.storage.read_object, self.key)
        if data is None:
            return None
        encoded = json.loads(data.decode("utf-8"))
        snapshot = StoredObjectSnapshot(
            class_name=encoded.get("classname") or self._codec.class_name,
            encoded_state=encoded,
        )
        return self._codec.from_snapshot(snapshot)

    async def set(self, obj: Any) -> None:
        snapshot = self._codec.to_snapshot(obj)
        await asyncio.to_thread(
            self.storage.write_object, self.key, snapshot.to_json().encode("utf-8")
        )
        logger.debug("Saved object to file", extra={"key": self.key, "class_name": obj.class_name})

    async def exists(self) -> bool:
        return await asyncio.to_thread(self.storage.read_object, self.key) is not None

    async def delete(self) -> None:
        await asyncio.to_thread(self.storage.delete, self.key)
