"""
Current-object persistence.

CurrentObjectStore holds the one distinguished object of a slot (current
user, current installation) in a primary store, with an optional legacy
store read once and migrated.

Invariants:
    - set writes the primary only
    - get reads primary, then legacy; a legacy hit is written to primary
      before it is deleted from legacy, so a failed primary write leaves
      the legacy record intact and the error propagates
    - exists follows the same order without migrating
    - delete clears both stores
    - set, delete and migrating get are serialized per store instance

How to change safely:
    - Never delete from legacy before the primary write has returned
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .base import ObjectStore
from .file_store import FileObjectStore
from .sqlite_store import SqliteObjectStore
from .storage import FileStorage

if TYPE_CHECKING:
    from ..context import ClientContext

logger = logging.getLogger(__name__)


class CurrentObjectStore:
    """Primary store with an optional legacy fallback.

    Args:
        primary: Store written by ``set``
        legacy: Store migrated from on first ``get``
    """

    def __init__(self, primary: ObjectStore, legacy: ObjectStore | None = None) -> None:
        self.primary = primary
        self.legacy = legacy
        self._lock = asyncio.Lock()

    @classmethod
    def from_context(cls, context: ClientContext, pin_name: str, class_name: str) -> CurrentObjectStore:
        """SQLite primary plus legacy file store under the configured data dir."""
        settings = context.settings
        primary = SqliteObjectStore(
            settings.database_path, pin_name, class_name, context.type_registry
        )
        legacy = FileObjectStore(
            FileStorage(settings.data_path), pin_name, class_name, context.type_registry
        )
        return cls(primary, legacy)

    async def set(self, obj: Any) -> None:
        async with self._lock:
            await self.primary.set(obj)

    async def get(self) -> Any | None:
        async with self._lock:
            obj = await self.primary.get()
            if obj is not None or self.legacy is None:
                return obj

            obj = await self.legacy.get()
            if obj is None:
                return None

            await self.primary.set(obj)
            await self.legacy.delete()
            logger.info(
                "Migrated current object from legacy store",
                extra={"class_name": obj.class_name, "object_id": obj.object_id},
            )
            return obj

    async def exists(self) -> bool:
        if await self.primary.exists():
            return True
        if self.legacy is None:
            return False
        return await self.legacy.exists()

    async def delete(self) -> None:
        async with self._lock:
            await self.primary.delete()
            if self.legacy is not None:
                await self.legacy.delete()


class CachedCurrentObjectController:
    """In-memory cache in front of a CurrentObjectStore.

    Args:
        store: Durable store of the slot
        factory: Creates a new current object when none is stored
            (e.g. a fresh installation); None leaves the slot empty
    """

    def __init__(
        self,
        store: CurrentObjectStore,
        factory: Callable[[], Any] | None = None,
    ) -> None:
        self.store = store
        self._factory = factory
        self._current: Any | None = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> Any | None:
        """Current object if already loaded, without touching the store."""
        return self._current

    def is_current(self, obj: Any) -> bool:
        return obj is not None and self._current is obj

    async def set(self, obj: Any) -> None:
        """Make ``obj`` current and persist it."""
        async with self._lock:
            await self.store.set(obj)
            self._current = obj

    async def save_if_current(self, obj: Any) -> bool:
        """Persist ``obj`` when it is the current object.

        Returns:
            Whether ``obj`` was persisted
        """
        async with self._lock:
            if not self.is_current(obj):
                return False
            await self.store.set(obj)
            return True

    async def get(self) -> Any | None:
        async with self._lock:
            if self._current is not None:
                return self._current

            obj = await self.store.get()
            if obj is None and self._factory is not None:
                obj = self._factory()
                logger.debug("Created new current object", extra={"class_name": obj.class_name})
            self._current = obj
            return obj

    async def exists(self) -> bool:
        if self._current is not None:
            return True
        return await self.store.exists()

    def clear_from_memory(self) -> None:
        self._current = None

    async def clear_from_disk(self) -> None:
        async with self._lock:
            self._current = None
            await self.store.delete()
