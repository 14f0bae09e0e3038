"""
Client orchestrator.

SyncClient wires the context, executors, object controller and the two
current-object slots together and manages their lifecycle.

Example:
    >>> async with SyncClient(Settings(server_url="https://api.example.com/1/")) as client:
    ...     score = SyncObject("GameScore")
    ...     score.put("player", "alice")
    ...     await client.save(score)
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from .command.batch import BatchExecutor
from .command.cancellation import CancellationToken
from .command.executor import RequestExecutor, SleepFunc
from .command.http import HttpClient
from .config import Settings
from .context import ClientContext
from .controller import ObjectController
from .object import SyncObject
from .registry import ObjectTypeRegistry
from .store.current import CachedCurrentObjectController, CurrentObjectStore

logger = logging.getLogger(__name__)

USER_CLASS_NAME = "_User"
INSTALLATION_CLASS_NAME = "_Installation"
CURRENT_USER_PIN = "currentUser"
CURRENT_INSTALLATION_PIN = "currentInstallation"
SESSION_TOKEN_KEY = "sessionToken"


class SyncClient:
    """Entry point of objsync.

    Manages:
    - ClientContext (settings, HTTP client, worker pool, type registry)
    - RequestExecutor and BatchExecutor
    - ObjectController
    - current user / current installation slots

    Args:
        settings: Client settings (loaded from environment when None)
        http_client: HTTP primitive (httpx-backed when None)
        type_registry: Class registry (default registry when None)
        sleep: Awaitable sleep used between retries
        current_user_store: Store of the current user slot
        current_installation_store: Store of the current installation slot
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: HttpClient | None = None,
        type_registry: ObjectTypeRegistry | None = None,
        sleep: SleepFunc | None = None,
        current_user_store: CurrentObjectStore | None = None,
        current_installation_store: CurrentObjectStore | None = None,
    ) -> None:
        self.context = ClientContext.create(settings, http_client, type_registry)
        self.context.settings.validate_settings()
        self.executor = RequestExecutor(self.context, sleep=sleep)
        self.batch_executor = BatchExecutor(self.context, self.executor)
        self.objects = ObjectController(self.context, self.executor, self.batch_executor)

        self.current_user = CachedCurrentObjectController(
            current_user_store
            or CurrentObjectStore.from_context(self.context, CURRENT_USER_PIN, USER_CLASS_NAME)
        )
        self.current_installation = CachedCurrentObjectController(
            current_installation_store
            or CurrentObjectStore.from_context(
                self.context, CURRENT_INSTALLATION_PIN, INSTALLATION_CLASS_NAME
            ),
            factory=self._new_installation,
        )
        self._closed = False

    @property
    def settings(self) -> Settings:
        return self.context.settings

    async def __aenter__(self) -> SyncClient:
        self.context.settings.log_config()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.context.close()
        logger.info("Client closed")

    def session_token(self) -> str | None:
        """Session token of the loaded current user, if any."""
        user = self.current_user.cached
        if user is None:
            return None
        return user.get(SESSION_TOKEN_KEY)

    async def save(self, obj: SyncObject, cancellation: CancellationToken | None = None) -> SyncObject:
        """Save ``obj`` and persist it if it occupies a current slot."""
        await self.objects.save(obj, self.session_token(), cancellation)
        await self._persist_if_current(obj)
        return obj

    async def save_all(
        self,
        objects: list[SyncObject],
        cancellation: CancellationToken | None = None,
    ) -> list[SyncObject]:
        try:
            await self.objects.save_all(objects, self.session_token(), cancellation)
        finally:
            for obj in objects:
                if not obj.is_dirty():
                    await self._persist_if_current(obj)
        return objects

    async def delete(self, obj: SyncObject, cancellation: CancellationToken | None = None) -> None:
        await self.objects.delete(obj, self.session_token(), cancellation)

    async def delete_all(
        self,
        objects: list[SyncObject],
        cancellation: CancellationToken | None = None,
    ) -> None:
        await self.objects.delete_all(objects, self.session_token(), cancellation)

    async def fetch(self, obj: SyncObject, cancellation: CancellationToken | None = None) -> SyncObject:
        await self.objects.fetch(obj, self.session_token(), cancellation)
        await self._persist_if_current(obj)
        return obj

    async def _persist_if_current(self, obj: SyncObject) -> None:
        for slot in (self.current_user, self.current_installation):
            if await slot.save_if_current(obj):
                logger.debug(
                    "Persisted current object",
                    extra={"class_name": obj.class_name, "object_id": obj.object_id},
                )

    def _new_installation(self) -> Any:
        installation = self.context.type_registry.create_without_data(INSTALLATION_CLASS_NAME)
        installation.put("installationId", self.settings.installation_id or str(uuid.uuid4()))
        return installation
