"""
Explicit client context.

A ClientContext is built once at startup and handed to every component that
needs shared configuration: executors, controller and stores. There is no
module-level client state.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from .codec.decoder import Decoder
from .codec.encoder import PointerEncoder
from .command.http import HttpClient, HttpxClient
from .config import RetryPolicy, Settings
from .registry import ObjectTypeRegistry

logger = logging.getLogger(__name__)


@dataclass
class ClientContext:
    """Shared collaborators of one client.

    Attributes:
        settings: Client settings
        http_client: Blocking HTTP primitive
        type_registry: Class name to constructor mapping
        network_pool: Worker threads running HTTP requests
    """

    settings: Settings
    http_client: HttpClient
    type_registry: ObjectTypeRegistry
    network_pool: ThreadPoolExecutor

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        http_client: HttpClient | None = None,
        type_registry: ObjectTypeRegistry | None = None,
    ) -> ClientContext:
        """Build a context, creating default collaborators where not given."""
        settings = settings or Settings()
        if http_client is None:
            http_client = HttpxClient(timeout=settings.request_timeout)
        return cls(
            settings=settings,
            http_client=http_client,
            type_registry=type_registry or ObjectTypeRegistry(),
            network_pool=ThreadPoolExecutor(
                max_workers=settings.network_workers,
                thread_name_prefix="objsync-net",
            ),
        )

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy.from_settings(self.settings)

    def decoder(self) -> Decoder:
        return Decoder(self.type_registry)

    def encoder(self) -> PointerEncoder:
        return PointerEncoder()

    def close(self) -> None:
        """Release the worker pool and the HTTP client."""
        self.network_pool.shutdown(wait=False)
        self.http_client.close()
        logger.debug("Client context closed")
