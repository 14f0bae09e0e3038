"""
objsync: client-side synchronization for an HTTP object store.

Callers mutate SyncObjects locally; pending mutations are collapsed per
field into one operation, sent with retry and batching, and the current
user / current installation are persisted across restarts.

Example:
    >>> from objsync import Settings, SyncClient, SyncObject
    >>>
    >>> async with SyncClient(Settings(server_url="https://api.example.com/1/")) as client:
    ...     score = SyncObject("GameScore")
    ...     score.put("player", "alice")
    ...     score.increment("score", 10)
    ...     await client.save(score)
"""

from .client import SyncClient
from .command import (
    BatchExecutor,
    CancellationToken,
    HttpClient,
    HttpRequest,
    HttpResponse,
    HttpxClient,
    InMemoryHttpClient,
    RequestExecutor,
    RestCommand,
)
from .config import RetryPolicy, Settings, setup_logging
from .context import ClientContext
from .controller import ObjectController
from .errors import (
    BatchProtocolError,
    CommandError,
    DuplicateRegistrationError,
    EncodingError,
    ErrorCode,
    InvalidOperationError,
    OperationDecodeError,
    RegistryFrozenError,
    SyncError,
)
from .model import ObjectRef, ObjectState, Relation
from .object import SyncObject
from .ops import (
    AddOperation,
    AddUniqueOperation,
    DeleteOperation,
    FieldOperation,
    IncrementOperation,
    OperationSet,
    RelationOperation,
    RemoveOperation,
    SetOperation,
    decode_operation,
    try_merge,
)
from .registry import ObjectTypeRegistry
from .store import (
    CachedCurrentObjectController,
    CurrentObjectStore,
    FileObjectStore,
    InMemoryObjectStore,
    SqliteObjectStore,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "SyncClient",
    "ClientContext",
    "ObjectController",
    "Settings",
    "RetryPolicy",
    "setup_logging",
    # Objects
    "SyncObject",
    "ObjectRef",
    "ObjectState",
    "Relation",
    "ObjectTypeRegistry",
    # Operations
    "FieldOperation",
    "SetOperation",
    "DeleteOperation",
    "IncrementOperation",
    "AddOperation",
    "AddUniqueOperation",
    "RemoveOperation",
    "RelationOperation",
    "OperationSet",
    "decode_operation",
    "try_merge",
    # Commands
    "RestCommand",
    "RequestExecutor",
    "BatchExecutor",
    "CancellationToken",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpxClient",
    "InMemoryHttpClient",
    # Stores
    "CurrentObjectStore",
    "CachedCurrentObjectController",
    "FileObjectStore",
    "SqliteObjectStore",
    "InMemoryObjectStore",
    # Errors
    "SyncError",
    "InvalidOperationError",
    "OperationDecodeError",
    "EncodingError",
    "CommandError",
    "BatchProtocolError",
    "RegistryFrozenError",
    "DuplicateRegistrationError",
    "ErrorCode",
]
