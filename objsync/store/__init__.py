"""
Current-object stores and the storage primitives behind them.
"""

from .base import ObjectStore, StoredObjectSnapshot
from .current import CachedCurrentObjectController, CurrentObjectStore
from .file_store import FileObjectStore
from .memory import InMemoryObjectStore
from .sqlite_store import SqliteObjectStore
from .storage import FileStorage, InMemoryStorage, KeyValueStorage

__all__ = [
    "CachedCurrentObjectController",
    "CurrentObjectStore",
    "FileObjectStore",
    "FileStorage",
    "InMemoryObjectStore",
    "InMemoryStorage",
    "KeyValueStorage",
    "ObjectStore",
    "SqliteObjectStore",
    "StoredObjectSnapshot",
]
