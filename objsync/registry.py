"""
Class-name to constructor registry.

Decoders use the registry to turn pointers and embedded objects into live
instances. Unregistered class names fall back to SyncObject.

The registry is populated at startup and frozen before concurrent use.

Example:
    >>> class GameScore(SyncObject):
    ...     pass
    >>> registry = ObjectTypeRegistry()
    >>> registry.register("GameScore", GameScore)
    >>> registry.freeze()
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from typing import Any

from .errors import DuplicateRegistrationError, RegistryFrozenError
from .model.state import ObjectState
from .object import SyncObject

ObjectFactory = Callable[..., Any]


class ObjectTypeRegistry:
    """Explicit mapping of class name to object constructor.

    A factory is called as ``factory(class_name, object_id)``. SyncObject
    subclasses can be registered directly.
    """

    def __init__(self, default_factory: ObjectFactory | None = None) -> None:
        self._factories: dict[str, ObjectFactory] = {}
        self._default_factory: ObjectFactory = default_factory or SyncObject
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        """Whether registry is frozen."""
        return self._frozen

    def register(self, class_name: str, factory: ObjectFactory) -> None:
        """Register a constructor for ``class_name``.

        Raises:
            RegistryFrozenError: If registry is frozen
            DuplicateRegistrationError: If class_name is already registered
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Cannot register: registry is frozen")
            if class_name in self._factories:
                raise DuplicateRegistrationError(
                    f"class '{class_name}' already registered", class_name
                )
            self._factories[class_name] = factory

    def is_registered(self, class_name: str) -> bool:
        return class_name in self._factories

    def class_names(self) -> Iterator[str]:
        yield from self._factories.keys()

    def freeze(self) -> None:
        """Freeze registry.

        Raises:
            RegistryFrozenError: If already frozen
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Registry is already frozen")
            self._frozen = True

    def create_without_data(self, class_name: str, object_id: str | None = None) -> Any:
        """Instantiate an empty object of ``class_name``."""
        factory = self._factories.get(class_name, self._default_factory)
        return factory(class_name, object_id)

    def from_state(self, state: ObjectState) -> Any:
        """Instantiate an object and load ``state`` into it."""
        obj = self.create_without_data(state.class_name, state.object_id)
        obj.merge_from_server(state)
        return obj
