"""
Unit tests for the object type registry.

Tests cover:
- Class registration and instantiation
- Default factory fallback
- Registry freezing
- Duplicate detection
"""

import pytest

from objsync.errors import DuplicateRegistrationError, RegistryFrozenError
from objsync.model.state import ObjectState
from objsync.object import SyncObject
from objsync.registry import ObjectTypeRegistry


class GameScore(SyncObject):
    pass


class TestObjectTypeRegistry:
    """Tests for ObjectTypeRegistry."""

    def test_register_class(self):
        """Registered classes are used for their class name."""
        registry = ObjectTypeRegistry()
        registry.register("GameScore", GameScore)

        obj = registry.create_without_data("GameScore", "s1")

        assert isinstance(obj, GameScore)
        assert obj.object_id == "s1"
        assert registry.is_registered("GameScore")
        assert list(registry.class_names()) == ["GameScore"]

    def test_unregistered_falls_back_to_sync_object(self):
        """Unknown class names use the default factory."""
        obj = ObjectTypeRegistry().create_without_data("Anything")

        assert type(obj) is SyncObject
        assert obj.class_name == "Anything"
        assert obj.object_id is None

    def test_custom_default_factory(self):
        registry = ObjectTypeRegistry(default_factory=GameScore)
        assert isinstance(registry.create_without_data("Other"), GameScore)

    def test_from_state(self):
        registry = ObjectTypeRegistry()
        registry.register("GameScore", GameScore)

        obj = registry.from_state(
            ObjectState(class_name="GameScore", object_id="s1", data={"score": 3})
        )

        assert isinstance(obj, GameScore)
        assert obj.get("score") == 3
        assert not obj.is_dirty()

    def test_duplicate_raises(self):
        """Registering a class name twice raises error."""
        registry = ObjectTypeRegistry()
        registry.register("GameScore", GameScore)

        with pytest.raises(DuplicateRegistrationError, match="class 'GameScore' already registered"):
            registry.register("GameScore", SyncObject)

    def test_freeze(self):
        """Frozen registry rejects registration."""
        registry = ObjectTypeRegistry()
        registry.freeze()

        assert registry.frozen is True
        with pytest.raises(RegistryFrozenError):
            registry.register("GameScore", GameScore)

    def test_freeze_twice_raises(self):
        registry = ObjectTypeRegistry()
        registry.freeze()

        with pytest.raises(RegistryFrozenError, match="already frozen"):
            registry.freeze()

    def test_frozen_registry_still_creates(self):
        registry = ObjectTypeRegistry()
        registry.register("GameScore", GameScore)
        registry.freeze()

        assert isinstance(registry.create_without_data("GameScore"), GameScore)
