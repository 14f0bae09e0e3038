"""
Value types shared by the operation algebra, codecs and stores.
"""

from .refs import ObjectRef, is_pointer_like, object_id_of
from .relation import Relation
from .state import ObjectState

__all__ = [
    "ObjectRef",
    "ObjectState",
    "Relation",
    "is_pointer_like",
    "object_id_of",
]
