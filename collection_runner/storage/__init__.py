"""Storage backends for collections."""

from .base import CollectionStore
from .json_store import CollectionStats, JsonCollectionStore, StorageInfo
from .memory import InMemoryCollectionStore

__all__ = [
    "CollectionStats",
    "CollectionStore",
    "InMemoryCollectionStore",
    "JsonCollectionStore",
    "StorageInfo",
]
