"""In-process collection store."""

from __future__ import annotations

import copy

from collection_runner.models import HISTORY_LIMIT, CollectionStructure
from collection_runner.storage.base import CollectionStore


class InMemoryCollectionStore(CollectionStore):
    """Keep collections in a dict. Reads and writes hand out copies."""

    def __init__(
        self,
        collections: dict[str, CollectionStructure] | None = None,
        *,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        super().__init__(history_limit=history_limit)
        self._collections: dict[str, CollectionStructure] = copy.deepcopy(collections or {})

    def get(self, collection_id: str) -> CollectionStructure | None:
        structure = self._collections.get(collection_id)
        return copy.deepcopy(structure) if structure is not None else None

    def get_all(self) -> dict[str, CollectionStructure]:
        return copy.deepcopy(self._collections)

    def save(self, collection_id: str, structure: CollectionStructure) -> None:
        self._collections[collection_id] = copy.deepcopy(structure)

    def delete(self, collection_id: str) -> bool:
        with self.lock(collection_id):
            deleted = self._collections.pop(collection_id, None) is not None
        self.release_lock(collection_id)
        return deleted
