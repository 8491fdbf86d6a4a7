"""Collection store contract shared by every backend."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Callable, Iterator

from collection_runner.models import (
    HISTORY_LIMIT,
    CollectionStructure,
    ExecutionRecord,
    Request,
    push_bounded,
)

Mutation = Callable[[CollectionStructure], CollectionStructure]


class CollectionStore(ABC):
    """Read/write access to whole collection structures.

    The unit of persistence is the whole collection. Every read-modify-write goes
    through :meth:`transaction`, which holds a per-collection lock for the duration
    of the read, the mutation and the write.
    """

    def __init__(self, *, history_limit: int = HISTORY_LIMIT) -> None:
        self.history_limit = history_limit
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @abstractmethod
    def get(self, collection_id: str) -> CollectionStructure | None:  # pragma: no cover - interface only
        raise NotImplementedError

    @abstractmethod
    def get_all(self) -> dict[str, CollectionStructure]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abstractmethod
    def save(self, collection_id: str, structure: CollectionStructure) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    @abstractmethod
    def delete(self, collection_id: str) -> bool:  # pragma: no cover - interface only
        raise NotImplementedError

    def lock(self, collection_id: str) -> threading.RLock:
        with self._locks_guard:
            return self._locks.setdefault(collection_id, threading.RLock())

    def release_lock(self, collection_id: str) -> None:
        """Drop the lock of a deleted collection."""

        with self._locks_guard:
            self._locks.pop(collection_id, None)


    def transaction(self, collection_id: str, mutate: Mutation) -> CollectionStructure | None:
        """Read a collection, apply ``mutate`` and write the result back.

        Returns the saved structure, or ``None`` when the collection does not exist.
        """

        with self.lock(collection_id):
            current = self.get(collection_id)
            if current is None:
                return None
            updated = mutate(current)
            self.save(collection_id, updated)
            return updated

    def append_execution(self, collection_id: str, request_id: str, record: ExecutionRecord) -> bool:
        """Prepend ``record`` to the request's history, keeping at most ``history_limit`` entries."""

        appended = False

        def prepend(structure: CollectionStructure) -> CollectionStructure:
            nonlocal appended
            request = structure.find_request(request_id)
            if request is not None:
                request.history = push_bounded(request.history, record, self.history_limit)
                appended = True
            return structure

        saved = self.transaction(collection_id, prepend)
        return saved is not None and appended

    def iter_collections(self) -> Iterator[CollectionStructure]:
        yield from self.get_all().values()

    def find_request(self, request_id: str) -> tuple[str, Request] | None:
        """Locate a request across every collection."""

        for collection_id, structure in self.get_all().items():
            request = structure.find_request(request_id)
            if request is not None:
                return collection_id, request
        return None

    def collection_exists(self, collection_id: str) -> bool:
        return self.get(collection_id) is not None

    def list_collection_ids(self) -> list[str]:
        return list(self.get_all())
