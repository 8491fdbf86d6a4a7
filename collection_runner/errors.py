"""Exceptions raised by collection runner operations."""

from __future__ import annotations


class CollectionRunnerError(Exception):
    """Base class for user-visible failures."""


class CollectionNotFoundError(CollectionRunnerError, KeyError):
    def __init__(self, collection_id: str) -> None:
        super().__init__(f"Collection with ID {collection_id} not found")
        self.collection_id = collection_id

    def __str__(self) -> str:
        return self.args[0]


class RequestNotFoundError(CollectionRunnerError, KeyError):
    def __init__(self, request_id: str) -> None:
        super().__init__(f"Request with ID {request_id} not found")
        self.request_id = request_id

    def __str__(self) -> str:
        return self.args[0]


class FolderNotFoundError(CollectionRunnerError, KeyError):
    def __init__(self, folder_id: str) -> None:
        super().__init__(f"Folder with ID {folder_id} not found")
        self.folder_id = folder_id

    def __str__(self) -> str:
        return self.args[0]


class EnvironmentNotFoundError(CollectionRunnerError, KeyError):
    def __init__(self, environment_id: str) -> None:
        super().__init__(f"Environment with ID {environment_id} not found")
        self.environment_id = environment_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidImportError(CollectionRunnerError, ValueError):
    """Raised when an import file is not a collection runner export."""
