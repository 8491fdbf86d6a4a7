"""Collection Runner: environment-aware execution of stored HTTP request collections."""

from __future__ import annotations

from .api import HttpxTransport, TransportError
from .config import Settings, get_settings
from .execution import ExecutionOutcome, HistoryRecorder, RequestExecutor
from .pipelines import ExecutionPipeline, ExecutionReport
from .resolution import AncestorResolver, CollectionIndex, EnvironmentMerger
from .services import CollectionService
from .storage import InMemoryCollectionStore, JsonCollectionStore

__all__ = [
    "AncestorResolver",
    "CollectionIndex",
    "CollectionService",
    "EnvironmentMerger",
    "ExecutionOutcome",
    "ExecutionPipeline",
    "ExecutionReport",
    "HistoryRecorder",
    "HttpxTransport",
    "InMemoryCollectionStore",
    "JsonCollectionStore",
    "RequestExecutor",
    "Settings",
    "TransportError",
    "get_settings",
]
