"""Ancestor and environment resolution for requests."""

from .ancestors import AncestorChain, AncestorResolver, ChainIssue, CollectionIndex
from .environment import EnvironmentMerger, MergeLayer, MergeResult, MergeWarning, apply_layer

__all__ = [
    "AncestorChain",
    "AncestorResolver",
    "ChainIssue",
    "CollectionIndex",
    "EnvironmentMerger",
    "MergeLayer",
    "MergeResult",
    "MergeWarning",
    "apply_layer",
]
