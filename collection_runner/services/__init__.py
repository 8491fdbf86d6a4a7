"""Collection maintenance services."""

from .collections import CollectionService, CollectionSummary

__all__ = ["CollectionService", "CollectionSummary"]
