"""Typed references to collection entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EntityKind(str, Enum):
    PROJECT = "project"
    WORKSPACE = "workspace"
    FOLDER = "request_group"
    REQUEST = "request"
    ENVIRONMENT = "environment"
    EXECUTION = "execution"


@dataclass(slots=True, frozen=True)
class EntityRef:
    """An entity id paired with its kind, so callers never parse id prefixes."""

    kind: EntityKind
    id: str

    @classmethod
    def workspace(cls, entity_id: str) -> "EntityRef":
        return cls(EntityKind.WORKSPACE, entity_id)

    @classmethod
    def folder(cls, entity_id: str) -> "EntityRef":
        return cls(EntityKind.FOLDER, entity_id)

    @property
    def is_workspace(self) -> bool:
        return self.kind is EntityKind.WORKSPACE

    @property
    def is_folder(self) -> bool:
        return self.kind is EntityKind.FOLDER
