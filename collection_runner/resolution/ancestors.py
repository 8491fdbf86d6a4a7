"""Walk a request's parent chain up to its owning workspace."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal

from collection_runner.logging import get_logger
from collection_runner.models import (
    CollectionStructure,
    EntityKind,
    EntityRef,
    Environment,
    Folder,
    Request,
    Workspace,
)

_LOGGER = get_logger(__name__).bind(component="ancestor_resolver")


@dataclass(slots=True)
class CollectionIndex:
    """Read-only id lookup over a snapshot of stored collections."""

    workspaces: dict[str, Workspace] = field(default_factory=dict)
    folders: dict[str, Folder] = field(default_factory=dict)
    environments: dict[str, Environment] = field(default_factory=dict)
    requests: dict[str, Request] = field(default_factory=dict)
    request_collections: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_collections(cls, collections: Iterable[CollectionStructure]) -> "CollectionIndex":
        index = cls()
        for structure in collections:
            index.workspaces.setdefault(structure.workspace.id, structure.workspace)
            for folder in structure.folders:
                index.folders.setdefault(folder.id, folder)
            for environment in structure.environments:
                index.environments.setdefault(environment.id, environment)
            for request in structure.requests:
                index.requests.setdefault(request.id, request)
                index.request_collections.setdefault(request.id, structure.id)
        return index

    def ref(self, entity_id: str) -> EntityRef | None:
        if entity_id in self.workspaces:
            return EntityRef(EntityKind.WORKSPACE, entity_id)
        if entity_id in self.folders:
            return EntityRef(EntityKind.FOLDER, entity_id)
        if entity_id in self.requests:
            return EntityRef(EntityKind.REQUEST, entity_id)
        if entity_id in self.environments:
            return EntityRef(EntityKind.ENVIRONMENT, entity_id)
        return None

    def environments_for(self, parent_id: str) -> list[Environment]:
        """Environments attached to ``parent_id``, in insertion order."""

        return [env for env in self.environments.values() if env.parent_id == parent_id]

    def global_workspace_for(self, project_id: str) -> Workspace | None:
        return next(
            (
                workspace
                for workspace in self.workspaces.values()
                if workspace.parent_id == project_id and workspace.is_global_environment
            ),
            None,
        )


@dataclass(slots=True, frozen=True)
class ChainIssue:
    """Why a walk stopped before reaching a workspace."""

    kind: Literal["cycle", "unresolved"]
    id: str


@dataclass(slots=True, frozen=True)
class AncestorChain:
    """Ancestors ordered root to leaf: workspace first, nearest folder last."""

    entries: tuple[EntityRef, ...] = ()
    issue: ChainIssue | None = None

    @property
    def workspace_id(self) -> str | None:
        return next((ref.id for ref in self.entries if ref.is_workspace), None)

    @property
    def folder_ids(self) -> list[str]:
        return [ref.id for ref in self.entries if ref.is_folder]

    @property
    def complete(self) -> bool:
        return self.issue is None and self.workspace_id is not None


class AncestorResolver:
    """Resolve the folder/workspace chain above a request.

    The walk never raises and never loops: a repeated id stops it with a ``cycle``
    issue and an unknown parent stops it with an ``unresolved`` issue. Either way
    the chain gathered so far is returned.
    """

    def __init__(self, index: CollectionIndex) -> None:
        self.index = index

    def resolve(self, parent_id: str) -> AncestorChain:
        collected: list[EntityRef] = []
        visited: set[str] = set()
        issue: ChainIssue | None = None
        current = parent_id

        while True:
            if not current:
                issue = ChainIssue("unresolved", current or "")
                break
            if current in visited:
                issue = ChainIssue("cycle", current)
                break
            visited.add(current)

            ref = self.index.ref(current)
            if ref is None or not (ref.is_folder or ref.is_workspace):
                issue = ChainIssue("unresolved", current)
                break

            collected.append(ref)
            if ref.is_workspace:
                break
            current = self.index.folders[current].parent_id

        if issue is not None:
            _LOGGER.warning("ancestor_chain_truncated", parent_id=parent_id, reason=issue.kind, at=issue.id)

        collected.reverse()
        return AncestorChain(entries=tuple(collected), issue=issue)
