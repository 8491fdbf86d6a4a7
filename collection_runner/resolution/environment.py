"""Layered environment variable resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Mapping

from collection_runner.logging import get_logger
from collection_runner.models import Environment, EnvironmentValue
from collection_runner.resolution.ancestors import AncestorChain, AncestorResolver, CollectionIndex

_LOGGER = get_logger(__name__).bind(component="environment_merger")

LayerScope = Literal["global", "base", "sub", "folder", "override"]

WarningType = Literal[
    "PARENT_NOT_FOUND",
    "CYCLE_DETECTED",
    "WORKSPACE_NOT_FOUND",
    "ENVIRONMENT_NOT_FOUND",
    "FOLDER_NOT_FOUND",
]


@dataclass(slots=True, frozen=True)
class MergeWarning:
    type: WarningType
    id: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "id": self.id, "message": self.message}


@dataclass(slots=True, frozen=True)
class MergeLayer:
    """One applied scope, kept so precedence can be audited after the fact."""

    scope: LayerScope
    source_id: str | None
    variables: Mapping[str, EnvironmentValue]


@dataclass(slots=True, frozen=True)
class MergeResult:
    variables: Mapping[str, EnvironmentValue]
    warnings: tuple[MergeWarning, ...] = ()
    layers: tuple[MergeLayer, ...] = ()
    chain: AncestorChain = field(default_factory=AncestorChain)


def apply_layer(
    variables: Mapping[str, EnvironmentValue],
    layer: Mapping[str, EnvironmentValue],
) -> Mapping[str, EnvironmentValue]:
    """Shallow key overwrite producing a new read-only map."""

    return MappingProxyType({**variables, **layer})


class EnvironmentMerger:
    """Merge variables for a request position.

    Precedence, lowest first: the project's global environment, the workspace
    base environment, an explicitly chosen environment, folder environments from
    the root down to the request, then caller overrides. Missing layers are
    skipped; some of them leave a :class:`MergeWarning` behind.
    """

    def __init__(self, index: CollectionIndex, *, resolver: AncestorResolver | None = None) -> None:
        self.index = index
        self.resolver = resolver or AncestorResolver(index)

    def global_environment(self, workspace_id: str) -> Environment | None:
        workspace = self.index.workspaces.get(workspace_id)
        if workspace is None or not workspace.parent_id:
            return None
        global_workspace = self.index.global_workspace_for(workspace.parent_id)
        if global_workspace is None or global_workspace.id == workspace_id:
            return None
        return next(iter(self.index.environments_for(global_workspace.id)), None)

    def base_environment(self, workspace_id: str) -> Environment | None:
        return next(iter(self.index.environments_for(workspace_id)), None)

    def merge(
        self,
        parent_id: str,
        environment_id: str | None = None,
        overrides: Mapping[str, EnvironmentValue] | None = None,
    ) -> MergeResult:
        chain = self.resolver.resolve(parent_id)
        warnings: list[MergeWarning] = []
        layers: list[MergeLayer] = []
        variables: Mapping[str, EnvironmentValue] = MappingProxyType({})

        def push(scope: LayerScope, source_id: str | None, data: Mapping[str, EnvironmentValue]) -> None:
            nonlocal variables
            if not data:
                return
            layers.append(MergeLayer(scope, source_id, MappingProxyType(dict(data))))
            variables = apply_layer(variables, data)

        if chain.issue is not None and chain.issue.kind == "cycle":
            warnings.append(
                MergeWarning("CYCLE_DETECTED", chain.issue.id, f"Parent chain loops back to {chain.issue.id}")
            )
        elif chain.issue is not None:
            warnings.append(
                MergeWarning("PARENT_NOT_FOUND", chain.issue.id, f"Parent {chain.issue.id!r} not found in hierarchy")
            )

        workspace_id = chain.workspace_id
        if workspace_id is None:
            warnings.append(
                MergeWarning("WORKSPACE_NOT_FOUND", parent_id, f"No workspace found above {parent_id!r}")
            )
        else:
            global_env = self.global_environment(workspace_id)
            if global_env is not None:
                push("global", global_env.id, global_env.data)

            base_env = self.base_environment(workspace_id)
            if base_env is not None:
                push("base", base_env.id, base_env.data)

        if environment_id:
            sub_env = self.index.environments.get(environment_id)
            if sub_env is None:
                warnings.append(
                    MergeWarning("ENVIRONMENT_NOT_FOUND", environment_id, f"Environment {environment_id} not found")
                )
            else:
                push("sub", sub_env.id, sub_env.data)

        for folder_id in chain.folder_ids:
            folder = self.index.folders.get(folder_id)
            if folder is None:
                warnings.append(
                    MergeWarning("FOLDER_NOT_FOUND", folder_id, f"Folder {folder_id} not found in hierarchy")
                )
                continue
            push("folder", folder.id, folder.environment)

        if overrides:
            push("override", None, overrides)

        _LOGGER.debug(
            "environment_merged",
            parent_id=parent_id,
            layers=[layer.scope for layer in layers],
            keys=sorted(variables),
            warnings=len(warnings),
        )
        return MergeResult(
            variables=variables,
            warnings=tuple(warnings),
            layers=tuple(layers),
            chain=chain,
        )
