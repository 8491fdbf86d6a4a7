"""Collection maintenance: workspaces, folders, requests and environments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from collection_runner.errors import (
    CollectionNotFoundError,
    EnvironmentNotFoundError,
    FolderNotFoundError,
    RequestNotFoundError,
)
from collection_runner.identity import new_id
from collection_runner.logging import get_logger
from collection_runner.models import (
    Authentication,
    CollectionStructure,
    EntityKind,
    Environment,
    EnvironmentValue,
    ExecutionRecord,
    Folder,
    Header,
    Parameter,
    Request,
    RequestBody,
    Workspace,
    WorkspaceScope,
)
from collection_runner.storage import CollectionStore
from collection_runner.storage.base import Mutation
from collection_runner.utils import now_ms

UPDATABLE_REQUEST_FIELDS = frozenset(
    {"name", "method", "url", "headers", "parameters", "body", "authentication", "description"}
)


@dataclass(slots=True)
class CollectionSummary:
    id: str
    name: str
    description: str
    folder_count: int
    request_count: int
    environment_count: int


def _coerce_headers(items: Sequence[Header | Mapping[str, Any]] | None, cls: type[Header]) -> list[Header]:
    result: list[Header] = []
    for item in items or []:
        if isinstance(item, Header):
            result.append(cls(item.name, item.value, item.description, item.disabled))
        else:
            result.append(cls.from_dict(item))
    return result


def _coerce_body(body: RequestBody | Mapping[str, Any] | None) -> RequestBody | None:
    if body is None or isinstance(body, RequestBody):
        return body
    return RequestBody.from_dict(body)


def _coerce_auth(auth: Authentication | Mapping[str, Any] | None) -> Authentication | None:
    if auth is None or isinstance(auth, Authentication):
        return auth
    return Authentication.from_dict(auth)


class CollectionService:
    """CRUD over collections. Every write is a single store transaction."""

    def __init__(self, store: CollectionStore) -> None:
        self.store = store
        self._logger = get_logger(__name__).bind(component="collection_service")

    def _update(self, collection_id: str, mutate: Mutation) -> CollectionStructure:
        updated = self.store.transaction(collection_id, mutate)
        if updated is None:
            raise CollectionNotFoundError(collection_id)
        return updated

    def _locate_request(self, request_id: str) -> tuple[str, Request]:
        located = self.store.find_request(request_id)
        if located is None:
            raise RequestNotFoundError(request_id)
        return located

    # Collections

    def create_collection(
        self,
        name: str,
        *,
        description: str = "",
        scope: WorkspaceScope = "collection",
        project_id: str | None = None,
    ) -> CollectionStructure:
        workspace = Workspace(
            id=new_id(EntityKind.WORKSPACE),
            name=name,
            description=description,
            scope=scope,
            parent_id=project_id,
        )
        structure = CollectionStructure(workspace=workspace)
        self.store.save(workspace.id, structure)
        self._logger.info("collection_created", collection_id=workspace.id, scope=scope)
        return structure

    def create_global_environment(
        self,
        project_id: str,
        data: Mapping[str, EnvironmentValue] | None = None,
        *,
        name: str = "Global Environment",
    ) -> CollectionStructure:
        """Create the project-wide environment shared by every workspace of ``project_id``."""

        structure = self.create_collection(name, scope="environment", project_id=project_id)
        environment = Environment(
            id=new_id(EntityKind.ENVIRONMENT),
            name=name,
            parent_id=structure.id,
            data=dict(data or {}),
        )

        def attach(current: CollectionStructure) -> CollectionStructure:
            current.environments.append(environment)
            return current

        return self._update(structure.id, attach)

    def list_collections(self) -> list[CollectionSummary]:
        return [
            CollectionSummary(
                id=collection_id,
                name=structure.workspace.name,
                description=structure.workspace.description,
                folder_count=len(structure.folders),
                request_count=len(structure.requests),
                environment_count=len(structure.environments),
            )
            for collection_id, structure in self.store.get_all().items()
        ]

    def get_collection(self, collection_id: str) -> CollectionStructure:
        structure = self.store.get(collection_id)
        if structure is None:
            raise CollectionNotFoundError(collection_id)
        return structure

    def delete_collection(self, collection_id: str) -> None:
        if not self.store.delete(collection_id):
            raise CollectionNotFoundError(collection_id)

    # Folders

    def create_folder(
        self,
        collection_id: str,
        name: str,
        *,
        parent_id: str | None = None,
        description: str = "",
        environment: Mapping[str, EnvironmentValue] | None = None,
    ) -> Folder:
        folder = Folder(
            id=new_id(EntityKind.FOLDER),
            name=name,
            parent_id=parent_id or collection_id,
            description=description,
            environment=dict(environment or {}),
        )

        def add(structure: CollectionStructure) -> CollectionStructure:
            if folder.parent_id != structure.id and structure.find_folder(folder.parent_id) is None:
                raise FolderNotFoundError(folder.parent_id)
            structure.folders.append(folder)
            return structure

        self._update(collection_id, add)
        self._logger.info("folder_created", collection_id=collection_id, folder_id=folder.id)
        return folder

    def set_folder_variable(
        self,
        collection_id: str,
        folder_id: str,
        key: str,
        value: EnvironmentValue,
    ) -> Folder:
        def assign(structure: CollectionStructure) -> CollectionStructure:
            folder = structure.find_folder(folder_id)
            if folder is None:
                raise FolderNotFoundError(folder_id)
            folder.environment = {**folder.environment, key: value}
            folder.modified = now_ms()
            return structure

        updated = self._update(collection_id, assign)
        return updated.find_folder(folder_id)  # type: ignore[return-value]

    # Requests

    def create_request(
        self,
        collection_id: str,
        name: str,
        *,
        method: str = "GET",
        url: str = "",
        folder_id: str | None = None,
        headers: Sequence[Header | Mapping[str, Any]] | None = None,
        parameters: Sequence[Header | Mapping[str, Any]] | None = None,
        body: RequestBody | Mapping[str, Any] | None = None,
        authentication: Authentication | Mapping[str, Any] | None = None,
        description: str = "",
    ) -> Request:
        request = Request(
            id=new_id(EntityKind.REQUEST),
            name=name,
            parent_id=folder_id or collection_id,
            method=method.upper(),
            url=url,
            headers=_coerce_headers(headers, Header),
            parameters=_coerce_headers(parameters, Parameter),
            body=_coerce_body(body),
            authentication=_coerce_auth(authentication),
            description=description,
        )

        def add(structure: CollectionStructure) -> CollectionStructure:
            if folder_id and structure.find_folder(folder_id) is None:
                raise FolderNotFoundError(folder_id)
            structure.requests.append(request)
            return structure

        self._update(collection_id, add)
        self._logger.info("request_created", collection_id=collection_id, request_id=request.id)
        return request

    def get_request(self, request_id: str) -> Request:
        return self._locate_request(request_id)[1]

    def update_request(self, request_id: str, **changes: Any) -> Request:
        unknown = set(changes) - UPDATABLE_REQUEST_FIELDS
        if unknown:
            raise TypeError(f"Unknown request fields: {', '.join(sorted(unknown))}")

        collection_id, _ = self._locate_request(request_id)

        def apply(structure: CollectionStructure) -> CollectionStructure:
            request = structure.find_request(request_id)
            if request is None:
                raise RequestNotFoundError(request_id)
            for key, value in changes.items():
                if value is None and key not in ("body", "authentication"):
                    continue
                if key == "headers":
                    value = _coerce_headers(value, Header)
                elif key == "parameters":
                    value = _coerce_headers(value, Parameter)
                elif key == "body":
                    value = _coerce_body(value)
                elif key == "authentication":
                    value = _coerce_auth(value)
                elif key == "method":
                    value = str(value).upper()
                setattr(request, key, value)
            request.modified = now_ms()
            return structure

        updated = self._update(collection_id, apply)
        self._logger.info("request_updated", request_id=request_id, fields=sorted(changes))
        return updated.find_request(request_id)  # type: ignore[return-value]

    def delete_request(self, request_id: str) -> None:
        collection_id, _ = self._locate_request(request_id)

        def remove(structure: CollectionStructure) -> CollectionStructure:
            structure.requests = [request for request in structure.requests if request.id != request_id]
            return structure

        self._update(collection_id, remove)
        self._logger.info("request_deleted", request_id=request_id)

    def get_history(self, request_id: str, *, limit: int | None = None) -> list[ExecutionRecord]:
        history = self.get_request(request_id).history
        return history[:limit] if limit is not None else history

    # Environments

    def create_environment(
        self,
        collection_id: str,
        name: str,
        data: Mapping[str, EnvironmentValue] | None = None,
        *,
        parent_id: str | None = None,
        is_private: bool = False,
    ) -> Environment:
        """Create an environment.

        Without ``parent_id`` the first environment of a collection becomes its base
        environment and later ones are attached beneath that base.
        """

        environment = Environment(
            id=new_id(EntityKind.ENVIRONMENT),
            name=name,
            parent_id=parent_id or "",
            data=dict(data or {}),
            is_private=is_private,
        )

        def add(structure: CollectionStructure) -> CollectionStructure:
            if not environment.parent_id:
                base = next((env for env in structure.environments if env.parent_id == structure.id), None)
                environment.parent_id = base.id if base is not None else structure.id
            elif environment.parent_id != structure.id and structure.find_environment(environment.parent_id) is None:
                raise EnvironmentNotFoundError(environment.parent_id)
            structure.environments.append(environment)
            return structure

        self._update(collection_id, add)
        self._logger.info("environment_created", collection_id=collection_id, environment_id=environment.id)
        return environment

    def set_environment_variable(
        self,
        collection_id: str,
        key: str,
        value: EnvironmentValue,
        *,
        environment_id: str | None = None,
    ) -> Environment:
        """Set ``key`` on an environment, creating a base environment when none matches."""

        target: dict[str, str] = {}

        def assign(structure: CollectionStructure) -> CollectionStructure:
            environment = structure.find_environment(environment_id) if environment_id else None
            if environment is None:
                environment = next((env for env in structure.environments if env.parent_id == structure.id), None)
            if environment is None:
                environment = Environment(
                    id=new_id(EntityKind.ENVIRONMENT),
                    name="Base Environment",
                    parent_id=structure.id,
                )
                structure.environments.append(environment)
            environment.data = {**environment.data, key: value}
            environment.modified = now_ms()
            target["id"] = environment.id
            return structure

        updated = self._update(collection_id, assign)
        self._logger.info("environment_variable_set", collection_id=collection_id, key=key)
        return updated.find_environment(target["id"])  # type: ignore[return-value]

    def get_environment_variables(
        self,
        collection_id: str,
        *,
        environment_id: str | None = None,
    ) -> list[Environment]:
        environments = self.get_collection(collection_id).environments
        if environment_id:
            environments = [env for env in environments if env.id == environment_id]
        return environments
