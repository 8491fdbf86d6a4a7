"""Collection entities and their JSON-compatible dict form.

Dict keys follow the Insomnia export layout (``_id``, ``_type``, ``parentId``) so
exported collections stay recognisable to other tooling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Sequence, Union

from collection_runner.utils.timestamps import now_ms
from collection_runner.models.refs import EntityKind

EnvironmentValue = Union[str, int, float, bool]
VariableMap = dict[str, EnvironmentValue]

WorkspaceScope = Literal["collection", "design", "environment"]

HISTORY_LIMIT = 20


@dataclass(slots=True)
class Workspace:
    id: str
    name: str
    description: str = ""
    scope: WorkspaceScope = "collection"
    parent_id: str | None = None
    created: int = field(default_factory=now_ms)
    modified: int = field(default_factory=now_ms)

    @property
    def is_global_environment(self) -> bool:
        return self.scope == "environment"

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "_type": EntityKind.WORKSPACE.value,
            "parentId": self.parent_id,
            "name": self.name,
            "description": self.description,
            "scope": self.scope,
            "created": self.created,
            "modified": self.modified,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Workspace":
        return cls(
            id=data["_id"],
            name=data.get("name", ""),
            description=data.get("description") or "",
            scope=data.get("scope", "collection"),
            parent_id=data.get("parentId"),
            created=data.get("created", 0),
            modified=data.get("modified", 0),
        )


@dataclass(slots=True)
class Folder:
    """A request group. ``parent_id`` is a workspace or another folder."""

    id: str
    name: str
    parent_id: str
    description: str = ""
    environment: VariableMap = field(default_factory=dict)
    created: int = field(default_factory=now_ms)
    modified: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "_type": EntityKind.FOLDER.value,
            "parentId": self.parent_id,
            "name": self.name,
            "description": self.description,
            "environment": dict(self.environment),
            "created": self.created,
            "modified": self.modified,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Folder":
        return cls(
            id=data["_id"],
            name=data.get("name", ""),
            parent_id=data.get("parentId", ""),
            description=data.get("description") or "",
            environment=dict(data.get("environment") or {}),
            created=data.get("created", 0),
            modified=data.get("modified", 0),
        )


@dataclass(slots=True)
class Header:
    name: str
    value: str
    description: str = ""
    disabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "value": self.value}
        if self.description:
            data["description"] = self.description
        if self.disabled:
            data["disabled"] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Header":
        return cls(
            name=data["name"],
            value=str(data.get("value", "")),
            description=data.get("description") or "",
            disabled=bool(data.get("disabled", False)),
        )


class Parameter(Header):
    """A query parameter; same shape as a header."""

    __slots__ = ()


@dataclass(slots=True)
class FormParameter:
    name: str
    value: str
    disabled: bool = False
    type: Literal["text", "file"] = "text"
    file_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "value": self.value, "type": self.type}
        if self.disabled:
            data["disabled"] = True
        if self.file_name:
            data["fileName"] = self.file_name
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FormParameter":
        return cls(
            name=data["name"],
            value=str(data.get("value", "")),
            disabled=bool(data.get("disabled", False)),
            type=data.get("type", "text"),
            file_name=data.get("fileName"),
        )


@dataclass(slots=True)
class GraphQLBody:
    query: str
    variables: str = "{}"


@dataclass(slots=True)
class RequestBody:
    mime_type: str | None = None
    text: str | None = None
    params: list[FormParameter] = field(default_factory=list)
    graphql: GraphQLBody | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.mime_type is not None:
            data["mimeType"] = self.mime_type
        if self.text is not None:
            data["text"] = self.text
        if self.params:
            data["params"] = [param.to_dict() for param in self.params]
        if self.graphql is not None:
            data["graphql"] = {"query": self.graphql.query, "variables": self.graphql.variables}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RequestBody":
        graphql = data.get("graphql")
        return cls(
            mime_type=data.get("mimeType"),
            text=data.get("text"),
            params=[FormParameter.from_dict(item) for item in data.get("params") or []],
            graphql=(
                GraphQLBody(query=graphql.get("query", ""), variables=graphql.get("variables") or "{}")
                if graphql
                else None
            ),
        )


@dataclass(slots=True)
class Authentication:
    """Request authentication. Only bearer and basic are applied by the executor."""

    type: str
    token: str | None = None
    prefix: str | None = None
    username: str | None = None
    password: str | None = None
    disabled: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    _KNOWN = ("type", "token", "prefix", "username", "password", "disabled")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        data["type"] = self.type
        for key in ("token", "prefix", "username", "password"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.disabled:
            data["disabled"] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Authentication":
        return cls(
            type=data.get("type", ""),
            token=data.get("token"),
            prefix=data.get("prefix"),
            username=data.get("username"),
            password=data.get("password"),
            disabled=bool(data.get("disabled", False)),
            extra={key: value for key, value in data.items() if key not in cls._KNOWN},
        )


@dataclass(slots=True)
class ResponseSnapshot:
    status_code: int
    status_message: str
    headers: dict[str, str]
    body: str
    duration: int
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "statusMessage": self.status_message,
            "headers": dict(self.headers),
            "body": self.body,
            "duration": self.duration,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResponseSnapshot":
        return cls(
            status_code=int(data.get("statusCode", 0)),
            status_message=data.get("statusMessage", ""),
            headers=dict(data.get("headers") or {}),
            body=data.get("body") or "",
            duration=int(data.get("duration", 0)),
            size=int(data.get("size", 0)),
        )


@dataclass(slots=True)
class ErrorSnapshot:
    message: str
    stack: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"message": self.message}
        if self.stack:
            data["stack"] = self.stack
        return data


@dataclass(slots=True)
class ExecutionRecord:
    """One persisted execution of a request."""

    id: str
    parent_id: str
    timestamp: int
    response: ResponseSnapshot
    error: ErrorSnapshot | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "_id": self.id,
            "parentId": self.parent_id,
            "timestamp": self.timestamp,
            "response": self.response.to_dict(),
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutionRecord":
        error = data.get("error")
        return cls(
            id=data["_id"],
            parent_id=data.get("parentId", ""),
            timestamp=int(data.get("timestamp", 0)),
            response=ResponseSnapshot.from_dict(data.get("response") or {}),
            error=ErrorSnapshot(message=error.get("message", ""), stack=error.get("stack")) if error else None,
        )


def push_bounded(
    history: Sequence[ExecutionRecord],
    record: ExecutionRecord,
    limit: int = HISTORY_LIMIT,
) -> list[ExecutionRecord]:
    """Return a new history with ``record`` first and at most ``limit`` entries."""

    return [record, *history][: max(1, limit)]


@dataclass(slots=True)
class Request:
    id: str
    name: str
    parent_id: str
    method: str = "GET"
    url: str = ""
    headers: list[Header] = field(default_factory=list)
    parameters: list[Parameter] = field(default_factory=list)
    body: RequestBody | None = None
    authentication: Authentication | None = None
    description: str = ""
    history: list[ExecutionRecord] = field(default_factory=list)
    created: int = field(default_factory=now_ms)
    modified: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "_id": self.id,
            "_type": EntityKind.REQUEST.value,
            "parentId": self.parent_id,
            "name": self.name,
            "description": self.description,
            "method": self.method,
            "url": self.url,
            "headers": [header.to_dict() for header in self.headers],
            "parameters": [param.to_dict() for param in self.parameters],
            "created": self.created,
            "modified": self.modified,
        }
        if self.body is not None:
            data["body"] = self.body.to_dict()
        if self.authentication is not None:
            data["authentication"] = self.authentication.to_dict()
        if self.history:
            data["history"] = [record.to_dict() for record in self.history]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Request":
        body = data.get("body")
        auth = data.get("authentication")
        return cls(
            id=data["_id"],
            name=data.get("name", ""),
            parent_id=data.get("parentId", ""),
            method=str(data.get("method", "GET")).upper(),
            url=data.get("url", ""),
            headers=[Header.from_dict(item) for item in data.get("headers") or []],
            parameters=[Parameter.from_dict(item) for item in data.get("parameters") or []],
            body=RequestBody.from_dict(body) if body else None,
            authentication=Authentication.from_dict(auth) if auth else None,
            description=data.get("description") or "",
            history=[ExecutionRecord.from_dict(item) for item in data.get("history") or []],
            created=data.get("created", 0),
            modified=data.get("modified", 0),
        )


@dataclass(slots=True)
class Environment:
    id: str
    name: str
    parent_id: str
    data: VariableMap = field(default_factory=dict)
    is_private: bool = False
    color: str | None = None
    created: int = field(default_factory=now_ms)
    modified: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "_id": self.id,
            "_type": EntityKind.ENVIRONMENT.value,
            "parentId": self.parent_id,
            "name": self.name,
            "data": dict(self.data),
            "isPrivate": self.is_private,
            "created": self.created,
            "modified": self.modified,
        }
        if self.color:
            result["color"] = self.color
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Environment":
        return cls(
            id=data["_id"],
            name=data.get("name", ""),
            parent_id=data.get("parentId", ""),
            data=dict(data.get("data") or {}),
            is_private=bool(data.get("isPrivate", False)),
            color=data.get("color"),
            created=data.get("created", 0),
            modified=data.get("modified", 0),
        )


@dataclass(slots=True)
class CollectionStructure:
    """A workspace with everything it owns; the store's unit of persistence."""

    workspace: Workspace
    folders: list[Folder] = field(default_factory=list)
    requests: list[Request] = field(default_factory=list)
    environments: list[Environment] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.workspace.id

    def find_request(self, request_id: str) -> Request | None:
        return next((request for request in self.requests if request.id == request_id), None)

    def find_folder(self, folder_id: str) -> Folder | None:
        return next((folder for folder in self.folders if folder.id == folder_id), None)

    def find_environment(self, environment_id: str) -> Environment | None:
        return next((env for env in self.environments if env.id == environment_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspace": self.workspace.to_dict(),
            "folders": [folder.to_dict() for folder in self.folders],
            "requests": [request.to_dict() for request in self.requests],
            "environments": [env.to_dict() for env in self.environments],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CollectionStructure":
        return cls(
            workspace=Workspace.from_dict(data["workspace"]),
            folders=[Folder.from_dict(item) for item in data.get("folders") or []],
            requests=[Request.from_dict(item) for item in data.get("requests") or []],
            environments=[Environment.from_dict(item) for item in data.get("environments") or []],
        )
