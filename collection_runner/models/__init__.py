"""Entity model for workspaces, folders, requests and environments."""

from .refs import EntityKind, EntityRef
from .payloads import FormBody, ParsedBody, PreparedBody, RawText
from .entities import (
    HISTORY_LIMIT,
    Authentication,
    CollectionStructure,
    Environment,
    EnvironmentValue,
    ErrorSnapshot,
    ExecutionRecord,
    Folder,
    FormParameter,
    GraphQLBody,
    Header,
    Parameter,
    Request,
    RequestBody,
    ResponseSnapshot,
    VariableMap,
    Workspace,
    WorkspaceScope,
    push_bounded,
)

__all__ = [
    "HISTORY_LIMIT",
    "Authentication",
    "CollectionStructure",
    "EntityKind",
    "EntityRef",
    "Environment",
    "EnvironmentValue",
    "ErrorSnapshot",
    "ExecutionRecord",
    "Folder",
    "FormBody",
    "FormParameter",
    "GraphQLBody",
    "Header",
    "Parameter",
    "ParsedBody",
    "PreparedBody",
    "RawText",
    "Request",
    "RequestBody",
    "ResponseSnapshot",
    "VariableMap",
    "Workspace",
    "WorkspaceScope",
    "push_bounded",
]
