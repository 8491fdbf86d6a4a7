"""Identifier generation for collection entities."""

from __future__ import annotations

import uuid

from collection_runner.models.refs import EntityKind

PREFIXES: dict[EntityKind, str] = {
    EntityKind.PROJECT: "proj",
    EntityKind.WORKSPACE: "wrk",
    EntityKind.FOLDER: "fld",
    EntityKind.REQUEST: "req",
    EntityKind.ENVIRONMENT: "env",
    EntityKind.EXECUTION: "ex",
}

_KINDS_BY_PREFIX = {prefix: kind for kind, prefix in PREFIXES.items()}


def new_id(kind: EntityKind) -> str:
    """Return a globally unique id tagged with the prefix for ``kind``."""

    return f"{PREFIXES[kind]}_{uuid.uuid4().hex}"


def kind_from_id(entity_id: str) -> EntityKind | None:
    """Guess an entity kind from its id prefix.

    Only meant for foreign data that arrives without a type tag; stored entities
    are looked up through :class:`~collection_runner.resolution.ancestors.CollectionIndex`.
    """

    prefix, sep, _ = entity_id.partition("_")
    if not sep:
        return None
    return _KINDS_BY_PREFIX.get(prefix)
