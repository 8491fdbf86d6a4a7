"""Outbound request bodies after substitution and parsing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(slots=True, frozen=True)
class ParsedBody:
    """A body that parsed as JSON and is sent as a JSON document."""

    value: Any


@dataclass(slots=True, frozen=True)
class RawText:
    """A body sent verbatim. ``parse_error`` is set when JSON parsing was attempted and failed."""

    text: str
    parse_error: str | None = None


@dataclass(slots=True, frozen=True)
class FormBody:
    fields: dict[str, str] = field(default_factory=dict)


PreparedBody = Union[ParsedBody, RawText, FormBody]
