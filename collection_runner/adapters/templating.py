"""``{{name}}`` placeholder substitution for request definitions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from collection_runner.models import Authentication, EnvironmentValue, Request


def stringify(value: Any) -> str:
    """Canonical text form of a variable value (``true``, ``42``, ``1.5``)."""

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return ""
    return str(value)


class Substitutor:
    """Replace ``{{key}}`` tokens for a fixed variable map.

    All keys are matched in a single pass, so a substituted value is never scanned
    again and the result does not depend on key order. Tokens for unknown keys are
    left as they are.
    """

    def __init__(self, variables: Mapping[str, EnvironmentValue]) -> None:
        self._values = {key: stringify(value) for key, value in variables.items() if key}
        self._pattern: re.Pattern[str] | None = None
        if self._values:
            alternatives = "|".join(re.escape(key) for key in sorted(self._values, key=len, reverse=True))
            self._pattern = re.compile(r"\{\{(" + alternatives + r")\}\}")

    def __call__(self, text: str) -> str:
        if self._pattern is None or not text:
            return text
        return self._pattern.sub(lambda match: self._values[match.group(1)], text)

    def optional(self, text: str | None) -> str | None:
        return None if text is None else self(text)


def substitute(text: str, variables: Mapping[str, EnvironmentValue]) -> str:
    return Substitutor(variables)(text)


@dataclass(slots=True)
class RenderedBody:
    mime_type: str | None = None
    text: str | None = None
    form: dict[str, str] = field(default_factory=dict)
    graphql_query: str | None = None
    graphql_variables: str | None = None

    @property
    def is_graphql(self) -> bool:
        return self.graphql_query is not None


@dataclass(slots=True)
class RenderedRequest:
    """Request parts after substitution; disabled headers and parameters are gone."""

    request_id: str
    name: str
    method: str
    url: str
    headers: dict[str, str]
    params: list[tuple[str, str]]
    body: RenderedBody | None
    authentication: Authentication | None


@dataclass(slots=True)
class RequestTemplate:
    """Render a stored request against a merged variable map."""

    request: Request

    def render(self, variables: Mapping[str, EnvironmentValue] | None = None) -> RenderedRequest:
        sub = Substitutor(variables or {})
        request = self.request

        headers = {header.name: sub(header.value) for header in request.headers if not header.disabled}
        params = [(param.name, sub(param.value)) for param in request.parameters if not param.disabled]

        body: RenderedBody | None = None
        if request.body is not None:
            source = request.body
            body = RenderedBody(mime_type=source.mime_type)
            if source.graphql is not None:
                body.graphql_query = sub(source.graphql.query)
                body.graphql_variables = sub(source.graphql.variables or "{}")
            elif source.text is not None:
                body.text = sub(source.text)
            elif source.params:
                body.form = {
                    param.name: sub(param.value)
                    for param in source.params
                    if not param.disabled and param.type == "text"
                }

        auth = request.authentication
        if auth is not None:
            auth = replace(
                auth,
                token=sub.optional(auth.token),
                prefix=sub.optional(auth.prefix),
                username=sub.optional(auth.username),
                password=sub.optional(auth.password),
            )

        return RenderedRequest(
            request_id=request.id,
            name=request.name,
            method=request.method.upper(),
            url=sub(request.url),
            headers=headers,
            params=params,
            body=body,
            authentication=auth,
        )
