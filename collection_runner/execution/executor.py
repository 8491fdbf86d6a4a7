"""Build and dispatch a request, capturing the outcome."""

from __future__ import annotations

import base64
import json
import traceback
from dataclasses import dataclass, field
from time import monotonic
from typing import Any, Mapping

from collection_runner.adapters.templating import RenderedBody, RenderedRequest, RequestTemplate
from collection_runner.api.transport import Transport, TransportError
from collection_runner.config import Settings, get_settings
from collection_runner.logging import get_logger
from collection_runner.models import (
    Authentication,
    EnvironmentValue,
    FormBody,
    ParsedBody,
    PreparedBody,
    RawText,
    Request,
)
from collection_runner.utils import iso_now

JSON_MIME_TYPES = frozenset({"application/json", "application/graphql"})


def _base_mime(mime_type: str | None) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def prepare_body(rendered: RenderedBody | None) -> PreparedBody | None:
    """Turn a rendered body into what goes on the wire.

    JSON and GraphQL text that fails to parse is sent as :class:`RawText` with the
    parse error attached; templated JSON is often invalid until every variable resolves.
    """

    if rendered is None:
        return None

    if rendered.is_graphql:
        try:
            variables = json.loads(rendered.graphql_variables or "{}")
        except (ValueError, RecursionError):
            variables = {}
        return ParsedBody({"query": rendered.graphql_query, "variables": variables})

    if rendered.text:
        if _base_mime(rendered.mime_type) in JSON_MIME_TYPES:
            try:
                return ParsedBody(json.loads(rendered.text))
            except (ValueError, RecursionError) as exc:
                return RawText(rendered.text, parse_error=str(exc))
        return RawText(rendered.text)

    if rendered.form:
        return FormBody(dict(rendered.form))

    return None


def authorization_header(auth: Authentication | None) -> str | None:
    """``Authorization`` value for bearer and basic auth; other types are left alone."""

    if auth is None or auth.disabled:
        return None
    if auth.type == "bearer":
        return f"{auth.prefix or 'Bearer'} {auth.token or ''}"
    if auth.type == "basic":
        credentials = f"{auth.username or ''}:{auth.password or ''}".encode("utf-8")
        return f"Basic {base64.b64encode(credentials).decode('ascii')}"
    return None


@dataclass(slots=True)
class PreparedRequest:
    request_id: str
    name: str
    method: str
    url: str
    headers: dict[str, str]
    params: list[tuple[str, str]]
    body: PreparedBody | None


@dataclass(slots=True)
class ExecutionError:
    message: str
    stack: str | None = None


@dataclass(slots=True)
class ExecutionOutcome:
    """Result of one execution. ``error`` is set only for transport failures."""

    request_id: str
    method: str
    url: str
    status: int
    status_text: str
    headers: dict[str, str]
    data: Any
    body: str
    duration_ms: int
    size: int
    timestamp: str
    error: ExecutionError | None = None
    sent: PreparedRequest | None = field(default=None, repr=False)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        if self.error is None:
            return {
                "status": self.status,
                "statusText": self.status_text,
                "headers": self.headers,
                "data": self.data,
                "duration": self.duration_ms,
                "size": self.size,
                "timestamp": self.timestamp,
            }
        return {
            "error": True,
            "message": self.error.message,
            "status": self.status or None,
            "statusText": self.status_text or None,
            "headers": self.headers,
            "data": self.data,
            "duration": self.duration_ms,
            "timestamp": self.timestamp,
        }


class RequestExecutor:
    """Render, authenticate and send a request; never raises for transport failures."""

    def __init__(
        self,
        transport: Transport,
        *,
        settings: Settings | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.transport = transport
        self.settings = settings or get_settings()
        self.timeout_seconds = timeout_seconds or self.settings.request_timeout_seconds
        self._logger = get_logger(__name__).bind(component="request_executor")

    def prepare(self, request: Request, variables: Mapping[str, EnvironmentValue]) -> PreparedRequest:
        rendered: RenderedRequest = RequestTemplate(request).render(variables)

        headers = dict(rendered.headers)
        authorization = authorization_header(rendered.authentication)
        if authorization is not None:
            for name in [name for name in headers if name.lower() == "authorization"]:
                del headers[name]
            headers["Authorization"] = authorization

        body = prepare_body(rendered.body)
        if isinstance(body, RawText) and body.parse_error:
            self._logger.info("body_parse_fallback", request_id=request.id, error=body.parse_error)

        return PreparedRequest(
            request_id=rendered.request_id,
            name=rendered.name,
            method=rendered.method,
            url=rendered.url,
            headers=headers,
            params=rendered.params,
            body=body,
        )

    def _failure(
        self,
        request: Request,
        exc: BaseException,
        *,
        message: str,
        started: float,
        prepared: PreparedRequest | None = None,
        status: int | None = None,
        status_text: str | None = None,
        headers: Mapping[str, str] | None = None,
        data: Any = None,
    ) -> ExecutionOutcome:
        duration_ms = int((monotonic() - started) * 1000)
        method = prepared.method if prepared is not None else request.method
        url = prepared.url if prepared is not None else request.url
        self._logger.warning(
            "request_failed",
            request_id=request.id,
            method=method,
            url=url,
            error=message,
            duration_ms=duration_ms,
        )
        body = "" if data is None else (data if isinstance(data, str) else json.dumps(data))
        return ExecutionOutcome(
            request_id=request.id,
            method=method,
            url=url,
            status=status or 0,
            status_text=status_text or "",
            headers=dict(headers or {}),
            data=data,
            body=body,
            duration_ms=duration_ms,
            size=len(body.encode("utf-8")),
            timestamp=iso_now(),
            error=ExecutionError(
                message=message or "Unknown error",
                stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            ),
            sent=prepared,
        )

    async def execute(
        self,
        request: Request,
        variables: Mapping[str, EnvironmentValue] | None = None,
    ) -> ExecutionOutcome:
        started = monotonic()

        try:
            prepared = self.prepare(request, variables or {})
        except (ValueError, TypeError, RecursionError) as exc:
            return self._failure(request, exc, message=f"Could not prepare request: {exc}", started=started)

        try:
            response = await self.transport.send(
                prepared.method,
                prepared.url,
                headers=prepared.headers,
                body=prepared.body,
                params=prepared.params,
                timeout=self.timeout_seconds,
            )
        except TransportError as exc:
            return self._failure(
                request,
                exc,
                message=exc.message,
                started=started,
                prepared=prepared,
                status=exc.status,
                status_text=exc.status_text,
                headers=exc.headers,
                data=exc.data,
            )

        duration_ms = int((monotonic() - started) * 1000)
        self._logger.info(
            "request_executed",
            request_id=request.id,
            method=prepared.method,
            url=prepared.url,
            status=response.status,
            duration_ms=duration_ms,
            size=response.size,
        )
        return ExecutionOutcome(
            request_id=request.id,
            method=prepared.method,
            url=prepared.url,
            status=response.status,
            status_text=response.status_text,
            headers=response.headers,
            data=response.data,
            body=response.body,
            duration_ms=duration_ms,
            size=response.size,
            timestamp=iso_now(),
            sent=prepared,
        )
