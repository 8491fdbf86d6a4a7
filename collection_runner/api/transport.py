"""HTTP transport used to dispatch rendered requests."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Protocol, Sequence

import httpx

from collection_runner.config import Settings, get_settings
from collection_runner.logging import get_logger
from collection_runner.models import FormBody, ParsedBody, PreparedBody, RawText

_LOGGER = get_logger(__name__).bind(component="http_transport")


@dataclass(slots=True)
class TransportResponse:
    status: int
    status_text: str
    headers: dict[str, str]
    data: Any
    body: str
    size: int


class TransportError(Exception):
    """A request that could not be completed at the transport level.

    ``status``/``headers``/``data`` are populated only when part of an HTTP
    response was received before the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        status_text: str | None = None,
        headers: dict[str, str] | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.status_text = status_text
        self.headers = headers or {}
        self.data = data


class Transport(Protocol):
    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        body: PreparedBody | None = None,
        params: Sequence[tuple[str, str]] = (),
        timeout: float,
    ) -> TransportResponse:  # pragma: no cover - interface only
        ...


def normalize_headers(headers: httpx.Headers) -> dict[str, str]:
    """Flatten headers; repeated names are joined with ``", "``."""

    return {key: headers.get(key, "") for key in headers.keys()}


def decode_payload(response: httpx.Response) -> tuple[Any, str]:
    """Return ``(data, serialized)``: JSON when the body parses, text otherwise."""

    text = response.text
    if not text:
        return "", ""
    try:
        data = json.loads(text)
    except ValueError:
        return text, text
    return data, json.dumps(data)


def serialized_size(serialized: str) -> int:
    return len(serialized.encode("utf-8"))


@dataclass
class HttpxTransport:
    """Send requests through an ``httpx.AsyncClient``.

    Every HTTP status is a completed exchange; only failures below HTTP (DNS,
    refused connections, timeouts, malformed URLs, requests httpx cannot encode)
    raise :class:`TransportError`.
    """

    settings: Settings = field(default_factory=get_settings)
    client: httpx.AsyncClient | None = None

    def __post_init__(self) -> None:
        self._logger = _LOGGER

    @asynccontextmanager
    async def lifecycle(self) -> AsyncIterator["HttpxTransport"]:
        """Ensure an AsyncClient is available for the duration of the context."""

        if self.client is not None:
            yield self
            return

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.request_timeout_seconds),
            headers={"User-Agent": self.settings.user_agent},
            verify=self.settings.verify_tls,
        ) as client:
            self.client = client
            try:
                yield self
            finally:
                self.client = None

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        body: PreparedBody | None = None,
        params: Sequence[tuple[str, str]] = (),
        timeout: float,
    ) -> TransportResponse:
        if self.client is None:
            raise RuntimeError("HttpxTransport.lifecycle must be entered before sending")

        kwargs: dict[str, Any] = {}
        if isinstance(body, ParsedBody):
            kwargs["json"] = body.value
        elif isinstance(body, RawText):
            kwargs["content"] = body.text.encode("utf-8")
        elif isinstance(body, FormBody):
            kwargs["data"] = body.fields
        if params:
            kwargs["params"] = list(params)

        self._logger.debug("transport_send", method=method, url=url, has_body=body is not None)

        try:
            response = await self.client.request(
                method,
                url,
                headers=headers,
                timeout=httpx.Timeout(timeout),
                follow_redirects=self.settings.follow_redirects,
                **kwargs,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            message = str(exc) or exc.__class__.__name__
            self._logger.warning("transport_failed", method=method, url=url, error=message)
            raise TransportError(message) from exc
        except (ValueError, TypeError) as exc:
            # Raised while httpx builds the request, e.g. non-ASCII header values.
            message = f"Invalid request: {exc}"
            self._logger.warning("transport_request_invalid", method=method, url=url, error=str(exc))
            raise TransportError(message) from exc

        data, serialized = decode_payload(response)
        return TransportResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=normalize_headers(response.headers),
            data=data,
            body=serialized,
            size=serialized_size(serialized),
        )
