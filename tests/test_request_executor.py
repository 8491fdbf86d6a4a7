from __future__ import annotations

import json

import httpx
import pytest

from collection_runner.api import HttpxTransport, TransportError
from collection_runner.execution import RequestExecutor, authorization_header, prepare_body
from collection_runner.adapters.templating import RenderedBody
from collection_runner.models import (
    Authentication,
    FormParameter,
    GraphQLBody,
    Header,
    Parameter,
    ParsedBody,
    RawText,
    Request,
    RequestBody,
)


def _executor(settings, handler) -> tuple[RequestExecutor, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RequestExecutor(HttpxTransport(settings=settings, client=client), settings=settings), client


@pytest.mark.asyncio
async def test_execute_with_bearer_auth(settings) -> None:
    captured = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["headers"] = dict(request.headers)
        return httpx.Response(200, json={"users": []})

    executor, client = _executor(settings, handler)
    request = Request(
        id="req_1",
        name="List users",
        parent_id="wrk_1",
        url="{{baseUrl}}/users",
        authentication=Authentication(type="bearer", token="{{token}}"),
    )

    async with client:
        outcome = await executor.execute(request, {"baseUrl": "https://api.example.com", "token": "abc"})

    assert captured["url"] == "https://api.example.com/users"
    assert captured["headers"]["authorization"] == "Bearer abc"
    assert outcome.status == 200
    assert outcome.status_text == "OK"
    assert outcome.data == {"users": []}
    assert outcome.body == json.dumps({"users": []})
    assert outcome.size == len(outcome.body.encode("utf-8"))
    assert outcome.error is None


@pytest.mark.asyncio
async def test_malformed_json_body_is_sent_verbatim(settings) -> None:
    captured = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        captured["content"] = request.content
        return httpx.Response(201, text="created")

    executor, client = _executor(settings, handler)
    request = Request(
        id="req_1",
        name="Create",
        parent_id="wrk_1",
        method="POST",
        url="https://api.example.com/items",
        body=RequestBody(mime_type="application/json", text='{"id": {{id}}'),
    )

    async with client:
        outcome = await executor.execute(request, {"id": 5})

    assert captured["content"] == b'{"id": 5'
    assert outcome.failed is False
    assert outcome.sent is not None
    assert isinstance(outcome.sent.body, RawText)
    assert outcome.sent.body.parse_error
    assert outcome.data == "created"


@pytest.mark.asyncio
async def test_valid_json_body_is_sent_as_json(settings) -> None:
    captured = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        captured["json"] = json.loads(request.content)
        captured["content_type"] = request.headers.get("content-type")
        return httpx.Response(200, json={"ok": True})

    executor, client = _executor(settings, handler)
    request = Request(
        id="req_1",
        name="Create",
        parent_id="wrk_1",
        method="post",
        url="https://api.example.com/items",
        body=RequestBody(mime_type="application/json", text='{"id": {{id}}, "flag": {{flag}}}'),
    )

    async with client:
        await executor.execute(request, {"id": 5, "flag": True})

    assert captured["json"] == {"id": 5, "flag": True}
    assert captured["content_type"] == "application/json"


@pytest.mark.asyncio
async def test_client_and_server_errors_are_completed_executions(settings) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "missing"})

    executor, client = _executor(settings, handler)
    request = Request(id="req_1", name="Missing", parent_id="wrk_1", url="https://api.example.com/nope")

    async with client:
        outcome = await executor.execute(request, {})

    assert outcome.status == 404
    assert outcome.status_text == "Not Found"
    assert outcome.failed is False
    assert outcome.to_dict()["status"] == 404


@pytest.mark.asyncio
async def test_connection_failure_becomes_error_outcome(settings) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    executor, client = _executor(settings, handler)
    request = Request(id="req_1", name="Down", parent_id="wrk_1", url="https://down.example.com/")

    async with client:
        outcome = await executor.execute(request, {})

    assert outcome.failed is True
    assert outcome.error is not None
    assert outcome.error.message == "Connection refused"
    assert outcome.status == 0
    assert outcome.to_dict()["error"] is True
    assert outcome.duration_ms >= 0


@pytest.mark.asyncio
async def test_timeout_becomes_error_outcome(settings) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    executor, client = _executor(settings, handler)
    request = Request(id="req_1", name="Slow", parent_id="wrk_1", url="https://slow.example.com/")

    async with client:
        outcome = await executor.execute(request, {})

    assert outcome.failed is True
    assert outcome.error is not None and "timed out" in outcome.error.message


@pytest.mark.asyncio
async def test_partial_response_on_transport_error_is_kept() -> None:
    class PartialTransport:
        async def send(self, method, url, *, headers, body=None, params=(), timeout):
            raise TransportError(
                "connection reset",
                status=502,
                status_text="Bad Gateway",
                headers={"x-proxy": "edge"},
                data={"detail": "upstream"},
            )

    executor = RequestExecutor(PartialTransport(), timeout_seconds=1)
    request = Request(id="req_1", name="Proxy", parent_id="wrk_1", url="https://x.test/")

    outcome = await executor.execute(request, {})

    assert outcome.failed is True
    assert outcome.status == 502
    assert outcome.headers == {"x-proxy": "edge"}
    assert outcome.body == json.dumps({"detail": "upstream"})


@pytest.mark.asyncio
async def test_non_ascii_header_value_becomes_error_outcome(settings) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        return httpx.Response(200)

    executor, client = _executor(settings, handler)
    request = Request(
        id="req_1",
        name="Who",
        parent_id="wrk_1",
        url="https://x.test/",
        headers=[Header("X-User", "{{who}}")],
    )

    async with client:
        outcome = await executor.execute(request, {"who": "Jos\u00e9"})

    assert outcome.failed is True
    assert outcome.status == 0
    assert outcome.error.message.startswith("Invalid request")
    assert "UnicodeEncodeError" in outcome.error.stack
    assert outcome.sent.headers["X-User"] == "Jos\u00e9"


@pytest.mark.asyncio
async def test_unpreparable_request_becomes_error_outcome(settings, monkeypatch) -> None:
    executor = RequestExecutor(HttpxTransport(settings=settings), settings=settings)

    def explode(request, variables):
        raise ValueError("bad template")

    monkeypatch.setattr(executor, "prepare", explode)
    request = Request(id="req_1", name="Broken", parent_id="wrk_1", method="PUT", url="{{baseUrl}}/x")

    outcome = await executor.execute(request, {})

    assert outcome.failed is True
    assert outcome.status == 0
    assert outcome.method == "PUT"
    assert outcome.url == "{{baseUrl}}/x"
    assert outcome.sent is None
    assert "bad template" in outcome.error.message


@pytest.mark.asyncio
async def test_deeply_nested_json_body_is_sent_verbatim(settings) -> None:
    captured = {}
    text = "[" * 100_000 + "]" * 100_000

    async def handler(request: httpx.Request) -> httpx.Response:
        captured["content"] = request.content
        return httpx.Response(200)

    executor, client = _executor(settings, handler)
    request = Request(
        id="req_1",
        name="Deep",
        parent_id="wrk_1",
        method="POST",
        url="https://x.test/",
        body=RequestBody(mime_type="application/json", text=text),
    )

    async with client:
        outcome = await executor.execute(request, {})

    assert outcome.failed is False
    assert isinstance(outcome.sent.body, RawText)
    assert outcome.sent.body.parse_error
    assert captured["content"] == text.encode("utf-8")

@pytest.mark.asyncio
async def test_disabled_headers_and_params_are_not_sent(settings) -> None:
    captured = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["headers"] = request.headers
        return httpx.Response(200)

    executor, client = _executor(settings, handler)
    request = Request(
        id="req_1",
        name="Search",
        parent_id="wrk_1",
        url="https://x.test/search",
        headers=[Header("X-Keep", "{{v}}"), Header("X-Drop", "gone", disabled=True)],
        parameters=[Parameter("q", "{{v}}"), Parameter("skip", "1", disabled=True)],
    )

    async with client:
        outcome = await executor.execute(request, {"v": "cats"})

    assert captured["url"] == "https://x.test/search?q=cats"
    assert captured["headers"]["x-keep"] == "cats"
    assert "x-drop" not in captured["headers"]
    assert outcome.body == ""


@pytest.mark.asyncio
async def test_repeated_response_headers_are_joined(settings) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers=[("set-cookie", "a=1"), ("set-cookie", "b=2")], text="ok")

    executor, client = _executor(settings, handler)
    request = Request(id="req_1", name="Cookies", parent_id="wrk_1", url="https://x.test/")

    async with client:
        outcome = await executor.execute(request, {})

    assert outcome.headers["set-cookie"] == "a=1, b=2"


def test_basic_auth_header() -> None:
    auth = Authentication(type="basic", username="user", password="pass")
    assert authorization_header(auth) == "Basic dXNlcjpwYXNz"


def test_auth_disabled_or_unsupported_is_ignored() -> None:
    assert authorization_header(Authentication(type="bearer", token="t", disabled=True)) is None
    assert authorization_header(Authentication(type="digest", username="u")) is None
    assert authorization_header(Authentication(type="bearer", token="t", prefix="Token")) == "Token t"


def test_auth_replaces_configured_authorization_header(settings) -> None:
    executor = RequestExecutor(HttpxTransport(settings=settings), settings=settings)
    request = Request(
        id="req_1",
        name="R",
        parent_id="wrk_1",
        headers=[Header("authorization", "stale")],
        authentication=Authentication(type="bearer", token="{{t}}"),
    )

    prepared = executor.prepare(request, {"t": "fresh"})

    assert prepared.headers == {"Authorization": "Bearer fresh"}


def test_graphql_body_is_restructured() -> None:
    body = prepare_body(
        RenderedBody(mime_type="application/graphql", graphql_query="{ me { id } }", graphql_variables='{"a": 1}')
    )
    assert body == ParsedBody({"query": "{ me { id } }", "variables": {"a": 1}})

    broken = prepare_body(
        RenderedBody(mime_type="application/graphql", graphql_query="{ me }", graphql_variables="{not json")
    )
    assert broken == ParsedBody({"query": "{ me }", "variables": {}})


def test_graphql_request_body_renders_before_parse(settings) -> None:
    executor = RequestExecutor(HttpxTransport(settings=settings), settings=settings)
    request = Request(
        id="req_1",
        name="Q",
        parent_id="wrk_1",
        method="POST",
        body=RequestBody(
            mime_type="application/graphql",
            graphql=GraphQLBody(query="query { user(id: {{id}}) }", variables='{"id": {{id}}}'),
        ),
    )

    prepared = executor.prepare(request, {"id": 9})

    assert prepared.body == ParsedBody({"query": "query { user(id: 9) }", "variables": {"id": 9}})


def test_non_json_text_and_form_bodies() -> None:
    assert prepare_body(RenderedBody(mime_type="text/plain", text="{oops")) == RawText("{oops")
    assert prepare_body(RenderedBody(mime_type="application/json; charset=utf-8", text="[1]")) == ParsedBody([1])
    assert prepare_body(RenderedBody(mime_type="application/json", text="")) is None
    assert prepare_body(RenderedBody(form={"a": "1"})).fields == {"a": "1"}


def test_form_parameters_render_into_form_body(settings) -> None:
    executor = RequestExecutor(HttpxTransport(settings=settings), settings=settings)
    request = Request(
        id="req_1",
        name="Login",
        parent_id="wrk_1",
        method="POST",
        body=RequestBody(
            mime_type="application/x-www-form-urlencoded",
            params=[FormParameter("user", "{{user}}")],
        ),
    )

    prepared = executor.prepare(request, {"user": "ann"})

    assert prepared.body.fields == {"user": "ann"}
