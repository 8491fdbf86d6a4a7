from __future__ import annotations

import httpx
import pytest

from collection_runner.api import HttpxTransport
from collection_runner.errors import CollectionNotFoundError, FolderNotFoundError, RequestNotFoundError
from collection_runner.execution import RequestExecutor
from collection_runner.pipelines import ExecutionPipeline
from collection_runner.services import CollectionService
from collection_runner.storage import InMemoryCollectionStore, JsonCollectionStore


@pytest.fixture()
def service(settings) -> CollectionService:
    return CollectionService(JsonCollectionStore(settings=settings))


def test_create_collection_and_nested_folders(service) -> None:
    structure = service.create_collection("Shop API", description="storefront")
    outer = service.create_folder(structure.id, "Orders")
    inner = service.create_folder(structure.id, "Refunds", parent_id=outer.id)

    assert structure.id.startswith("wrk_")
    assert outer.parent_id == structure.id
    assert inner.parent_id == outer.id
    summaries = service.list_collections()
    assert [(s.name, s.folder_count) for s in summaries] == [("Shop API", 2)]


def test_create_folder_under_unknown_parent(service) -> None:
    structure = service.create_collection("API")

    with pytest.raises(FolderNotFoundError):
        service.create_folder(structure.id, "Lost", parent_id="fld_missing")
    assert service.get_collection(structure.id).folders == []


def test_unknown_collection(service) -> None:
    with pytest.raises(CollectionNotFoundError, match="wrk_missing"):
        service.create_folder("wrk_missing", "X")


def test_request_crud(service) -> None:
    structure = service.create_collection("API")
    folder = service.create_folder(structure.id, "Users")
    request = service.create_request(
        structure.id,
        "Get user",
        method="get",
        url="{{baseUrl}}/users/{{id}}",
        folder_id=folder.id,
        headers=[{"name": "Accept", "value": "application/json"}],
        authentication={"type": "bearer", "token": "{{token}}"},
    )

    assert request.id.startswith("req_")
    assert request.method == "GET"
    assert request.parent_id == folder.id
    assert service.get_request(request.id).headers[0].name == "Accept"

    updated = service.update_request(request.id, method="put", body={"mimeType": "application/json", "text": "{}"})
    assert updated.method == "PUT"
    assert updated.body is not None and updated.body.text == "{}"

    with pytest.raises(TypeError):
        service.update_request(request.id, colour="red")

    service.delete_request(request.id)
    with pytest.raises(RequestNotFoundError):
        service.get_request(request.id)


def test_environment_variables(service) -> None:
    structure = service.create_collection("API")

    base = service.set_environment_variable(structure.id, "token", "abc")
    again = service.set_environment_variable(structure.id, "retries", 3)
    staging = service.create_environment(structure.id, "Staging", {"token": "stg"})

    assert base.id == again.id
    assert again.data == {"token": "abc", "retries": 3}
    assert base.parent_id == structure.id
    assert staging.parent_id == base.id
    assert [env.id for env in service.get_environment_variables(structure.id)] == [base.id, staging.id]
    assert service.get_environment_variables(structure.id, environment_id=staging.id)[0].data == {"token": "stg"}


@pytest.mark.asyncio
async def test_service_built_tree_executes_with_layered_variables(settings) -> None:
    store = InMemoryCollectionStore()
    service = CollectionService(store)
    service.create_global_environment("proj_shop", {"baseUrl": "https://shop.test", "version": "v1"})
    structure = service.create_collection("Shop", project_id="proj_shop")
    service.set_environment_variable(structure.id, "version", "v2")
    folder = service.create_folder(structure.id, "Orders", environment={"resource": "orders"})
    service.set_folder_variable(structure.id, folder.id, "limit", 10)
    request = service.create_request(
        structure.id,
        "List",
        url="{{baseUrl}}/{{version}}/{{resource}}?limit={{limit}}",
        folder_id=folder.id,
    )

    seen: list[str] = []

    async def handler(req: httpx.Request) -> httpx.Response:
        seen.append(str(req.url))
        return httpx.Response(200, json=[])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        executor = RequestExecutor(HttpxTransport(settings=settings, client=client), settings=settings)
        report = await ExecutionPipeline(store=store, executor=executor).run(request.id)

    assert seen == ["https://shop.test/v2/orders?limit=10"]
    assert len(service.get_history(request.id)) == 1
    assert service.get_history(request.id, limit=0) == []
    assert report.record is not None
