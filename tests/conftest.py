from __future__ import annotations

from pathlib import Path

import pytest

from collection_runner.config import Settings
from collection_runner.models import (
    CollectionStructure,
    Environment,
    Folder,
    Request,
    Workspace,
)
from collection_runner.storage import InMemoryCollectionStore


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(storage_dir=tmp_path / "store", request_timeout_seconds=5.0)


def build_collections() -> dict[str, CollectionStructure]:
    """A project with a global environment and one API workspace.

    proj_1
    ├── wrk_global (scope=environment)  env_global {baseUrl}
    └── wrk_api                          env_base {token: abc, region: eu}
        ├── env_staging (sub env)        {region: us, stage: staging}
        └── fld_users                    {token: xyz}
            └── fld_admin                {role: admin}
                └── req_admin
        └── req_users (in fld_users)
    """

    global_workspace = Workspace(id="wrk_global", name="Globals", scope="environment", parent_id="proj_1")
    global_collection = CollectionStructure(
        workspace=global_workspace,
        environments=[
            Environment(
                id="env_global",
                name="Global Environment",
                parent_id="wrk_global",
                data={"baseUrl": "https://api.example.com", "region": "global"},
            )
        ],
    )

    api_workspace = Workspace(id="wrk_api", name="API", parent_id="proj_1")
    api_collection = CollectionStructure(
        workspace=api_workspace,
        folders=[
            Folder(id="fld_users", name="Users", parent_id="wrk_api", environment={"token": "xyz"}),
            Folder(id="fld_admin", name="Admin", parent_id="fld_users", environment={"role": "admin"}),
        ],
        requests=[
            Request(id="req_users", name="List users", parent_id="fld_users", url="{{baseUrl}}/users"),
            Request(id="req_admin", name="Admin", parent_id="fld_admin", url="{{baseUrl}}/admin/{{role}}"),
            Request(id="req_root", name="Root", parent_id="wrk_api", url="{{baseUrl}}/"),
        ],
        environments=[
            Environment(id="env_base", name="Base", parent_id="wrk_api", data={"token": "abc", "region": "eu"}),
            Environment(
                id="env_staging",
                name="Staging",
                parent_id="env_base",
                data={"region": "us", "stage": "staging"},
            ),
        ],
    )
    return {"wrk_global": global_collection, "wrk_api": api_collection}


@pytest.fixture()
def collections() -> dict[str, CollectionStructure]:
    return build_collections()


@pytest.fixture()
def memory_store(collections: dict[str, CollectionStructure]) -> InMemoryCollectionStore:
    return InMemoryCollectionStore(collections)
