"""Dataset management, sharing and role operations."""

from __future__ import annotations

import httpx
import pytest

from memoria.datasets import (
    create_dataset,
    delete_dataset,
    get_dataset_data,
    get_dataset_graph,
    list_datasets,
    revoke_access,
    share_dataset,
)
from memoria.memory_errors import InvalidInput, PermissionDenied, UnknownError
from memoria.outcome import Failure, Success
from memoria.roles import (
    add_user_to_role,
    create_role,
    grant_permission_to_role,
    grant_permissions_to_role,
)
from memoria.types import Dataset, DatasetGraph
from tests.helpers import FakeService, json_body, make_session

pytestmark = pytest.mark.unit

DATASET_UUID = "0b6a3c1e-5f2d-4a8b-9c7e-1d2f3a4b5c6d"


def _dataset(name: str, id_: str = "ds-1") -> dict:
    return {
        "id": id_,
        "name": name,
        "owner_id": "owner-1",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": None,
    }


@pytest.mark.asyncio
async def test_list_datasets_keeps_only_organization_datasets() -> None:
    service = FakeService()
    service.route(
        "GET",
        "/api/v1/datasets",
        [
            _dataset("organization_acme_shared", "a"),
            _dataset("organization_globex_shared", "b"),
            _dataset("scratch", "c"),
        ],
    )

    outcome = await list_datasets(make_session(service))

    assert outcome == Success(
        (
            Dataset(
                id="a",
                name="organization_acme_shared",
                owner_id="owner-1",
                created_at="2024-01-01T00:00:00Z",
                updated_at=None,
            ),
        )
    )


@pytest.mark.asyncio
async def test_create_dataset_rejects_foreign_names() -> None:
    service = FakeService()

    outcome = await create_dataset(make_session(service), "organization_globex_shared")

    assert isinstance(outcome, Failure)
    assert outcome.error.field == "name"
    assert "acme" in outcome.error.message
    assert service.requests == []


@pytest.mark.asyncio
async def test_create_dataset_posts_name() -> None:
    service = FakeService()
    service.route("POST", "/api/v1/datasets", _dataset("organization_acme_shared"))

    outcome = await create_dataset(make_session(service), "organization_acme_shared")

    assert isinstance(outcome, Success)
    assert outcome.value.name == "organization_acme_shared"
    assert json_body(service.requests[0]) == {"name": "organization_acme_shared"}


@pytest.mark.asyncio
async def test_get_dataset_graph_passes_nodes_and_edges_through() -> None:
    service = FakeService()
    graph = {
        "nodes": [{"id": "n1", "label": "Paris"}],
        "edges": [{"source": "n1", "target": "n2", "label": "capital_of"}],
    }
    service.route("GET", "/api/v1/datasets/ds-1/graph", graph)

    outcome = await get_dataset_graph(make_session(service), "ds-1")

    assert outcome == Success(
        DatasetGraph(nodes=tuple(graph["nodes"]), edges=tuple(graph["edges"]))
    )


@pytest.mark.asyncio
async def test_get_dataset_data_maps_camel_case_fields() -> None:
    service = FakeService()
    service.route(
        "GET",
        "/api/v1/datasets/ds-1/data",
        [
            {
                "id": "item-1",
                "name": "content.txt",
                "createdAt": "2024-01-01T00:00:00Z",
                "updatedAt": None,
                "extension": "txt",
                "mimeType": "text/plain",
                "rawDataLocation": "/data/content.txt",
                "datasetId": "ds-1",
                "nodeSet": ["card-1"],
            }
        ],
    )

    outcome = await get_dataset_data(make_session(service), "ds-1")

    assert isinstance(outcome, Success)
    (item,) = outcome.value
    assert item.mime_type == "text/plain"
    assert item.raw_data_location == "/data/content.txt"
    assert item.dataset_id == "ds-1"
    assert item.node_set == ("card-1",)


@pytest.mark.asyncio
async def test_delete_dataset_forbidden_maps_to_permission_denied() -> None:
    service = FakeService()
    service.route(
        "DELETE",
        f"/api/v1/datasets/{DATASET_UUID}",
        lambda _r: httpx.Response(
            403, json={"detail": f"User lacks delete on dataset {DATASET_UUID}"}
        ),
    )

    outcome = await delete_dataset(make_session(service), DATASET_UUID)

    assert outcome == Failure(
        PermissionDenied(dataset_id=DATASET_UUID, required_permission="read")
    )


@pytest.mark.asyncio
async def test_share_dataset_grants_each_permission() -> None:
    service = FakeService()
    service.route("POST", "/api/v1/permissions/datasets/user-2", {})

    outcome = await share_dataset(make_session(service), "ds-1", "user-2", ["read", "write"])

    assert outcome == Success(None)
    assert [r.url.params["permission_name"] for r in service.requests] == ["read", "write"]
    assert all(json_body(r) == ["ds-1"] for r in service.requests)


@pytest.mark.asyncio
async def test_share_dataset_stops_at_first_failure() -> None:
    service = FakeService()
    service.route(
        "POST",
        "/api/v1/permissions/datasets/user-2",
        lambda _r: httpx.Response(403, json={"detail": "nope"}),
    )

    outcome = await share_dataset(make_session(service), "ds-1", "user-2", ["read", "write"])

    assert isinstance(outcome, Failure)
    assert len(service.requests) == 1


@pytest.mark.asyncio
async def test_revoke_access_is_unsupported() -> None:
    service = FakeService()

    outcome = await revoke_access(make_session(service), "ds-1", "user-2")

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, InvalidInput)
    assert outcome.error.field == "operation"
    assert service.requests == []


# --- Roles ---


@pytest.mark.asyncio
async def test_create_role_and_membership() -> None:
    service = FakeService()
    service.route("POST", "/api/v1/permissions/roles", {"id": "role-1"})
    service.route("POST", "/api/v1/permissions/users/user-2/roles", {})
    session = make_session(service)

    assert await create_role(session, "editors") == Success(None)
    assert await add_user_to_role(session, "user-2", "role-1") == Success(None)

    role, membership = service.requests
    assert role.url.params["role_name"] == "editors"
    assert membership.url.params["role_id"] == "role-1"


@pytest.mark.asyncio
async def test_grant_permissions_to_role_targets_all_datasets() -> None:
    service = FakeService()
    service.route("POST", "/api/v1/permissions/datasets/role-1", {})
    session = make_session(service)

    single = await grant_permission_to_role(session, "role-1", "read", ["d1", "d2"])
    many = await grant_permissions_to_role(session, "role-1", ["write", "share"], ["d1"])

    assert single == Success(None)
    assert many == Success(None)
    assert [r.url.params["permission_name"] for r in service.requests] == [
        "read",
        "write",
        "share",
    ]
    assert json_body(service.requests[0]) == ["d1", "d2"]


# --- Malformed responses ---


@pytest.mark.asyncio
async def test_create_dataset_with_empty_record_fails_cleanly() -> None:
    service = FakeService()
    service.route("POST", "/api/v1/datasets", {})

    outcome = await create_dataset(make_session(service), "organization_acme_shared")

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, UnknownError)


@pytest.mark.asyncio
async def test_create_dataset_with_no_body_fails_cleanly() -> None:
    service = FakeService()
    service.route("POST", "/api/v1/datasets", lambda _r: httpx.Response(200))

    outcome = await create_dataset(make_session(service), "organization_acme_shared")

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, UnknownError)


@pytest.mark.asyncio
async def test_list_datasets_with_entry_missing_id_fails_cleanly() -> None:
    service = FakeService()
    service.route("GET", "/api/v1/datasets", [{"name": "organization_acme_shared"}])

    outcome = await list_datasets(make_session(service))

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, UnknownError)
