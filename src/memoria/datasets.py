"""Dataset management scoped to the session's organization, plus sharing."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from memoria._calls import call_service
from memoria.memory_errors import InvalidInput
from memoria.outcome import Failure, Outcome, Success
from memoria.strategy import is_organization_dataset
from memoria.types import Dataset, DatasetDataItem, DatasetGraph

if TYPE_CHECKING:
    from collections.abc import Sequence

    from memoria.types import Permission, Session

logger = logging.getLogger(__name__)


def _to_dataset(raw: dict[str, Any]) -> Dataset:
    # The service does not report permissions in dataset listings.
    return Dataset(
        id=str(raw["id"]),
        name=str(raw["name"]),
        owner_id=str(raw.get("owner_id", "")),
        created_at=str(raw.get("created_at", "")),
        updated_at=raw.get("updated_at"),
    )


def _to_data_item(raw: dict[str, Any]) -> DatasetDataItem:
    node_set = raw.get("nodeSet", raw.get("node_set"))
    return DatasetDataItem(
        id=str(raw["id"]),
        name=str(raw.get("name", "")),
        created_at=str(raw.get("createdAt", raw.get("created_at", ""))),
        updated_at=raw.get("updatedAt", raw.get("updated_at")),
        extension=raw.get("extension"),
        mime_type=raw.get("mimeType", raw.get("mime_type")),
        raw_data_location=raw.get("rawDataLocation", raw.get("raw_data_location")),
        dataset_id=str(raw.get("datasetId", raw.get("dataset_id", ""))),
        node_set=tuple(node_set) if node_set is not None else None,
    )


async def list_datasets(session: Session) -> Outcome[tuple[Dataset, ...]]:
    """List datasets that belong to the session's organization."""

    async def fetch() -> tuple[Dataset, ...]:
        datasets = await session.client.get_datasets()
        return tuple(
            _to_dataset(raw)
            for raw in datasets
            if is_organization_dataset(str(raw.get("name", "")), session.organization_id)
        )

    return await call_service(session, "get_datasets", fetch)


async def create_dataset(session: Session, name: str) -> Outcome[Dataset]:
    """Create a dataset; *name* must carry the session's organization prefix."""
    if not is_organization_dataset(name, session.organization_id):
        return Failure(
            InvalidInput(
                field="name",
                message=(
                    f"Dataset name must belong to organization {session.organization_id}"
                ),
            )
        )

    async def create() -> Dataset:
        return _to_dataset(await session.client.create_dataset(name))

    created = await call_service(session, "create_dataset", create)
    if isinstance(created, Success):
        logger.info("Created dataset %s", name)
    return created


async def get_dataset_graph(session: Session, dataset_id: str) -> Outcome[DatasetGraph]:
    """Return the knowledge graph built for one dataset."""

    async def fetch() -> DatasetGraph:
        payload = await session.client.get_dataset_graph(dataset_id) or {}
        return DatasetGraph(
            nodes=tuple(payload.get("nodes") or ()),
            edges=tuple(payload.get("edges") or ()),
        )

    return await call_service(session, "get_dataset_graph", fetch)


async def get_dataset_data(
    session: Session, dataset_id: str
) -> Outcome[tuple[DatasetDataItem, ...]]:
    """Return the data items stored in one dataset."""

    async def fetch() -> tuple[DatasetDataItem, ...]:
        items = await session.client.get_dataset_data(dataset_id)
        return tuple(_to_data_item(raw) for raw in items or ())

    return await call_service(session, "get_dataset_data", fetch)


async def delete_dataset(session: Session, dataset_id: str) -> Outcome[None]:
    """Delete a dataset and everything stored in it."""
    return await call_service(
        session, "delete_dataset", lambda: session.client.delete_dataset(dataset_id)
    )


async def share_dataset(
    session: Session,
    dataset_id: str,
    user_id: str,
    permissions: Sequence[Permission],
) -> Outcome[None]:
    """Grant *user_id* each of *permissions* on one dataset.

    Grants are issued one permission at a time and stop at the first failure;
    earlier grants are not rolled back.
    """
    for permission in permissions:
        granted = await call_service(
            session,
            "grant_dataset_permissions",
            lambda p=permission: session.client.grant_dataset_permissions(
                user_id, p, [dataset_id]
            ),
        )
        if isinstance(granted, Failure):
            return granted
    return Success(None)


async def revoke_access(session: Session, dataset_id: str, user_id: str) -> Outcome[None]:
    """Not supported by the memory service; always fails with ``InvalidInput``."""
    logger.debug(
        "Revoke requested for dataset %s and user %s in organization %s",
        dataset_id,
        user_id,
        session.organization_id,
    )
    return Failure(
        InvalidInput(
            field="operation",
            message="Revoke access is not yet supported by the memory service",
        )
    )
