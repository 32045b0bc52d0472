"""Role management inside the session user's tenant."""

from __future__ import annotations

from typing import TYPE_CHECKING

from memoria._calls import call_service
from memoria.outcome import Failure, Outcome, Success

if TYPE_CHECKING:
    from collections.abc import Sequence

    from memoria.types import Permission, Session


async def create_role(session: Session, role_name: str) -> Outcome[None]:
    """Create a role in the tenant of the authenticated user."""
    created = await call_service(
        session, "create_role", lambda: session.client.create_role(role_name)
    )
    if isinstance(created, Failure):
        return created
    return Success(None)


async def add_user_to_role(
    session: Session, user_id: str, role_id: str
) -> Outcome[None]:
    """Add *user_id* to the role *role_id*."""
    return await call_service(
        session,
        "add_user_to_role",
        lambda: session.client.add_user_to_role(user_id, role_id),
    )


async def grant_permission_to_role(
    session: Session,
    role_id: str,
    permission: Permission,
    dataset_ids: Sequence[str],
) -> Outcome[None]:
    """Grant one permission on *dataset_ids* to every member of *role_id*."""
    return await call_service(
        session,
        "grant_dataset_permissions",
        lambda: session.client.grant_dataset_permissions(
            role_id, permission, list(dataset_ids)
        ),
    )


async def grant_permissions_to_role(
    session: Session,
    role_id: str,
    permissions: Sequence[Permission],
    dataset_ids: Sequence[str],
) -> Outcome[None]:
    """Grant several permissions, stopping at the first failure."""
    for permission in permissions:
        granted = await grant_permission_to_role(
            session, role_id, permission, dataset_ids
        )
        if isinstance(granted, Failure):
            return granted
    return Success(None)
