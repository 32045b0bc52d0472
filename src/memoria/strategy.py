"""Dataset naming strategies and organization ownership checks.

Every generated name starts with ``organization_{id}`` so that ownership can
be recovered from the name alone.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from memoria.types import CustomScope, OrganizationScope, ProjectScope, UserScope
from memoria.validate import DATASET_NAME_RE, MAX_DATASET_NAME_LENGTH

if TYPE_CHECKING:
    from collections.abc import Mapping

    from memoria.types import DatasetStrategy, Session

_ORG_PREFIX_RE = re.compile(r"^organization_([^_]+)")


def generate_dataset_name(
    strategy: DatasetStrategy,
    session: Session,
    custom_context: Mapping[str, Any] | None = None,
) -> str:
    """Return the dataset name *strategy* assigns within *session*.

    Custom strategies receive ``organization_id`` and ``user_id`` from the
    session, merged with *custom_context*.
    """
    match strategy:
        case UserScope(organization_id=org, user_id=user):
            return f"organization_{org}_user_{user}_memories"
        case ProjectScope(organization_id=org, project_id=project):
            return f"organization_{org}_project_{project}_knowledge"
        case OrganizationScope(organization_id=org):
            return f"organization_{org}_shared"
        case CustomScope(naming_fn=naming_fn):
            context = {
                "organization_id": session.organization_id,
                "user_id": session.user_id,
                **(custom_context or {}),
            }
            return naming_fn(context)
    raise TypeError(f"Unsupported dataset strategy: {type(strategy).__name__}")


def is_valid_dataset_name(name: str) -> bool:
    """Return True when *name* could be accepted by the service."""
    if not name or len(name) > MAX_DATASET_NAME_LENGTH:
        return False
    return DATASET_NAME_RE.match(name) is not None


def extract_organization_id(dataset_name: str) -> str | None:
    """Return the organization id encoded in an ``organization_{id}_...`` name."""
    match = _ORG_PREFIX_RE.match(dataset_name)
    return match.group(1) if match else None


def is_organization_dataset(dataset_name: str, organization_id: str) -> bool:
    """Return True when *dataset_name* belongs to *organization_id*."""
    return extract_organization_id(dataset_name) == organization_id
