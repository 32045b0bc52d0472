"""Client-side input validation returning Outcomes.

Validation runs before any network call so bad input fails fast with an
``InvalidInput`` naming the offending field.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

from memoria.memory_errors import InvalidInput, OrganizationRequired
from memoria.outcome import Failure, Outcome, Success

MAX_DATASET_NAME_LENGTH = 100
MAX_QUERY_LENGTH = 10_000

DATASET_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def _invalid(field: str, message: str) -> Failure:
    return Failure(InvalidInput(field=field, message=message))


def validate_dataset_name(name: str) -> Outcome[str]:
    """Check length and the allowed character set of a dataset name."""
    if not name:
        return _invalid("dataset_name", "Dataset name cannot be empty")
    if len(name) > MAX_DATASET_NAME_LENGTH:
        return _invalid(
            "dataset_name",
            f"Dataset name too long (max {MAX_DATASET_NAME_LENGTH} chars)",
        )
    if not DATASET_NAME_RE.match(name):
        return _invalid(
            "dataset_name",
            "Dataset name can only contain alphanumeric, underscore, and hyphen",
        )
    return Success(name)


def validate_organization_id(organization_id: str | None) -> Outcome[str]:
    """Require a non-blank organization id."""
    if not organization_id or not organization_id.strip():
        return Failure(OrganizationRequired(message="Organization ID is required"))
    return Success(organization_id)


def validate_user_id(user_id: str | None) -> Outcome[str]:
    """Require a non-blank user id."""
    if not user_id or not user_id.strip():
        return _invalid("user_id", "User ID is required")
    return Success(user_id)


def validate_query(query: str | None) -> Outcome[str]:
    """Reject blank queries and queries longer than ``MAX_QUERY_LENGTH``."""
    if not query or not query.strip():
        return _invalid("query", "Query cannot be empty")
    if len(query) > MAX_QUERY_LENGTH:
        return _invalid("query", f"Query too long (max {MAX_QUERY_LENGTH} chars)")
    return Success(query)


def validate_url(url: str) -> Outcome[str]:
    """Accept absolute URLs: a scheme and a host are both required."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return _invalid("url", "Invalid URL format")
    if not parts.scheme or not parts.netloc:
        return _invalid("url", "Invalid URL format")
    return Success(url)


def validate_content(content: Any) -> Outcome[Any]:
    """Reject missing content."""
    if content is None:
        return _invalid("content", "Content is required")
    return Success(content)
