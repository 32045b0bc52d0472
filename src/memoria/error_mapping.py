"""Map service and transport exceptions into the domain error taxonomy.

Every Failure produced by the SDK passes through ``map_service_error`` so the
retry policy can rely on a stable error kind.
"""

from __future__ import annotations

import asyncio
import re

import httpx

from memoria.errors import _walk_exception_chain
from memoria.memory_errors import (
    AuthenticationFailed,
    DatasetNotFound,
    InvalidInput,
    MemoryErrorDetail,
    NetworkError,
    PermissionDenied,
    UnknownError,
)

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)

# Status assigned to transport failures that never produced a response.
TRANSPORT_FAILURE_STATUS = 503


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def extract_dataset_id(message: str) -> str:
    """Return the first UUID in *message*, or ``"unknown"``."""
    match = _UUID_RE.search(message)
    return match.group(0) if match else "unknown"


def _is_transport_error(exc: BaseException) -> bool:
    for e in _walk_exception_chain(exc):
        if isinstance(e, (httpx.TimeoutException, httpx.RequestError, TimeoutError)):
            return True
    return False


def map_service_error(exc: BaseException) -> MemoryErrorDetail:
    """Classify *exc* into a MemoryErrorDetail.

    Cancellation is never mapped; it is re-raised.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    message = str(exc)
    status = extract_status_code(exc)

    if status is None:
        if _is_transport_error(exc):
            return NetworkError(
                status_code=TRANSPORT_FAILURE_STATUS,
                message=message or "Network error occurred",
            )
        return UnknownError(message=message or "An unknown error occurred")

    if status == 401:
        return AuthenticationFailed(message=message or "Authentication failed")
    if status == 403:
        return PermissionDenied(
            dataset_id=extract_dataset_id(message), required_permission="read"
        )
    if status == 404:
        return DatasetNotFound(dataset_id=extract_dataset_id(message))
    if status >= 500:
        return NetworkError(
            status_code=status, message=message or "Network error occurred"
        )
    if status in (400, 422):
        return InvalidInput(field="unknown", message=message or "Invalid input")
    return NetworkError(status_code=status, message=message or "Unknown error occurred")
