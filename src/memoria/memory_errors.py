"""Domain error taxonomy carried by the Failure variant.

Each kind is a small frozen dataclass with kind-specific context. The union
is named ``MemoryErrorDetail`` so the builtin ``MemoryError`` stays intact.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    """Fixed set of failure tags used by retry policy membership tests."""

    AUTHENTICATION_FAILED = "authentication_failed"
    PERMISSION_DENIED = "permission_denied"
    DATASET_NOT_FOUND = "dataset_not_found"
    PROCESSING_FAILED = "processing_failed"
    NETWORK_ERROR = "network_error"
    INVALID_INPUT = "invalid_input"
    ORGANIZATION_REQUIRED = "organization_required"
    UNKNOWN_ERROR = "unknown_error"


@dataclass(frozen=True, slots=True)
class AuthenticationFailed:
    """The service rejected the credentials or token (401)."""

    message: str

    @property
    def kind(self) -> ErrorKind:
        """Tag used for retry membership and matching."""
        return ErrorKind.AUTHENTICATION_FAILED


@dataclass(frozen=True, slots=True)
class PermissionDenied:
    """The user lacks a permission on a dataset (403)."""

    dataset_id: str
    required_permission: str

    @property
    def kind(self) -> ErrorKind:
        """Tag used for retry membership and matching."""
        return ErrorKind.PERMISSION_DENIED

    @property
    def message(self) -> str:
        """Human-readable summary."""
        return (
            f"Permission {self.required_permission!r} denied on dataset "
            f"{self.dataset_id}"
        )


@dataclass(frozen=True, slots=True)
class DatasetNotFound:
    """The referenced dataset does not exist (404)."""

    dataset_id: str

    @property
    def kind(self) -> ErrorKind:
        """Tag used for retry membership and matching."""
        return ErrorKind.DATASET_NOT_FOUND

    @property
    def message(self) -> str:
        """Human-readable summary."""
        return f"Dataset {self.dataset_id} not found"


@dataclass(frozen=True, slots=True)
class ProcessingFailed:
    """Graph building failed for a dataset."""

    dataset_id: str
    reason: str

    @property
    def kind(self) -> ErrorKind:
        """Tag used for retry membership and matching."""
        return ErrorKind.PROCESSING_FAILED

    @property
    def message(self) -> str:
        """Human-readable summary."""
        return f"Processing failed for dataset {self.dataset_id}: {self.reason}"


@dataclass(frozen=True, slots=True)
class NetworkError:
    """Transport failure, server error, or an open circuit."""

    status_code: int
    message: str

    @property
    def kind(self) -> ErrorKind:
        """Tag used for retry membership and matching."""
        return ErrorKind.NETWORK_ERROR


@dataclass(frozen=True, slots=True)
class InvalidInput:
    """Client-side validation failed, or the service rejected the request (400/422)."""

    field: str
    message: str

    @property
    def kind(self) -> ErrorKind:
        """Tag used for retry membership and matching."""
        return ErrorKind.INVALID_INPUT


@dataclass(frozen=True, slots=True)
class OrganizationRequired:
    """An operation needs an organization id and none was given."""

    message: str

    @property
    def kind(self) -> ErrorKind:
        """Tag used for retry membership and matching."""
        return ErrorKind.ORGANIZATION_REQUIRED


@dataclass(frozen=True, slots=True)
class UnknownError:
    """Anything the mapper cannot classify."""

    message: str

    @property
    def kind(self) -> ErrorKind:
        """Tag used for retry membership and matching."""
        return ErrorKind.UNKNOWN_ERROR


MemoryErrorDetail = (
    AuthenticationFailed
    | PermissionDenied
    | DatasetNotFound
    | ProcessingFailed
    | NetworkError
    | InvalidInput
    | OrganizationRequired
    | UnknownError
)

CIRCUIT_OPEN_STATUS = 503
CIRCUIT_OPEN_MESSAGE = "Circuit breaker is open"


def circuit_open_error() -> NetworkError:
    """Synthetic failure returned while a circuit breaker rejects calls."""
    return NetworkError(status_code=CIRCUIT_OPEN_STATUS, message=CIRCUIT_OPEN_MESSAGE)
