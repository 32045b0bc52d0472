"""Memoria: organization-scoped client for a remote knowledge-graph memory service.

Public API:
    - create_session() / end_session(): Authenticate and sign out
    - remember() / remember_many() / forget() / process(): Ingest and build graphs
    - search() and friends: Query memories
    - with_retry() / CircuitBreaker: Resilience primitives over Outcomes
    - Success / Failure: The Outcome every operation returns
"""

from __future__ import annotations

import logging

from memoria.circuit_breaker import CircuitBreaker, CircuitState
from memoria.config import FrozenConfig, resolve_config
from memoria.datasets import (
    create_dataset,
    delete_dataset,
    get_dataset_data,
    get_dataset_graph,
    list_datasets,
    revoke_access,
    share_dataset,
)
from memoria.error_mapping import map_service_error
from memoria.errors import ConfigurationError, MemoriaError, ServiceError
from memoria.memory import (
    forget,
    get_processing_status,
    process,
    remember,
    remember_many,
)
from memoria.memory_errors import (
    AuthenticationFailed,
    DatasetNotFound,
    ErrorKind,
    InvalidInput,
    MemoryErrorDetail,
    NetworkError,
    OrganizationRequired,
    PermissionDenied,
    ProcessingFailed,
    UnknownError,
)
from memoria.outcome import Failure, Outcome, Success, is_failure, is_success
from memoria.retrieval import (
    get_search_history,
    search,
    search_chunks,
    search_code,
    search_graph,
    search_insights,
    search_summaries,
)
from memoria.retry import DEFAULT_RETRY_STRATEGY, RetryStrategy, with_retry
from memoria.roles import (
    add_user_to_role,
    create_role,
    grant_permission_to_role,
    grant_permissions_to_role,
)
from memoria.session import create_session, end_session
from memoria.strategy import (
    extract_organization_id,
    generate_dataset_name,
    is_organization_dataset,
    is_valid_dataset_name,
)
from memoria.types import (
    Credentials,
    CustomScope,
    Dataset,
    DatasetDataItem,
    DatasetGraph,
    FileContent,
    Memory,
    OrganizationScope,
    ProcessingComplete,
    ProcessingErrored,
    ProcessingInProgress,
    ProcessingReference,
    ProjectScope,
    Query,
    SearchFound,
    SearchHistoryFilters,
    SearchHistoryItem,
    SearchNotFound,
    SearchResultItem,
    SearchType,
    Session,
    TextContent,
    UrlContent,
    UserScope,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("memoria-sdk")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("memoria").addHandler(logging.NullHandler())

__all__ = [
    "DEFAULT_RETRY_STRATEGY",
    "AuthenticationFailed",
    "CircuitBreaker",
    "CircuitState",
    "ConfigurationError",
    "Credentials",
    "CustomScope",
    "Dataset",
    "DatasetDataItem",
    "DatasetGraph",
    "DatasetNotFound",
    "ErrorKind",
    "Failure",
    "FileContent",
    "FrozenConfig",
    "InvalidInput",
    "MemoriaError",
    "Memory",
    "MemoryErrorDetail",
    "NetworkError",
    "OrganizationRequired",
    "OrganizationScope",
    "Outcome",
    "PermissionDenied",
    "ProcessingComplete",
    "ProcessingErrored",
    "ProcessingFailed",
    "ProcessingInProgress",
    "ProcessingReference",
    "ProjectScope",
    "Query",
    "RetryStrategy",
    "SearchFound",
    "SearchHistoryFilters",
    "SearchHistoryItem",
    "SearchNotFound",
    "SearchResultItem",
    "SearchType",
    "ServiceError",
    "Session",
    "Success",
    "TextContent",
    "UnknownError",
    "UrlContent",
    "UserScope",
    "add_user_to_role",
    "create_dataset",
    "create_role",
    "create_session",
    "delete_dataset",
    "end_session",
    "extract_organization_id",
    "forget",
    "generate_dataset_name",
    "get_dataset_data",
    "get_dataset_graph",
    "get_processing_status",
    "get_search_history",
    "grant_permission_to_role",
    "grant_permissions_to_role",
    "is_failure",
    "is_organization_dataset",
    "is_success",
    "is_valid_dataset_name",
    "list_datasets",
    "map_service_error",
    "process",
    "remember",
    "remember_many",
    "resolve_config",
    "revoke_access",
    "search",
    "search_chunks",
    "search_code",
    "search_graph",
    "search_insights",
    "search_summaries",
    "share_dataset",
    "with_retry",
]
