"""Public value types for sessions, memories, search and datasets.

Variants of a union are separate frozen dataclasses; callers branch with
``isinstance`` or ``match``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping  # noqa: TC003 - used at runtime in dataclass
from dataclasses import dataclass, field
from enum import StrEnum
import hashlib
import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from memoria.circuit_breaker import CircuitBreaker
    from memoria.client import ServiceClient
    from memoria.retry import RetryStrategy

Permission = Literal["read", "write", "delete", "share"]
DeleteMode = Literal["soft", "hard"]
DatasetContext = Mapping[str, Any]


class SearchType(StrEnum):
    """Search modes understood by the memory service."""

    GRAPH_COMPLETION = "GRAPH_COMPLETION"
    RAG_COMPLETION = "RAG_COMPLETION"
    INSIGHTS = "INSIGHTS"
    CHUNKS = "CHUNKS"
    SUMMARIES = "SUMMARIES"
    CODE = "CODE"


class PipelineRunStatus(StrEnum):
    """Per-dataset processing states reported by the service."""

    DATASET_PROCESSING_INITIATED = "DATASET_PROCESSING_INITIATED"
    DATASET_PROCESSING_STARTED = "DATASET_PROCESSING_STARTED"
    DATASET_PROCESSING_COMPLETED = "DATASET_PROCESSING_COMPLETED"
    DATASET_PROCESSING_ERRORED = "DATASET_PROCESSING_ERRORED"


# --- Dataset naming strategies ---


@dataclass(frozen=True, slots=True)
class UserScope:
    """One dataset per user inside an organization."""

    organization_id: str
    user_id: str


@dataclass(frozen=True, slots=True)
class ProjectScope:
    """One dataset per project inside an organization."""

    organization_id: str
    project_id: str


@dataclass(frozen=True, slots=True)
class OrganizationScope:
    """A single dataset shared by the whole organization."""

    organization_id: str


@dataclass(frozen=True, slots=True)
class CustomScope:
    """Caller-supplied naming; receives organization_id, user_id and extras."""

    naming_fn: Callable[[DatasetContext], str]


DatasetStrategy = UserScope | ProjectScope | OrganizationScope | CustomScope


# --- Session ---


@dataclass(frozen=True, slots=True)
class Credentials:
    """Login credentials; the password never appears in repr."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='[REDACTED]')"


@dataclass(frozen=True)
class Session:
    """An authenticated connection to the memory service.

    ``client`` carries the bearer token. ``retry`` and ``breaker`` apply to
    every service call made with this session; one breaker is shared by all
    of them.
    """

    service_url: str
    organization_id: str
    user_id: str
    user_name: str
    dataset_strategy: DatasetStrategy
    client: ServiceClient
    retry: RetryStrategy | None = None
    breaker: CircuitBreaker | None = None


# --- Content and memories ---


@dataclass(frozen=True, slots=True)
class TextContent:
    """Plain text to remember."""

    text: str


@dataclass(frozen=True, slots=True)
class UrlContent:
    """A URL the service fetches itself."""

    url: str


@dataclass(frozen=True, slots=True)
class FileContent:
    """File bytes plus the name and MIME type sent with the upload."""

    data: bytes
    filename: str
    mime_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: str | Path, *, mime_type: str | None = None) -> FileContent:
        """Read a local file into memory.

        Args:
            path: Path to the file.
            mime_type: MIME type override. Guessed from the extension when *None*.
        """
        p = Path(path)
        mt = mime_type or mimetypes.guess_type(str(p))[0] or "application/octet-stream"
        return cls(data=p.read_bytes(), filename=p.name, mime_type=mt)

    @property
    def size(self) -> int:
        """Length of the file in bytes."""
        return len(self.data)


Content = TextContent | FileContent | UrlContent


def content_hash(content: Content) -> str:
    """SHA-256 identity for deduplication.

    Files hash ``"{filename}:{size}"`` rather than their bytes.
    """
    match content:
        case TextContent(text=text):
            raw = text
        case UrlContent(url=url):
            raw = url
        case FileContent():
            raw = f"{content.filename}:{content.size}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class Memory:
    """Reference to ingested content."""

    id: str
    dataset_id: str
    dataset_name: str
    content_hash: str
    created_at: str
    tags: tuple[str, ...] | None = None


# --- Processing ---


@dataclass(frozen=True, slots=True)
class ProcessingReference:
    """Handle for a started graph-building run."""

    id: str
    dataset_ids: tuple[str, ...]
    started_at: str


@dataclass(frozen=True, slots=True)
class ProcessingComplete:
    """Every dataset of the run finished processing."""

    dataset_ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ProcessingInProgress:
    """Some datasets are still processing; *progress* is a percentage."""

    progress: float
    message: str


@dataclass(frozen=True, slots=True)
class ProcessingErrored:
    """At least one dataset failed to process."""

    message: str


ProcessingStatus = ProcessingComplete | ProcessingInProgress | ProcessingErrored


# --- Search ---


@dataclass(frozen=True, slots=True)
class Query:
    """A search request.

    ``system_prompt`` only affects answer-generating search types.
    ``only_context`` returns the retrieved context instead of an answer.
    """

    text: str
    dataset_ids: tuple[str, ...] | None = None
    tags: tuple[str, ...] | None = None
    top_k: int = 10
    system_prompt: str | None = None
    only_context: bool = False
    use_combined_context: bool = False


@dataclass(frozen=True, slots=True)
class SearchResultItem:
    """One search hit and the dataset it came from."""

    content: Any
    dataset_id: str
    dataset_name: str
    relevance_score: float | None = None


@dataclass(frozen=True, slots=True)
class SearchFound:
    """Search returned at least one result."""

    results: tuple[SearchResultItem, ...]
    graphs: tuple[DatasetGraph, ...] | None = None


@dataclass(frozen=True, slots=True)
class SearchNotFound:
    """Search ran (or was skipped) without results."""

    reason: str


SearchOutcome = SearchFound | SearchNotFound


@dataclass(frozen=True, slots=True)
class SearchHistoryItem:
    """A past query of the session user."""

    id: str
    query: str
    timestamp: str


@dataclass(frozen=True, slots=True)
class SearchHistoryFilters:
    """``since`` is an ISO-8601 date or datetime."""

    since: str | None = None
    dataset_ids: tuple[str, ...] | None = None


# --- Datasets ---


@dataclass(frozen=True, slots=True)
class DatasetPermission:
    """A permission held by a user on a dataset."""

    user_id: str
    permission: Permission


@dataclass(frozen=True, slots=True)
class Dataset:
    """A dataset as listed by the memory service."""

    id: str
    name: str
    owner_id: str
    created_at: str
    updated_at: str | None
    permissions: tuple[DatasetPermission, ...] = ()


@dataclass(frozen=True, slots=True)
class DatasetDataItem:
    """One stored data item inside a dataset."""

    id: str
    name: str
    created_at: str
    updated_at: str | None
    extension: str | None
    mime_type: str | None
    raw_data_location: str | None
    dataset_id: str
    node_set: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class DatasetGraph:
    """Graph payload for visualization, passed through as the service sent it."""

    nodes: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)
    edges: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)
