"""Memory operations: ingest content, forget it, and build the knowledge graph."""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING

from memoria._calls import call_service
from memoria.outcome import Failure, Outcome, Success
from memoria.strategy import generate_dataset_name
from memoria.types import (
    FileContent,
    Memory,
    PipelineRunStatus,
    ProcessingComplete,
    ProcessingErrored,
    ProcessingInProgress,
    ProcessingReference,
    TextContent,
    UrlContent,
    content_hash,
)
from memoria.validate import validate_content

if TYPE_CHECKING:
    from collections.abc import Sequence

    from memoria.client import UploadFile
    from memoria.types import Content, DeleteMode, ProcessingStatus, Session

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _to_upload(content: Content) -> UploadFile:
    """Convert content into a multipart file; URLs are fetched by the service."""
    match content:
        case TextContent(text=text):
            return ("content.txt", text.encode("utf-8"), "text/plain")
        case UrlContent(url=url):
            return ("url.txt", url.encode("utf-8"), "text/plain")
        case FileContent():
            return (content.filename, content.data, content.mime_type)
    raise TypeError(f"Unsupported content type: {type(content).__name__}")


async def _ensure_dataset(session: Session, dataset_name: str) -> Outcome[str]:
    """Return the id of *dataset_name*, creating the dataset when missing."""

    async def find() -> str | None:
        for item in await session.client.get_datasets():
            if item.get("name") == dataset_name:
                return str(item["id"])
        return None

    found = await call_service(session, "get_datasets", find)
    if isinstance(found, Failure):
        return found
    if found.value is not None:
        return Success(found.value)

    async def create() -> str:
        created = await session.client.create_dataset(dataset_name)
        return str(created["id"])

    dataset_id = await call_service(session, "create_dataset", create)
    if isinstance(dataset_id, Success):
        logger.info("Created dataset %s", dataset_name)
    return dataset_id


async def _store(
    session: Session,
    contents: Sequence[Content],
    tags: Sequence[str] | None,
    dataset_name: str | None,
) -> Outcome[tuple[str, str, str]]:
    """Upload *contents*; returns ``(pipeline_run_id, dataset_id, dataset_name)``."""
    for content in contents:
        checked = validate_content(content)
        if isinstance(checked, Failure):
            return checked

    name = dataset_name or generate_dataset_name(session.dataset_strategy, session)
    dataset_id = await _ensure_dataset(session, name)
    if isinstance(dataset_id, Failure):
        return dataset_id

    files = [_to_upload(c) for c in contents]

    async def upload() -> tuple[str, str, str]:
        payload = await session.client.add_data(
            files,
            dataset_name=name,
            dataset_id=dataset_id.value,
            node_set=list(tags or ()),
        )
        payload = payload or {}
        return (
            str(payload.get("pipeline_run_id", "")),
            str(payload.get("dataset_id", dataset_id.value)),
            str(payload.get("dataset_name", name)),
        )

    stored = await call_service(session, "add_data", upload)
    if isinstance(stored, Success):
        logger.debug("Stored %d item(s) in dataset %s", len(files), name)
    return stored


async def remember(
    session: Session,
    content: Content,
    *,
    tags: Sequence[str] | None = None,
    dataset_name: str | None = None,
) -> Outcome[Memory]:
    """Add one item to memory.

    The dataset defaults to the session strategy's name and is created on
    first use. Tags travel as the service's node set so searches can be
    scoped to them.
    """
    stored = await _store(session, [content], tags, dataset_name)
    if isinstance(stored, Failure):
        return stored
    run_id, dataset_id, name = stored.value
    return Success(
        Memory(
            id=run_id,
            dataset_id=dataset_id,
            dataset_name=name,
            content_hash=content_hash(content),
            created_at=_now(),
            tags=tuple(tags) if tags is not None else None,
        )
    )


async def remember_many(
    session: Session,
    contents: Sequence[Content],
    *,
    tags: Sequence[str] | None = None,
    dataset_name: str | None = None,
) -> Outcome[tuple[Memory, ...]]:
    """Add several items in a single upload.

    Memory ids are ``"{pipeline_run_id}_{index}"`` in input order. An empty
    batch succeeds without contacting the service.
    """
    if not contents:
        return Success(())
    stored = await _store(session, contents, tags, dataset_name)
    if isinstance(stored, Failure):
        return stored
    run_id, dataset_id, name = stored.value
    created_at = _now()
    frozen_tags = tuple(tags) if tags is not None else None
    return Success(
        tuple(
            Memory(
                id=f"{run_id}_{index}",
                dataset_id=dataset_id,
                dataset_name=name,
                content_hash=content_hash(content),
                created_at=created_at,
                tags=frozen_tags,
            )
            for index, content in enumerate(contents)
        )
    )


async def forget(
    session: Session, memory: Memory, mode: DeleteMode = "soft"
) -> Outcome[None]:
    """Delete a stored memory from its dataset."""
    return await call_service(
        session,
        "delete_data",
        lambda: session.client.delete_data(memory.dataset_id, memory.id, mode=mode),
    )


async def process(
    session: Session,
    *,
    dataset_ids: Sequence[str] | None = None,
    background: bool = False,
) -> Outcome[ProcessingReference]:
    """Build the knowledge graph for datasets.

    Defaults to the dataset named by the session strategy.
    """
    datasets = list(dataset_ids) if dataset_ids else [
        generate_dataset_name(session.dataset_strategy, session)
    ]

    async def cognify() -> ProcessingReference:
        response = await session.client.cognify(datasets, run_in_background=background)
        runs = list((response or {}).values())
        return ProcessingReference(
            id=str(runs[0].get("pipeline_run_id", "")) if runs else "",
            dataset_ids=tuple(str(run.get("dataset_id")) for run in runs),
            started_at=_now(),
        )

    return await call_service(session, "cognify", cognify)


async def get_processing_status(
    session: Session, reference: ProcessingReference
) -> Outcome[ProcessingStatus]:
    """Summarize pipeline status across the datasets of *reference*."""

    async def fetch() -> ProcessingStatus:
        statuses = await session.client.get_dataset_status(reference.dataset_ids)
        return _summarize(list((statuses or {}).values()), reference)

    return await call_service(session, "get_dataset_status", fetch)


def _summarize(
    statuses: list[PipelineRunStatus | str], reference: ProcessingReference
) -> ProcessingStatus:
    if any(s == PipelineRunStatus.DATASET_PROCESSING_ERRORED for s in statuses):
        return ProcessingErrored(message="Processing failed for one or more datasets")

    completed = sum(
        1 for s in statuses if s == PipelineRunStatus.DATASET_PROCESSING_COMPLETED
    )
    if completed == len(statuses):
        return ProcessingComplete(dataset_ids=reference.dataset_ids)

    return ProcessingInProgress(
        progress=completed / len(statuses) * 100,
        message=f"Processing {completed}/{len(statuses)} datasets",
    )
