"""Search across an organization's memories, plus search history."""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING, Any

from memoria._calls import call_service
from memoria.memory_errors import InvalidInput
from memoria.outcome import Failure, Outcome, Success
from memoria.strategy import generate_dataset_name, is_organization_dataset
from memoria.types import (
    SearchFound,
    SearchHistoryItem,
    SearchNotFound,
    SearchResultItem,
    SearchType,
)
from memoria.validate import validate_query

if TYPE_CHECKING:
    from memoria.types import Query, SearchHistoryFilters, SearchOutcome, Session

logger = logging.getLogger(__name__)

NO_DATASETS_REASON = "No datasets available for this organization"
NO_RESULTS_REASON = "No matching content found"


def _to_result_item(raw: Any) -> SearchResultItem:
    if not isinstance(raw, dict):
        return SearchResultItem(content=raw, dataset_id="unknown", dataset_name="unknown")
    return SearchResultItem(
        content=raw.get("search_result"),
        dataset_id=raw.get("dataset_id") or "unknown",
        dataset_name=raw.get("dataset_name") or "unknown",
    )


async def _perform_search(
    session: Session, query: Query, search_type: SearchType
) -> Outcome[SearchOutcome]:
    checked = validate_query(query.text)
    if isinstance(checked, Failure):
        return checked

    requested = query.dataset_ids or (
        generate_dataset_name(session.dataset_strategy, session),
    )
    # Never send a dataset outside the session's organization.
    org = session.organization_id
    datasets = [name for name in requested if is_organization_dataset(name, org)]
    if not datasets:
        return Success(SearchNotFound(reason=NO_DATASETS_REASON))
    if len(datasets) < len(requested):
        logger.debug(
            "Dropped %d dataset(s) outside organization %s",
            len(requested) - len(datasets),
            org,
        )

    async def run() -> SearchOutcome:
        results = await session.client.search(
            query.text,
            search_type=search_type,
            datasets=datasets,
            node_name=query.tags,
            top_k=query.top_k,
            system_prompt=query.system_prompt,
            only_context=query.only_context,
            use_combined_context=query.use_combined_context,
        )
        if not results:
            return SearchNotFound(reason=NO_RESULTS_REASON)
        return SearchFound(results=tuple(_to_result_item(r) for r in results))

    return await call_service(session, "search", run)


async def search(session: Session, query: Query) -> Outcome[SearchOutcome]:
    """Answer *query* from the knowledge graph (``GRAPH_COMPLETION``).

    Example:
        outcome = await search(session, Query(text="What did I learn about asyncio?"))
        if isinstance(outcome, Success) and isinstance(outcome.value, SearchFound):
            for item in outcome.value.results:
                print(item.content)
    """
    return await _perform_search(session, query, SearchType.GRAPH_COMPLETION)


async def search_graph(session: Session, query: Query) -> Outcome[SearchOutcome]:
    """Search graph structure (``INSIGHTS``)."""
    return await _perform_search(session, query, SearchType.INSIGHTS)


async def search_chunks(session: Session, query: Query) -> Outcome[SearchOutcome]:
    """Return raw text chunks (``CHUNKS``)."""
    return await _perform_search(session, query, SearchType.CHUNKS)


async def search_insights(session: Session, query: Query) -> Outcome[SearchOutcome]:
    """Return extracted entity relationships (``INSIGHTS``)."""
    return await _perform_search(session, query, SearchType.INSIGHTS)


async def search_summaries(session: Session, query: Query) -> Outcome[SearchOutcome]:
    """Return pre-computed summaries (``SUMMARIES``)."""
    return await _perform_search(session, query, SearchType.SUMMARIES)


async def search_code(session: Session, query: Query) -> Outcome[SearchOutcome]:
    """Search indexed source code (``CODE``)."""
    return await _perform_search(session, query, SearchType.CODE)


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


async def get_search_history(
    session: Session, filters: SearchHistoryFilters | None = None
) -> Outcome[tuple[SearchHistoryItem, ...]]:
    """Return past searches of the session user.

    ``filters.since`` keeps entries at or after that instant; naive timestamps
    are read as UTC. The service reports no dataset per entry, so
    ``filters.dataset_ids`` is not applied.
    """
    since = None
    if filters is not None and filters.since:
        since = _parse_timestamp(filters.since)
        if since is None:
            return Failure(
                InvalidInput(field="since", message="Invalid timestamp format")
            )

    async def fetch() -> tuple[SearchHistoryItem, ...]:
        entries = await session.client.get_search_history()
        return tuple(
            SearchHistoryItem(
                id=str(raw.get("id", "")),
                query=str(raw.get("text", "")),
                timestamp=str(raw.get("createdAt") or raw.get("created_at") or ""),
            )
            for raw in entries or ()
        )

    history = await call_service(session, "get_search_history", fetch)
    if isinstance(history, Failure) or since is None:
        return history
    return Success(
        tuple(
            item
            for item in history.value
            if (ts := _parse_timestamp(item.timestamp)) is not None and ts >= since
        )
    )
