"""Search operations and search history."""

from __future__ import annotations

import httpx
import pytest

from memoria.memory_errors import AuthenticationFailed, InvalidInput
from memoria.outcome import Failure, Success
from memoria.retrieval import (
    NO_DATASETS_REASON,
    NO_RESULTS_REASON,
    get_search_history,
    search,
    search_chunks,
    search_code,
    search_graph,
    search_insights,
    search_summaries,
)
from memoria.types import (
    Query,
    SearchFound,
    SearchHistoryFilters,
    SearchNotFound,
    SearchResultItem,
)
from tests.helpers import FakeService, json_body, make_session

pytestmark = pytest.mark.unit

DATASET = "organization_acme_user_ada_memories"


def _search_service(results: list | None = None) -> FakeService:
    service = FakeService()
    service.route("POST", "/api/v1/search", results or [])
    return service


@pytest.mark.asyncio
async def test_search_defaults_to_graph_completion_on_strategy_dataset() -> None:
    service = _search_service(
        [{"search_result": "Paris", "dataset_id": "ds-1", "dataset_name": DATASET}]
    )

    query = Query(text="capital of France?", tags=("geo",))
    outcome = await search(make_session(service), query)

    assert outcome == Success(
        SearchFound(
            results=(
                SearchResultItem(content="Paris", dataset_id="ds-1", dataset_name=DATASET),
            )
        )
    )
    body = json_body(service.requests[0])
    assert body["search_type"] == "GRAPH_COMPLETION"
    assert body["datasets"] == [DATASET]
    assert body["node_name"] == ["geo"]
    assert body["top_k"] == 10


@pytest.mark.parametrize(
    ("operation", "search_type"),
    [
        (search_graph, "INSIGHTS"),
        (search_chunks, "CHUNKS"),
        (search_insights, "INSIGHTS"),
        (search_summaries, "SUMMARIES"),
        (search_code, "CODE"),
    ],
)
@pytest.mark.asyncio
async def test_each_variant_sends_its_search_type(operation, search_type: str) -> None:
    service = _search_service([{"search_result": "x"}])

    outcome = await operation(make_session(service), Query(text="q"))

    assert isinstance(outcome, Success)
    assert json_body(service.requests[0])["search_type"] == search_type
    item = outcome.value.results[0]
    assert (item.dataset_id, item.dataset_name) == ("unknown", "unknown")


@pytest.mark.asyncio
async def test_foreign_datasets_are_filtered_out() -> None:
    service = _search_service([{"search_result": "x"}])
    query = Query(
        text="q",
        dataset_ids=("organization_acme_shared", "organization_globex_shared", "misc"),
    )

    await search(make_session(service), query)

    assert json_body(service.requests[0])["datasets"] == ["organization_acme_shared"]


@pytest.mark.asyncio
async def test_no_organization_datasets_skips_the_service() -> None:
    service = _search_service()
    query = Query(text="q", dataset_ids=("organization_globex_shared",))

    outcome = await search(make_session(service), query)

    assert outcome == Success(SearchNotFound(reason=NO_DATASETS_REASON))
    assert service.requests == []


@pytest.mark.asyncio
async def test_empty_results_are_not_found() -> None:
    outcome = await search(make_session(_search_service([])), Query(text="q"))
    assert outcome == Success(SearchNotFound(reason=NO_RESULTS_REASON))


@pytest.mark.asyncio
async def test_blank_query_is_rejected_before_searching() -> None:
    service = _search_service()

    outcome = await search(make_session(service), Query(text="   "))

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, InvalidInput)
    assert outcome.error.field == "query"
    assert service.requests == []


@pytest.mark.asyncio
async def test_search_options_are_forwarded() -> None:
    service = _search_service([{"search_result": "ctx"}])
    query = Query(text="q", top_k=3, system_prompt="Be brief", only_context=True)

    await search(make_session(service), query)

    body = json_body(service.requests[0])
    assert body["top_k"] == 3
    assert body["system_prompt"] == "Be brief"
    assert body["only_context"] is True


@pytest.mark.asyncio
async def test_service_failures_surface_as_failure() -> None:
    service = FakeService()
    service.route(
        "POST",
        "/api/v1/search",
        lambda _r: httpx.Response(401, json={"detail": "expired"}),
    )

    outcome = await search(make_session(service), Query(text="q"))

    assert outcome == Failure(AuthenticationFailed(message="expired"))


HISTORY = [
    {"id": "h1", "text": "old question", "createdAt": "2023-12-31T23:00:00Z"},
    {"id": "h2", "text": "new question", "createdAt": "2024-01-02T08:00:00Z"},
    {"id": "h3", "text": "naive stamp", "created_at": "2024-01-01T00:00:00"},
]


@pytest.mark.asyncio
async def test_search_history_maps_entries() -> None:
    service = FakeService()
    service.route("GET", "/api/v1/search", HISTORY)

    outcome = await get_search_history(make_session(service))

    assert isinstance(outcome, Success)
    assert [(h.id, h.query) for h in outcome.value] == [
        ("h1", "old question"),
        ("h2", "new question"),
        ("h3", "naive stamp"),
    ]
    assert outcome.value[2].timestamp == "2024-01-01T00:00:00"


@pytest.mark.asyncio
async def test_search_history_since_filter() -> None:
    service = FakeService()
    service.route("GET", "/api/v1/search", HISTORY)

    outcome = await get_search_history(
        make_session(service), SearchHistoryFilters(since="2024-01-01")
    )

    assert isinstance(outcome, Success)
    assert [h.id for h in outcome.value] == ["h2", "h3"]


@pytest.mark.asyncio
async def test_search_history_rejects_malformed_since() -> None:
    service = FakeService()
    service.route("GET", "/api/v1/search", HISTORY)

    outcome = await get_search_history(
        make_session(service), SearchHistoryFilters(since="yesterday")
    )

    assert outcome == Failure(InvalidInput(field="since", message="Invalid timestamp format"))
