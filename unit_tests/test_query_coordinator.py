"""Unit tests for implementation.query_coordinator."""

from unittest.mock import AsyncMock

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import tmdb_payload
from implementation.classes.enums import SearchStatus
from implementation.classes.schemas import QueryRequest, TrendingCounter
from implementation.query_coordinator import (
    FETCH_FAILED_MESSAGE,
    NO_RESULTS_MESSAGE,
    RecordSearch,
    load_leaderboard,
    record_search,
    record_search_safely,
    search,
)


def _recording_client(tmdb_client_factory, body=None, status_code=200):
    """Client that answers every request with `body` and remembers the requests."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=body if body is not None else {})

    return tmdb_client_factory(handler), seen


# -----------------------------
#            search
# -----------------------------

@pytest.mark.asyncio
async def test_empty_term_uses_discover_endpoint(tmdb_client_factory) -> None:
    client, seen = _recording_client(tmdb_client_factory, tmdb_payload("Dune"))
    outcome = await search(QueryRequest(term="", page=1), client)

    assert seen[0].url.path.endswith("/discover/movie")
    assert seen[0].url.params["sort_by"] == "popularity.desc"
    assert "query" not in seen[0].url.params
    assert outcome.status is SearchStatus.SUCCESS
    assert outcome.record_search is None


@pytest.mark.asyncio
async def test_term_uses_search_endpoint(tmdb_client_factory) -> None:
    client, seen = _recording_client(tmdb_client_factory, tmdb_payload("Batman", "Batman Returns"))
    outcome = await search(QueryRequest(term="batman", page=1), client)

    assert len(seen) == 1
    assert seen[0].url.path.endswith("/search/movie")
    assert seen[0].url.params["query"] == "batman"
    assert seen[0].url.params["page"] == "1"
    assert [m.title for m in outcome.result.items] == ["Batman", "Batman Returns"]
    assert outcome.record_search == RecordSearch(term="batman", movie=outcome.result.items[0])


@pytest.mark.asyncio
async def test_genre_filter_added_to_query(tmdb_client_factory) -> None:
    client, seen = _recording_client(tmdb_client_factory, tmdb_payload("Alien"))
    await search(QueryRequest(term="", page=3, genre_id=27), client)

    assert seen[0].url.params["with_genres"] == "27"
    assert seen[0].url.params["page"] == "3"


@pytest.mark.asyncio
async def test_zero_results_is_empty_not_failed(tmdb_client_factory) -> None:
    client, _ = _recording_client(tmdb_client_factory, tmdb_payload())
    outcome = await search(QueryRequest(term="qwertyuiop"), client)

    assert outcome.status is SearchStatus.EMPTY
    assert outcome.error_message == NO_RESULTS_MESSAGE
    assert outcome.record_search is None


@pytest.mark.asyncio
async def test_non_success_status_is_failed(tmdb_client_factory) -> None:
    client, _ = _recording_client(tmdb_client_factory, {"status_message": "Invalid API key"}, status_code=401)
    outcome = await search(QueryRequest(term="batman"), client)

    assert outcome.status is SearchStatus.FAILED
    assert outcome.error_message == FETCH_FAILED_MESSAGE
    assert outcome.result is None
    assert outcome.record_search is None


@pytest.mark.asyncio
async def test_transport_error_is_failed_and_not_raised(tmdb_client_factory) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("unreachable", request=request)

    outcome = await search(QueryRequest(term="batman"), tmdb_client_factory(handler))

    assert outcome.status is SearchStatus.FAILED
    assert calls == 1  # no retry


@pytest.mark.asyncio
async def test_malformed_body_is_failed(tmdb_client_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>not json</html>")

    outcome = await search(QueryRequest(term="batman"), tmdb_client_factory(handler))
    assert outcome.status is SearchStatus.FAILED


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"null", b"[]", b"\"oops\"", b"42"])
async def test_non_object_json_body_is_failed(tmdb_client_factory, body) -> None:
    """A JSON body that is not an object is malformed and must not escape search()."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    outcome = await search(QueryRequest(term="batman"), tmdb_client_factory(handler))
    assert outcome.status is SearchStatus.FAILED
    assert outcome.error_message == FETCH_FAILED_MESSAGE
    assert outcome.record_search is None


# -----------------------------
#        record_search
# -----------------------------

@pytest.mark.asyncio
async def test_first_search_creates_counter_with_count_one(counter_store, movie_factory) -> None:
    count = await record_search("batman", movie_factory())

    assert count == 1
    assert list(counter_store.counters) == ["batman"]
    assert counter_store.counters["batman"].count == 1
    assert counter_store.calls == ["find", "create"]


@pytest.mark.asyncio
async def test_repeat_search_increments_and_overwrites_movie(counter_store, movie_factory) -> None:
    await record_search("batman", movie_factory(id=1, title="Batman"))
    count = await record_search("batman", movie_factory(id=2, title="The Batman"))

    counter = counter_store.counters["batman"]
    assert count == 2
    assert counter.count == 2
    assert counter.movie.title == "The Batman"
    assert counter.movie_id == 2


@pytest.mark.asyncio
async def test_terms_match_exactly(counter_store, movie_factory) -> None:
    await record_search("Batman", movie_factory())
    await record_search("batman ", movie_factory())

    assert set(counter_store.counters) == {"Batman", "batman "}


@pytest.mark.asyncio
async def test_search_then_effect_counts_only_non_empty_results(
    counter_store, tmdb_client_factory
) -> None:
    results = {"batman": tmdb_payload("Batman"), "zzzz": tmdb_payload()}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=results[request.url.params["query"]])

    client = tmdb_client_factory(handler)
    for term in ("batman", "zzzz", "batman"):
        outcome = await search(QueryRequest(term=term), client)
        if outcome.record_search:
            await record_search_safely(outcome.record_search)

    assert set(counter_store.counters) == {"batman"}
    assert counter_store.counters["batman"].count == 2


@pytest.mark.asyncio
async def test_failed_search_leaves_counters_untouched(counter_store, tmdb_client_factory, movie_factory) -> None:
    await record_search("batman", movie_factory())

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    outcome = await search(QueryRequest(term="batman"), tmdb_client_factory(handler))

    assert outcome.status is SearchStatus.FAILED
    assert outcome.record_search is None
    assert counter_store.counters["batman"].count == 1


@pytest.mark.asyncio
async def test_record_search_safely_swallows_store_errors(mocker, movie_factory) -> None:
    mocker.patch(
        "implementation.query_coordinator.find_search_count",
        new=AsyncMock(side_effect=RedisConnectionError("redis down")),
    )
    result = await record_search_safely(RecordSearch(term="batman", movie=movie_factory()))
    assert result is None


# -----------------------------
#        load_leaderboard
# -----------------------------

@pytest.mark.asyncio
async def test_leaderboard_is_top_k_by_count(counter_store) -> None:
    for term, count in {"A": 10, "B": 7, "C": 9, "D": 1, "E": 5, "F": 8}.items():
        counter_store.counters[term] = TrendingCounter(search_term=term, count=count)

    leaderboard = await load_leaderboard(5)
    assert [c.search_term for c in leaderboard] == ["A", "C", "F", "B", "E"]


@pytest.mark.asyncio
async def test_leaderboard_store_failure_returns_empty(mocker) -> None:
    mocker.patch(
        "implementation.query_coordinator.list_top_search_counts",
        new=AsyncMock(side_effect=RedisConnectionError("redis down")),
    )
    assert await load_leaderboard() == []


@pytest.mark.asyncio
async def test_leaderboard_rejects_non_positive_limit() -> None:
    with pytest.raises(ValueError):
        await load_leaderboard(0)
