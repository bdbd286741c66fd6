"""
query_coordinator.py: catalog search and trending-count orchestration.

`search` issues one catalog query and classifies the response. It never writes
to the counter store itself: a successful non-empty search returns a
RecordSearch effect that the caller schedules (background task, FastAPI
BackgroundTasks, ...) through `record_search_safely`.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from redis.exceptions import RedisError

from db.redis import (
    create_search_count,
    find_search_count,
    increment_search_count,
    list_top_search_counts,
)
from db.tmdb import fetch_movies
from implementation.classes.enums import SearchStatus
from implementation.classes.schemas import MovieSummary, QueryRequest, QueryResult, TrendingCounter

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "No movies found."
FETCH_FAILED_MESSAGE = "Failed to fetch movies. Please try again later."
DEFAULT_LEADERBOARD_SIZE = 5


@dataclass(frozen=True, slots=True)
class RecordSearch:
    """Deferred counter update for a successful search."""
    term: str
    movie: MovieSummary


@dataclass(frozen=True, slots=True)
class SearchOutcome:
    status: SearchStatus
    request: QueryRequest
    result: Optional[QueryResult] = None
    error_message: Optional[str] = None
    record_search: Optional[RecordSearch] = None


async def search(request: QueryRequest, client: httpx.AsyncClient) -> SearchOutcome:
    """
    Run one catalog query and return its terminal outcome.

    Outcomes:
        SUCCESS: at least one result. Carries a RecordSearch effect when the
            request had a non-empty term.
        EMPTY:   zero results. Not an error; no counter is touched.
        FAILED:  transport error, non-2xx status or malformed body. Never
            raised past this call and never retried.
    """
    try:
        result = await fetch_movies(request, client)
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Error fetching movies (mode=%s, page=%d): %s", request.mode.value, request.page, exc)
        return SearchOutcome(
            status=SearchStatus.FAILED,
            request=request,
            error_message=FETCH_FAILED_MESSAGE,
        )

    if result.is_empty:
        return SearchOutcome(
            status=SearchStatus.EMPTY,
            request=request,
            result=result,
            error_message=NO_RESULTS_MESSAGE,
        )

    effect = RecordSearch(term=request.term, movie=result.items[0]) if request.term else None
    return SearchOutcome(
        status=SearchStatus.SUCCESS,
        request=request,
        result=result,
        record_search=effect,
    )


async def record_search(term: str, movie: MovieSummary) -> int:
    """
    Count one successful search for `term`.

    Exact-match lookup on the untrimmed, case-sensitive term. An existing
    counter is incremented by one and its representative movie overwritten;
    otherwise a counter is created with count 1.

    Returns:
        The term's count after this search.
    """
    existing = await find_search_count(term)
    if existing is None:
        count = await create_search_count(term, movie)
        logger.info("Created search count for %r", term)
    else:
        count = await increment_search_count(term, movie)
    return count


async def record_search_safely(effect: RecordSearch) -> Optional[int]:
    """
    Perform a RecordSearch effect, logging instead of raising on store failure.

    The search the user just ran must never be affected by the counter store.
    """
    try:
        return await record_search(effect.term, effect.movie)
    except (RedisError, RuntimeError):
        logger.exception("Failed to update search count for %r", effect.term)
        return None


async def load_leaderboard(limit: int = DEFAULT_LEADERBOARD_SIZE) -> list[TrendingCounter]:
    """
    Return the `limit` most-searched terms, count descending.

    An unavailable counter store degrades to an empty leaderboard.

    Raises:
        ValueError: If limit is not positive.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    try:
        return await list_top_search_counts(limit)
    except (RedisError, RuntimeError) as exc:
        logger.error("Failed to fetch trending searches: %s", exc)
        return []
