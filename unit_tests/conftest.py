"""Shared pytest fixtures for unit tests."""

from typing import Any, Callable, Optional
from pathlib import Path
import sys

import httpx
import pytest

# Ensure project root is importable when tests run from repository root.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from db.tmdb import TMDB_BASE_URL
from implementation.classes.schemas import MovieSummary, TrendingCounter


@pytest.fixture
def movie_factory() -> Callable[..., MovieSummary]:
    """Return a factory that builds a MovieSummary with optional overrides."""

    def _factory(**overrides: Any) -> MovieSummary:
        base_data: dict[str, Any] = {
            "id": 268,
            "title": "Batman",
            "vote_average": 7.2,
            "poster_path": "/batman.jpg",
            "original_language": "en",
            "release_date": "1989-06-23",
        }
        base_data.update(overrides)
        return MovieSummary(**base_data)

    return _factory


def tmdb_payload(*titles: str, total_pages: int = 1) -> dict[str, Any]:
    """Build a TMDB list response body with one result per title."""
    return {
        "page": 1,
        "results": [
            {"id": 1000 + i, "title": title, "poster_path": f"/{i}.jpg", "release_date": "2001-01-01"}
            for i, title in enumerate(titles)
        ],
        "total_pages": total_pages,
    }


@pytest.fixture
def tmdb_client_factory() -> Callable[[Callable], httpx.AsyncClient]:
    """Return a factory that builds a TMDB-shaped AsyncClient backed by a request handler."""

    def _factory(handler: Callable) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=TMDB_BASE_URL, transport=httpx.MockTransport(handler))

    return _factory


class InMemoryCounterStore:
    """Stand-in for the Redis search-count functions, keyed by exact term."""

    def __init__(self) -> None:
        self.counters: dict[str, TrendingCounter] = {}
        self.calls: list[str] = []

    async def find(self, term: str) -> Optional[TrendingCounter]:
        self.calls.append("find")
        return self.counters.get(term)

    async def create(self, term: str, movie: MovieSummary) -> int:
        self.calls.append("create")
        self.counters[term] = TrendingCounter(
            search_term=term, count=1, movie_id=movie.id, poster_url=movie.poster_url, movie=movie
        )
        return 1

    async def increment(self, term: str, movie: MovieSummary) -> int:
        self.calls.append("increment")
        current = self.counters[term]
        self.counters[term] = current.model_copy(
            update={"count": current.count + 1, "movie_id": movie.id, "poster_url": movie.poster_url, "movie": movie}
        )
        return current.count + 1

    async def top(self, limit: int) -> list[TrendingCounter]:
        self.calls.append("top")
        ranked = sorted(self.counters.values(), key=lambda c: c.count, reverse=True)
        return ranked[:limit]


@pytest.fixture
def counter_store(mocker) -> InMemoryCounterStore:
    """Patch the coordinator's counter-store functions with an in-memory store."""
    store = InMemoryCounterStore()
    mocker.patch("implementation.query_coordinator.find_search_count", new=store.find)
    mocker.patch("implementation.query_coordinator.create_search_count", new=store.create)
    mocker.patch("implementation.query_coordinator.increment_search_count", new=store.increment)
    mocker.patch("implementation.query_coordinator.list_top_search_counts", new=store.top)
    return store
